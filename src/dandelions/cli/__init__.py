"""Command-line interface for dandelions."""
