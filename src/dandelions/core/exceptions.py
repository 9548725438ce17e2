"""
Custom exceptions with actionable guidance.

Provides specific error types for input, tree-structure and numeric
failures, each with a suggestion for resolution where one exists.
"""

from __future__ import annotations


class DandelionsError(Exception):
    """Base exception for dandelions errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


# =============================================================================
# Sequence input errors
# =============================================================================


class SequenceError(DandelionsError):
    """Base class for sequence input errors."""


class EmptySequenceSetError(SequenceError):
    """Raised when an analysis is started without any sequences."""

    def __init__(self, source: str | None = None):
        where = f" in {source}" if source else ""
        super().__init__(
            message=f"No usable sequences found{where}",
            suggestion=(
                "Provide at least one nucleotide sequence. The first sequence "
                "is used as the root of the tree."
            ),
        )


class SequenceLengthMismatchError(SequenceError):
    """Raised when sequences of different lengths are analyzed together."""

    def __init__(self, expected: int, actual: int, index: int):
        super().__init__(
            message=(
                f"Sequence {index} has length {actual}, expected {expected} "
                "(length of the root sequence)"
            ),
            suggestion=(
                "All sequences must have the same length. Indels are not "
                "supported; remove or align the offending sequences."
            ),
        )
        self.expected = expected
        self.actual = actual
        self.index = index


class SequenceTooLongError(SequenceError):
    """Raised when sequences are too long for the packed distance table."""

    def __init__(self, length: int, maximum: int):
        super().__init__(
            message=f"Sequence length {length} exceeds the supported maximum of {maximum}",
            suggestion="Split the region of interest into shorter sequences.",
        )
        self.length = length
        self.maximum = maximum


class InvalidNucleotideError(SequenceError):
    """Raised when a sequence contains characters outside ACGT."""

    def __init__(self, sequence: str, position: int | None = None):
        shown = sequence if len(sequence) <= 20 else sequence[:20] + "..."
        where = f" at position {position + 1}" if position is not None else ""
        super().__init__(
            message=f"Invalid nucleotide{where} in '{shown}'",
            suggestion="Sequences may contain only the characters A, C, G and T.",
        )


class SequenceFileError(SequenceError):
    """Raised when an input file cannot be parsed."""

    def __init__(self, path: str, reason: str, line_num: int | None = None):
        where = f" at line {line_num}" if line_num is not None else ""
        super().__init__(
            message=f"Could not read sequences from '{path}'{where}: {reason}",
            suggestion=(
                "Supported inputs are dsa output (.csv), FASTA (.fasta/.fa/.fna) "
                "and plain text with one sequence per line."
            ),
        )
        self.path = path
        self.line_num = line_num


# =============================================================================
# Tree structure errors (programmer errors, never retried)
# =============================================================================


class TreeInvariantError(DandelionsError):
    """Base class for violations of tree structure invariants."""


class DuplicateNodeError(TreeInvariantError):
    """Raised when a node id is inserted twice."""

    def __init__(self, node_id: int):
        super().__init__(message=f"Network already contains Node with id={node_id}")
        self.node_id = node_id


class UnknownNodeError(TreeInvariantError):
    """Raised when an operation references a node id that does not exist."""

    def __init__(self, *node_ids: int, suggestion: str | None = None):
        ids = " or ".join(str(i) for i in node_ids)
        super().__init__(message=f"Network missing Node {ids}", suggestion=suggestion)
        self.node_ids = node_ids


class NotALeafError(TreeInvariantError):
    """Raised when rerooting on a node that has children."""

    def __init__(self, node_id: int):
        super().__init__(message=f"Cannot reroot on node {node_id}: it is not a leaf")
        self.node_id = node_id


class RootInvariantError(TreeInvariantError):
    """Raised when a tree does not have exactly one root."""

    def __init__(self, n_roots: int):
        super().__init__(message=f"Tree must have exactly one root, found {n_roots}")
        self.n_roots = n_roots


# =============================================================================
# Numeric domain errors
# =============================================================================


class DomainError(DandelionsError, ValueError):
    """Base class for inputs outside the mathematical domain of an operation."""


class SingularMatrixError(DomainError):
    """Raised when inverting a matrix whose determinant is too close to zero."""

    def __init__(self, determinant: float):
        super().__init__(
            message=f"2x2 matrix has determinant too close to zero ({determinant:g})",
        )
        self.determinant = determinant


class GappedSequenceError(DomainError):
    """Raised when Markov model inference meets a non-ACGT character."""

    def __init__(self, character: str):
        super().__init__(
            message=(
                f"Markov model inference not supported for gapped sequences "
                f"(found {character!r})"
            ),
            suggestion="Remove gap characters or export the Markov model from ungapped input.",
        )
        self.character = character


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigurationError(DandelionsError):
    """Raised when configuration is invalid."""
