"""
Constants used throughout the dandelions package.

Centralizes alphabets, bit layouts and default values so that the tree
builders, the alignment engine and the exporters agree on them.
"""

from __future__ import annotations

# =============================================================================
# Alphabets
# =============================================================================

# Nucleotides in substitution-matrix order (rows/columns of the Markov model)
NUCLEOTIDES = "ACGT"

# Gap character used in aligned input and aligned amino acid output
GAP = "-"

# Symbols accepted by the sequence validator
VALID_SYMBOLS = NUCLEOTIDES + GAP

# Bit index of each symbol in an ambiguity mask (bit i set = symbol i possible)
BIT_ALPHABET = "ACGT-"

# =============================================================================
# Packed distance table
#
# Each entry of the distance table is a single unsigned 32-bit integer:
# the upper 16 bits hold d(child, parent) and the lower 16 bits hold
# d(parent, root). Comparing packed integers therefore compares the
# child-parent distance first and breaks ties on the parent-root distance.
# =============================================================================

DISTANCE_SHIFT = 16
DISTANCE_MASK = 0xFFFF
MAX_PACKED_LENGTH = DISTANCE_MASK

# Sentinel for "no candidate parent yet" in MST construction
MST_UNSET = (1 << 64) - 1

# Initial value of the inverted occurrence table in consensus building
PCT_MAX = (1 << 32) - 1

# =============================================================================
# Alignment defaults
# =============================================================================

DEFAULT_GAP_PENALTY = 4.0

# =============================================================================
# Network defaults
# =============================================================================

# Centroid threshold in standard deviations above the mean node size
DEFAULT_CENTROID_SIGMA = 2.0

# Colors for centroids in exported tables (Sasha Trubetskoy's palette)
PALETTE = (
    "#e6194b",
    "#3cb44b",
    "#4363d8",
    "#f58231",
    "#911eb4",
    "#f032e6",
    "#bcf60c",
    "#fabebe",
    "#008080",
    "#e6beff",
    "#9a6324",
    "#fffac8",
    "#800000",
    "#aaffc3",
    "#808000",
    "#ffd8b1",
    "#000075",
    "#808080",
    "#46f0f0",
    "#ffe119",
)

ROOT_COLOR = "#000000"
