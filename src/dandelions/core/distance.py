"""
Packed Hamming distance table.

Builds the N x N table used by MST construction and neighbor joining. Each
entry packs two Hamming distances into one unsigned 32-bit integer so that
a single integer comparison orders candidate parents by (child-parent
distance, parent-root distance).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from dandelions.core.constants import (
    DISTANCE_MASK,
    DISTANCE_SHIFT,
    MAX_PACKED_LENGTH,
)
from dandelions.core.exceptions import (
    EmptySequenceSetError,
    SequenceLengthMismatchError,
    SequenceTooLongError,
)

logger = logging.getLogger(__name__)


def validate_sequences(sequences: Sequence[str]) -> int:
    """Check that sequences are non-empty and of equal, packable length.

    Returns:
        The common sequence length.

    Raises:
        EmptySequenceSetError: If no sequences are given.
        SequenceLengthMismatchError: If any length differs from sequence 0.
        SequenceTooLongError: If the length cannot be packed into 16 bits.
    """
    if len(sequences) == 0:
        raise EmptySequenceSetError()

    length = len(sequences[0])
    for i, seq in enumerate(sequences):
        if len(seq) != length:
            raise SequenceLengthMismatchError(expected=length, actual=len(seq), index=i)

    if length > MAX_PACKED_LENGTH:
        raise SequenceTooLongError(length, MAX_PACKED_LENGTH)

    return length


def encode_sequences(sequences: Sequence[str]) -> np.ndarray:
    """Encode equal-length sequences as an N x L uint8 matrix of byte codes."""
    if len(sequences) == 0:
        return np.zeros((0, 0), dtype=np.uint8)
    joined = "".join(sequences).encode("ascii")
    return np.frombuffer(joined, dtype=np.uint8).reshape(len(sequences), -1)


def hamming_row(codes: np.ndarray, index: int) -> np.ndarray:
    """Hamming distances from sequence ``index`` to every row of ``codes``."""
    return np.count_nonzero(codes != codes[index], axis=1).astype(np.uint32)


def pack(child_parent: np.ndarray | int, parent_root: np.ndarray | int) -> np.ndarray | int:
    """Pack (d(child, parent), d(parent, root)) into one integer key."""
    return (child_parent << DISTANCE_SHIFT) | (parent_root & DISTANCE_MASK)


def child_distance(entry: np.ndarray | int) -> np.ndarray | int:
    """Extract d(child, parent) from a packed entry."""
    return entry >> DISTANCE_SHIFT


def root_distance(entry: np.ndarray | int) -> np.ndarray | int:
    """Extract d(parent, root) from a packed entry."""
    return entry & DISTANCE_MASK


def make_distance_matrix(sequences: Sequence[str]) -> np.ndarray:
    """Build the packed, intentionally asymmetric distance table.

    Entry ``[c, p]`` holds ``hamming(c, p)`` in the high 16 bits and
    ``hamming(p, 0)`` in the low 16 bits, i.e. row = child, column =
    candidate parent. The high halves are symmetric; the low halves depend
    only on the column.

    Args:
        sequences: Equal-length sequences; sequences[0] is the root.

    Returns:
        uint32 array of shape (N, N).

    Raises:
        EmptySequenceSetError: If no sequences are given.
        SequenceLengthMismatchError: If lengths differ.
        SequenceTooLongError: If sequences exceed 65535 characters.
    """
    validate_sequences(sequences)

    codes = encode_sequences(sequences)
    n = len(sequences)

    hamming = np.zeros((n, n), dtype=np.uint32)
    for i in range(n):
        hamming[i] = hamming_row(codes, i)

    # Column p carries d(p, root) in its low bits
    root_row = hamming[0].copy()
    dism = pack(hamming, root_row[np.newaxis, :]).astype(np.uint32)

    logger.debug(f"Built {n}x{n} packed distance table")
    return dism
