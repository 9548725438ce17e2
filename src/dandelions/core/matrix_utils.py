"""
Small matrix helpers.

Index arithmetic for packed lower-triangular pair tables (diagonal
excluded) used by the force simulation, and a closed-form 2x2 inverse.
"""

from __future__ import annotations

import math

import numpy as np

from dandelions.core.exceptions import DomainError, SingularMatrixError

# Determinants with a smaller magnitude are treated as singular
SINGULAR_DETERMINANT = 1e-7


def ltri_size(n: int) -> int:
    """Number of entries in a packed lower triangle of an n x n matrix."""
    return n * (n - 1) // 2


def ltri_ij(k: int) -> tuple[int, int]:
    """Row and column for linear index k into a packed lower triangle.

    The packing enumerates rows top to bottom and columns left to right,
    skipping the diagonal::

          j=0 1 2 3
        i=0 - - - -
        i=1 0 - - -
        i=2 1 2 - -
        i=3 3 4 5 -

    Args:
        k: 0-based linear index.

    Returns:
        Tuple (i, j) with i > j.

    Example:
        >>> ltri_ij(0), ltri_ij(2), ltri_ij(5)
        ((1, 0), (2, 1), (3, 2))
    """
    k += 1
    i = (math.isqrt(8 * k + 1) - 1) // 2
    if i * (i + 1) // 2 == k:
        return i, i - 1
    return i + 1, k - i * (i + 1) // 2 - 1


def ltri_k(i: int, j: int) -> int:
    """Linear index of entry (i, j), i > j, in a packed lower triangle."""
    if i <= j:
        i, j = j, i
    return i * (i - 1) // 2 + j


def ltri_indices(n: int) -> tuple[np.ndarray, np.ndarray]:
    """Row and column arrays for all packed entries of an n x n matrix.

    Entry k of the returned arrays equals ``ltri_ij(k)``.
    """
    rows, cols = np.tril_indices(n, k=-1)
    return rows.astype(np.intp), cols.astype(np.intp)


def invert_2x2(matrix: np.ndarray) -> np.ndarray:
    """Invert a 2x2 matrix in closed form.

    Args:
        matrix: Array of shape (2, 2).

    Returns:
        The inverse as a float64 array.

    Raises:
        DomainError: If the matrix is not 2x2.
        SingularMatrixError: If the determinant is too close to zero.
    """
    m = np.asarray(matrix, dtype=np.float64)
    if m.shape != (2, 2):
        raise DomainError(f"Matrix inverse only implemented for 2x2 matrices, got {m.shape}")

    det = m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0]
    if abs(det) < SINGULAR_DETERMINANT:
        raise SingularMatrixError(det)

    return np.array(
        [[m[1, 1], -m[0, 1]], [-m[1, 0], m[0, 0]]],
        dtype=np.float64,
    ) / det
