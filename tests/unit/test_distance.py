"""Unit tests for the packed distance table."""

from __future__ import annotations

import numpy as np
import pytest

from dandelions.core.distance import (
    child_distance,
    make_distance_matrix,
    pack,
    root_distance,
    validate_sequences,
)
from dandelions.core.exceptions import (
    EmptySequenceSetError,
    SequenceLengthMismatchError,
    SequenceTooLongError,
)


class TestPacking:
    """Tests for packing two distances into one key."""

    def test_pack_and_unpack(self):
        key = pack(3, 7)
        assert child_distance(key) == 3
        assert root_distance(key) == 7

    def test_child_distance_dominates_ordering(self):
        assert pack(1, 500) < pack(2, 0)

    def test_root_distance_breaks_ties(self):
        assert pack(2, 1) < pack(2, 3)


class TestMakeDistanceMatrix:
    """Tests for make_distance_matrix."""

    def test_shape_and_dtype(self, star_sequences):
        dism = make_distance_matrix(star_sequences)
        assert dism.shape == (4, 4)
        assert dism.dtype == np.uint32

    def test_high_bits_are_symmetric_hamming(self, star_sequences):
        dism = make_distance_matrix(star_sequences)
        high = child_distance(dism)
        np.testing.assert_array_equal(high, high.T)
        assert high[1, 0] == 1
        assert high[1, 2] == 2
        assert np.all(np.diag(high) == 0)

    def test_low_bits_hold_parent_root_distance(self, chain_sequences):
        dism = make_distance_matrix(chain_sequences)
        low = root_distance(dism)
        # Column p carries d(p, root) in every row
        np.testing.assert_array_equal(low[:, 0], [0, 0, 0])
        np.testing.assert_array_equal(low[:, 1], [1, 1, 1])
        np.testing.assert_array_equal(low[:, 2], [2, 2, 2])

    def test_single_sequence(self):
        dism = make_distance_matrix(["ACGT"])
        assert dism.shape == (1, 1)
        assert dism[0, 0] == 0

    def test_empty_raises(self):
        with pytest.raises(EmptySequenceSetError):
            make_distance_matrix([])

    def test_length_mismatch_raises(self):
        with pytest.raises(SequenceLengthMismatchError) as exc:
            make_distance_matrix(["ACGT", "ACG"])
        assert exc.value.index == 1
        assert exc.value.expected == 4

    def test_too_long_raises(self):
        seq = "A" * 70000
        with pytest.raises(SequenceTooLongError):
            validate_sequences([seq])
