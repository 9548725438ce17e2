"""Unit tests for custom exceptions module."""

import pytest

from dandelions.core.exceptions import (
    ConfigurationError,
    DandelionsError,
    DomainError,
    DuplicateNodeError,
    EmptySequenceSetError,
    GappedSequenceError,
    InvalidNucleotideError,
    NotALeafError,
    RootInvariantError,
    SequenceError,
    SequenceFileError,
    SequenceLengthMismatchError,
    SequenceTooLongError,
    SingularMatrixError,
    TreeInvariantError,
    UnknownNodeError,
)


class TestDandelionsError:
    """Tests for base exception class."""

    def test_basic_message(self):
        error = DandelionsError("Test error")
        assert error.message == "Test error"
        assert error.suggestion is None
        assert str(error) == "Test error"

    def test_message_with_suggestion(self):
        error = DandelionsError("Test error", suggestion="Try this fix")
        assert "Suggestion: Try this fix" in str(error)


class TestSequenceErrors:

    def test_empty(self):
        error = EmptySequenceSetError("input.fasta")
        assert "input.fasta" in error.message
        assert isinstance(error, SequenceError)

    def test_length_mismatch(self):
        error = SequenceLengthMismatchError(expected=9, actual=6, index=3)
        assert "Sequence 3 has length 6, expected 9" in error.message
        assert error.suggestion

    def test_too_long(self):
        error = SequenceTooLongError(70000, 65535)
        assert error.length == 70000
        assert "65535" in str(error)

    def test_invalid_nucleotide_truncates(self):
        error = InvalidNucleotideError("A" * 50, position=4)
        assert "position 5" in error.message
        assert "..." in error.message

    def test_file_error_line(self):
        error = SequenceFileError("x.csv", "invalid sequence row", 12)
        assert "line 12" in error.message
        assert error.line_num == 12


class TestTreeErrors:

    @pytest.mark.parametrize(
        "error",
        [
            DuplicateNodeError(1),
            UnknownNodeError(1, 2),
            NotALeafError(3),
            RootInvariantError(2),
        ],
    )
    def test_hierarchy(self, error):
        assert isinstance(error, TreeInvariantError)
        assert isinstance(error, DandelionsError)

    def test_unknown_lists_ids(self):
        assert "1 or 2" in UnknownNodeError(1, 2).message


class TestDomainErrors:

    def test_domain_errors_are_value_errors(self):
        assert isinstance(SingularMatrixError(0.0), ValueError)
        assert isinstance(GappedSequenceError("-"), DomainError)

    def test_gapped_character(self):
        assert GappedSequenceError("-").character == "-"

    def test_configuration(self):
        assert isinstance(ConfigurationError("bad"), DandelionsError)
