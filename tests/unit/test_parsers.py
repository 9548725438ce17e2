"""Unit tests for sequence input parsers."""

from __future__ import annotations

import gzip
import logging
from pathlib import Path

import pytest

from dandelions.core.exceptions import EmptySequenceSetError, SequenceFileError
from dandelions.core.parsers import (
    InputFormat,
    detect_format,
    load_sequences,
    parse_dsa,
    parse_fasta,
    parse_text,
)


class TestDetectFormat:

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("reads.csv", InputFormat.DSA),
            ("reads.fasta", InputFormat.FASTA),
            ("reads.fa.gz", InputFormat.FASTA),
            ("reads.FNA", InputFormat.FASTA),
            ("reads.txt", InputFormat.TEXT),
            ("reads", InputFormat.TEXT),
        ],
    )
    def test_suffixes(self, name, expected):
        assert detect_format(Path(name)) == expected


class TestParseFasta:
    """Tests for FASTA input."""

    def test_root_first(self, write_fasta, star_sequences):
        assert parse_fasta(write_fasta(star_sequences)) == star_sequences

    def test_drops_duplicates_and_root_copies(self, write_fasta, chain_sequences, caplog):
        path = write_fasta(chain_sequences + [chain_sequences[1], chain_sequences[0]])
        with caplog.at_level(logging.INFO, logger="dandelions"):
            assert parse_fasta(path) == chain_sequences
        assert "duplicate" in caplog.text

    def test_drops_length_mismatches(self, write_fasta, chain_sequences, caplog):
        path = write_fasta(chain_sequences + ["ACGT"])
        with caplog.at_level(logging.WARNING, logger="dandelions"):
            assert parse_fasta(path) == chain_sequences
        assert "length" in caplog.text

    def test_lowercase_and_invalid_filtered(self, write_fasta):
        assert parse_fasta(write_fasta(["aaannnccc", "CAACCC"])) == ["AAACCC", "CAACCC"]

    def test_empty_raises(self, tmp_path):
        path = tmp_path / "empty.fasta"
        path.write_text("")
        with pytest.raises(EmptySequenceSetError):
            parse_fasta(path)

    def test_gzip(self, tmp_path, chain_sequences):
        path = tmp_path / "seqs.fasta.gz"
        with gzip.open(path, "wt") as handle:
            for i, seq in enumerate(chain_sequences):
                handle.write(f">s{i}\n{seq}\n")
        assert parse_fasta(path) == chain_sequences


class TestParseText:

    def test_one_per_line(self, tmp_path, chain_sequences):
        path = tmp_path / "seqs.txt"
        path.write_text("\n".join(chain_sequences) + "\n\n")
        assert parse_text(path) == chain_sequences

    def test_blank_file_raises(self, tmp_path):
        path = tmp_path / "blank.txt"
        path.write_text("\n\n")
        with pytest.raises(EmptySequenceSetError):
            parse_text(path)


class TestParseDsa:
    """Tests for dsa output input."""

    def test_template_and_alignments(self, write_dsa, star_sequences):
        assert parse_dsa(write_dsa(star_sequences)) == star_sequences

    def test_missing_template_raises(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("#Alignments#\nheader\n")
        with pytest.raises(SequenceFileError):
            parse_dsa(path)

    def test_missing_alignments_raises(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("#dna template sequence\tAAACCC\n")
        with pytest.raises(SequenceFileError):
            parse_dsa(path)

    def test_malformed_row_raises(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text(
            "#dna template sequence\tAAACCC\n#Alignments#\nheader\nKP\nonly\ttwo\n"
        )
        with pytest.raises(SequenceFileError) as exc:
            parse_dsa(path)
        assert exc.value.line_num == 5

    def test_invalid_template_raises(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("#dna template sequence\tAANCCC\n#Alignments#\nheader\n")
        with pytest.raises(SequenceFileError):
            parse_dsa(path)


class TestLoadSequences:

    def test_detects_format(self, write_fasta, star_sequences):
        assert load_sequences(write_fasta(star_sequences)) == star_sequences

    def test_explicit_format(self, tmp_path, chain_sequences):
        path = tmp_path / "seqs.dat"
        path.write_text("\n".join(chain_sequences))
        assert load_sequences(path, "text") == chain_sequences

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_sequences(tmp_path / "missing.fasta")
