"""Unit tests for codon-constrained alignment and mutation tallying."""

from __future__ import annotations

import pytest

from dandelions.core.alignment import (
    MutationTable,
    constrained_nw_align,
    find_codon_boundaries,
    format_mutations,
    tally_alignment_mutations,
)
from dandelions.core.constants import ROOT_COLOR


class TestFindCodonBoundaries:

    def test_ungapped(self):
        assert find_codon_boundaries("AAACCCGGG") == [(0, 3), (3, 3), (6, 3)]

    def test_gaps_widen_span(self):
        assert find_codon_boundaries("AC-GTTA") == [(0, 4), (4, 3)]

    def test_partial_codon_dropped(self):
        assert find_codon_boundaries("AAAC") == [(0, 3)]

    def test_all_gaps(self):
        assert find_codon_boundaries("---") == []


class TestConstrainedNwAlign:
    """Tests for constrained_nw_align."""

    def test_identical(self):
        assert constrained_nw_align("AAACCC", "AAACCC") == ("KP", "KP")

    def test_ungapped_reduces_to_translation(self):
        top, btm = constrained_nw_align("ATGAAACCCGGG", "ATGCAACCCGGA")
        assert (top, btm) == ("MKPG", "MQPG")

    def test_deleted_codon(self):
        top, btm = constrained_nw_align("AAACCCGGG", "AAA---GGG")
        assert (top, btm) == ("KPG", "K-G")

    def test_inserted_codon(self):
        top, btm = constrained_nw_align("AAA---GGG", "AAACCCGGG")
        assert (top, btm) == ("K-G", "KPG")

    def test_equal_lengths(self):
        top, btm = constrained_nw_align("AT-GAAACCC", "ATGAA-ACCC")
        assert len(top) == len(btm)


class TestTallyAlignmentMutations:
    """Tests for tally_alignment_mutations."""

    def test_identical_has_no_mutations(self):
        top, btm = constrained_nw_align("ATGAAACCC", "ATGAAACCC")
        assert tally_alignment_mutations(top, btm) == []

    def test_substitution(self):
        assert tally_alignment_mutations("MKV", "MRV") == ["K2R"]

    def test_substitutions_are_not_merged(self):
        assert tally_alignment_mutations("MKV", "MRL") == ["K2R", "V3L"]

    def test_adjacent_deletions_merge(self):
        assert tally_alignment_mutations("MKVL", "M--L") == ["-2KV"]

    def test_consecutive_insertions_merge(self):
        assert tally_alignment_mutations("M--K", "MAAK") == ["+2AA"]

    def test_mixed(self):
        assert tally_alignment_mutations("MKV-L", "MRV--") == ["K2R", "-4L"]

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError):
            tally_alignment_mutations("MK", "M")

    def test_format(self):
        assert format_mutations(["K2R", "-4L"]) == "K2R,-4L"
        assert format_mutations([]) == ""


class TestMutationTable:
    """Tests for the HTML mutation table."""

    def test_positions_and_rows(self):
        table = MutationTable(["MKVL", "MRVL", "MKVF"])
        assert table.positions == [1, 3]
        assert table.rows == ["KL", "R.", ".F"]

    def test_root_only(self):
        table = MutationTable(["MKVL"])
        assert table.positions == []
        assert table.rows == [""]
        assert "MKVL" in table.to_html()

    def test_html_colors_and_headers(self):
        html = MutationTable(["MKVL", "MRVL"]).to_html([ROOT_COLOR, "#e6194b"])
        assert html.startswith("<!DOCTYPE html>")
        assert "<th><span>2</span></th>" in html
        assert 'style="color:#e6194b"' in html
        assert "<td>R</td>" in html

    def test_wrong_color_count_raises(self):
        with pytest.raises(ValueError):
            MutationTable(["MK", "MR"]).to_html(["#000000"])

    def test_unequal_lengths_raise(self):
        with pytest.raises(ValueError):
            MutationTable(["MK", "M"])
