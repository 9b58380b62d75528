"""Tests for booking.interval_matrix - parsing, lookup and diagnostics."""

import pytest

from booking import IntervalMatrix, format_interval, normalize_interval
from models import MenuIdentity


class TestNormalizeInterval:
    """Tests for cell text -> day count."""

    @pytest.mark.parametrize("raw, expected", [
        (14, 14),
        ("14", 14),
        (3.0, 3),
        ("4w", 28),
        ("2週", 14),
        ("2週間", 14),
        ("1m", 30),
        ("1ヶ月", 30),
        ("2か月", 60),
        ("14日", 14),
        (" 7 ", 7),
    ])
    def test_parses_day_counts(self, raw, expected):
        """Numbers, week and month notations become day counts."""
        assert normalize_interval(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "要確認", True, float("nan"), float("inf")])
    def test_unreadable_is_none(self, raw):
        """Blank and unreadable cells mean 'no rule'."""
        assert normalize_interval(raw) is None


class TestFormatInterval:
    """Tests for the display form."""

    def test_zero_and_none(self):
        """No interval is shown as unrestricted."""
        assert format_interval(0) == "制限なし"
        assert format_interval(None) == "制限なし"

    def test_weeks_months_days(self):
        """Week multiples first, then month multiples, then plain days."""
        assert format_interval(28) == "4週間"
        assert format_interval(60) == "2ヶ月"
        assert format_interval(10) == "10日"


class TestLookup:
    """Tests for the bidirectional read."""

    def test_reverse_direction_fallback(self):
        """A rule entered as X->Y also applies to Y->X."""
        matrix = IntervalMatrix({("X", "Y"): 14})
        assert matrix.lookup("X", "Y") == 14
        assert matrix.lookup("Y", "X") == 14

    def test_forward_direction_preferred(self):
        """When both directions exist, the requested one wins."""
        matrix = IntervalMatrix({("X", "Y"): 14, ("Y", "X"): 7})
        assert matrix.lookup("X", "Y") == 14
        assert matrix.lookup("Y", "X") == 7

    def test_unknown_pair_is_zero(self):
        """Pairs without a rule are unconstrained."""
        matrix = IntervalMatrix({("X", "Y"): 14})
        assert matrix.lookup("X", "Z") == 0
        assert matrix.lookup("Q", "R") == 0

    def test_non_positive_counts_as_absent(self):
        """Zero and negative cells fall through to the reverse direction."""
        matrix = IntervalMatrix({("X", "Y"): 0, ("Y", "X"): 5, ("X", "Z"): "-3"})
        assert matrix.lookup("X", "Y") == 5
        assert matrix.lookup("X", "Z") == 0

    def test_identity_tries_id_then_name(self):
        """Menu identities match rules keyed by id or by display name."""
        matrix = IntervalMatrix({("Menu X", "M2"): 21})
        source = MenuIdentity(id="M1", name="Menu X")
        target = MenuIdentity(id="M2", name="Menu Y")
        assert matrix.lookup(source, target) == 21
        assert matrix.lookup(target, source) == 21

    def test_unparseable_cell_is_no_rule(self):
        """Unreadable cells never raise on lookup."""
        matrix = IntervalMatrix({("X", "Y"): "要確認"})
        assert matrix.lookup("X", "Y") == 0
        assert len(matrix) == 0


class TestConstruction:
    """Tests for building a matrix from the sheet and from entries."""

    def test_from_grid(self):
        """Header columns are targets, first cell of each row is the source."""
        matrix = IntervalMatrix.from_grid(
            ["X", "Y"],
            [["X", "", "2週"], ["Y", "3", ""]]
        )
        assert matrix.rules == {"X→Y": 14, "Y→X": 3}
        assert matrix.formatted_rules == {"X→Y": "2週間", "Y→X": "3日"}
        assert matrix.menus == ["X", "Y"]

    def test_from_entries_summary(self):
        """Entries without both menus are skipped, notations are counted."""
        matrix, summary = IntervalMatrix.from_entries([
            {"from_menu": "X", "to_menu": "Y", "interval": "4w"},
            {"from_menu": "X", "to_menu": "Z", "interval": 10},
            {"from_menu": "", "to_menu": "Y", "interval": 3},
        ])
        assert summary.total_processed == 3
        assert summary.imported == 2
        assert summary.skipped == 1
        assert summary.normalized_count == 1
        assert matrix.lookup("Y", "X") == 28


class TestStructureReport:
    """Tests for grid layout checks."""

    def test_consistent_grid_is_valid(self):
        """Matching header and side with a clean diagonal passes."""
        matrix = IntervalMatrix.from_grid(["X", "Y"], [["X", "", "7"], ["Y", "", ""]])
        report = matrix.structure_report()
        assert report.is_valid
        assert report.errors == []

    def test_order_mismatch_is_error(self):
        """Rows listed in a different order than columns are reported."""
        matrix = IntervalMatrix.from_grid(["X", "Y"], [["Y", "", ""], ["X", "", ""]])
        report = matrix.structure_report()
        assert not report.is_valid
        assert any("position 1" in e for e in report.errors)

    def test_diagonal_value_is_warning(self):
        """A rule from a menu to itself is flagged but allowed."""
        matrix = IntervalMatrix.from_grid(["X"], [["X", "5"]])
        report = matrix.structure_report()
        assert report.is_valid
        assert len(report.warnings) == 1

    def test_invalid_cells_are_errors(self):
        """Unparseable and negative cells are listed."""
        matrix = IntervalMatrix.from_grid(["X", "Y"], [["X", "", "abc"], ["Y", "-2", ""]])
        report = matrix.structure_report()
        assert not report.is_valid
        assert len(report.errors) == 2


class TestQualityReport:
    """Tests for fill statistics and menu drift."""

    def test_statistics(self):
        """Counts, empty rate, average and maximum are computed over the grid."""
        matrix = IntervalMatrix.from_grid(["X", "Y"], [["X", "", "10"], ["Y", "20", ""]])
        report = matrix.quality_report()
        assert report.total_cells == 4
        assert report.filled_cells == 2
        assert report.empty_cells == 2
        assert report.empty_rate == 50
        assert report.average_interval == 15
        assert report.max_interval == 20

    def test_implausible_and_unparseable(self):
        """Values over a year and unreadable cells are surfaced."""
        matrix = IntervalMatrix.from_grid(["X", "Y"], [["X", "", "400"], ["Y", "?", ""]])
        report = matrix.quality_report()
        assert [issue.value for issue in report.unusual_values] == [400]
        assert len(report.unparseable_cells) == 1

    def test_non_finite_cell_is_unparseable(self):
        """A NaN cell (as json.loads may produce) is reported, not raised."""
        matrix = IntervalMatrix({("Menu A", "Menu B"): float("nan"), ("Menu B", "Menu C"): 7})

        assert matrix.lookup("Menu A", "Menu B") == 0
        assert matrix.lookup("Menu B", "Menu C") == 7
        assert len(matrix.quality_report().unparseable_cells) == 1

    def test_menu_drift(self):
        """Menus missing from the matrix and stale matrix menus need a sync."""
        matrix = IntervalMatrix.from_grid(["X", "Y"], [["X", "", "7"], ["Y", "", ""]])
        report = matrix.quality_report(["X", "Z"])
        assert report.missing_menus == ["Z"]
        assert report.extra_menus == ["Y"]
        assert report.needs_sync
