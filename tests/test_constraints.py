"""Tests for booking.constraints and booking.catalog helpers."""

from datetime import datetime

import pytest

from booking import MenuNotFoundError
from booking.constraints import day_difference, effective_history, months_before, room_requirement_for
from models import HistoryStatus, Menu, MenuIdentity, RoomCapability

from conftest import NOW, at, record


class TestDayDifference:
    """Tests for whole-day distances."""

    def test_floored(self):
        """Partial days round down, also for negative distances."""
        assert day_difference(datetime(2024, 6, 10, 9), datetime(2024, 6, 3, 10)) == 6
        assert day_difference(datetime(2024, 6, 3, 10), datetime(2024, 6, 10, 9)) == -7
        assert day_difference(datetime(2024, 6, 10, 10), datetime(2024, 6, 3, 10)) == 7


class TestMonthsBefore:
    """Tests for calendar month arithmetic."""

    def test_same_day_of_month(self):
        """The day of month is kept when it exists."""
        assert months_before(datetime(2024, 6, 3, 9), 6) == datetime(2023, 12, 3, 9)

    def test_clamped_to_month_end(self):
        """Days past the end of the target month are clamped."""
        assert months_before(datetime(2024, 3, 31), 1) == datetime(2024, 2, 29)


class TestEffectiveHistory:
    """Tests for which records take part in checks."""

    def test_selection(self):
        """Future non-void and recent completed records are kept, in order."""
        records = [
            record("P1", "A", "Menu A", at(20), HistoryStatus.SCHEDULED),
            record("P1", "A", "Menu A", at(25, month=5)),
            record("P1", "A", "Menu A", at(28, month=5), HistoryStatus.SCHEDULED),
            record("P1", "A", "Menu A", at(21), HistoryStatus.CANCELLED),
            record("P1", "A", "Menu A", datetime(2023, 10, 1)),
        ]

        kept = effective_history(records, NOW, 6)

        assert [r.datetime for r in kept] == [at(25, month=5), at(20)]


class TestRoomRequirement:
    """Tests for deriving room capabilities from a menu."""

    def test_markers(self):
        """IV markers win over treatment markers; no marker means any room."""
        assert room_requirement_for(Menu(id="1", name="白玉点滴")) == frozenset({RoomCapability.IV})
        assert room_requirement_for(Menu(id="2", name="鍼", category="施術")) == frozenset({RoomCapability.TREATMENT})
        assert room_requirement_for(Menu(id="3", name="カウンセリング")) == frozenset()


class TestMenuCatalog:
    """Tests for menu resolution."""

    def test_by_id_and_name(self, catalog):
        """Ids and display names both resolve."""
        assert catalog.resolve("A").name == "Menu A"
        assert catalog.resolve("Menu B").id == "B"

    def test_id_tried_before_name(self, catalog):
        """A stale id falls back to the display name."""
        assert catalog.resolve(MenuIdentity(id="OLD", name="Menu C")).id == "C"

    def test_unknown(self, catalog):
        """Unknown menus raise with the reference in the message."""
        with pytest.raises(MenuNotFoundError, match="Menu not found: nope"):
            catalog.resolve("nope")

    def test_identity_matching(self):
        """Ids decide when both sides have one; names otherwise."""
        assert MenuIdentity(id="A", name="x").matches(MenuIdentity(id="A", name="y"))
        assert not MenuIdentity(id="A", name="x").matches(MenuIdentity(id="B", name="x"))
        assert MenuIdentity(name="x").matches(MenuIdentity(id="B", name="x"))
