"""
Hard Constraint Validation Logic.

This module answers the binary question: "Can Patient P take Menu M at Time T?"
It enforces the clinical rules (minimum gap between treatments, one booking
of a menu per day). The single resolver and the reservation validator both
go through `ConstraintChecker`, so slot filtering and commit-time
validation can never disagree on what a rule means.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date as date_type, datetime, timedelta
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from models import (
    AppliedConstraint,
    HistoryStatus,
    Menu,
    MenuIdentity,
    Restriction,
    RoomCapability,
    Slot,
    TreatmentHistoryRecord,
)
from . import config
from .interval_matrix import IntervalMatrix


@dataclass
class ConstraintViolation:
    """Detailed reason for rejection."""
    constraint_type: str  # "TreatmentInterval", "SameDay", "Room"
    reason: str
    patient_id: str
    slot_datetime: datetime
    details: Dict[str, Any] = field(default_factory=dict)


# Constraint type labels
TREATMENT_INTERVAL = "TreatmentInterval"
SAME_DAY = "SameDay"
ROOM = "Room"


def day_difference(later: datetime, earlier: datetime) -> int:
    """Whole days from `earlier` to `later`, floored (negative if later < earlier)."""
    return (later - earlier) // timedelta(days=1)


def months_before(moment: datetime, months: int) -> datetime:
    """Same wall-clock time `months` calendar months earlier (day clamped to month end)."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def effective_history(
    records: Iterable[TreatmentHistoryRecord],
    now: datetime,
    window_months: int
) -> List[TreatmentHistoryRecord]:
    """
    Records that take part in constraint checks:
    every non-void future record, plus past COMPLETED records inside the window.
    """
    since = months_before(now, window_months)
    kept = []
    for record in records:
        if record.is_void:
            continue
        if record.datetime > now:
            kept.append(record)
        elif record.datetime >= since and record.status == HistoryStatus.COMPLETED:
            kept.append(record)
    kept.sort(key=lambda r: r.datetime)
    return kept


def room_requirement_for(menu: Menu) -> FrozenSet[RoomCapability]:
    """Capability set a menu needs, from the configured name/category markers."""
    return menu.required_capabilities(config.IV_MARKERS, config.TREATMENT_MARKERS)


class ConstraintChecker:
    """
    Validates the clinical constraints of one patient / target menu pair
    against a fixed history snapshot.
    """

    def __init__(
        self,
        matrix: IntervalMatrix,
        target: MenuIdentity,
        patient_id: str,
        history: Iterable[TreatmentHistoryRecord],
        same_day_history: Optional[Iterable[TreatmentHistoryRecord]] = None
    ):
        """
        `history` feeds the interval rules. `same_day_history` (default: `history`)
        feeds the one-per-day rule; it may include past bookings never marked completed.
        """
        self.matrix = matrix
        self.target = target
        self.patient_id = patient_id
        self.history: List[TreatmentHistoryRecord] = sorted(
            (r for r in history if not r.is_void), key=lambda r: r.datetime
        )

        # Pre-compute the rules in force: (record, required_days) with required_days > 0
        self._interval_rules: List[Tuple[TreatmentHistoryRecord, int]] = []
        for record in self.history:
            required = self.matrix.lookup(record.menu, target)
            if required > 0:
                self._interval_rules.append((record, required))

        same_day_source = self.history if same_day_history is None else same_day_history
        self._same_menu_records = sorted(
            (r for r in same_day_source if not r.is_void and r.menu.matches(target)),
            key=lambda r: r.datetime
        )

    def check_slot(self, slot: Slot) -> Optional[ConstraintViolation]:
        """
        Master validation function. Returns None if Valid, Violation object if Invalid.
        """
        # 1. Minimum gap against every history entry (past AND future)
        violation = self.check_interval(slot.datetime)
        if violation: return violation

        # 2. One booking of this menu per calendar day
        violation = self.check_same_day(slot.datetime)
        if violation: return violation

        return None

    def check_interval(self, when: datetime) -> Optional[ConstraintViolation]:
        for record, required in self._interval_rules:
            days_diff = day_difference(when, record.datetime)
            if abs(days_diff) < required:
                return ConstraintViolation(
                    TREATMENT_INTERVAL,
                    f"{record.menu.label()} on {record.date.isoformat()} needs {required} days "
                    f"before {self.target.label()} (only {abs(days_diff)})",
                    self.patient_id,
                    when,
                    {"from_menu": record.menu.label(), "required_days": required, "days_diff": days_diff}
                )
        return None

    def check_same_day(self, when: datetime) -> Optional[ConstraintViolation]:
        conflicts = self.same_day_conflicts(when.date())
        if conflicts:
            first = conflicts[0]
            return ConstraintViolation(
                SAME_DAY,
                f"{self.target.label()} already booked at {first.datetime.strftime('%Y-%m-%d %H:%M')}",
                self.patient_id,
                when,
                {"existing": [r.datetime.isoformat() for r in conflicts]}
            )
        return None

    def same_day_conflicts(self, day: date_type) -> List[TreatmentHistoryRecord]:
        """Non-void records of the target menu on `day`, regardless of time."""
        return [r for r in self._same_menu_records if r.date == day]

    def interval_restrictions(self, when: datetime) -> List[Restriction]:
        """
        One restriction per history entry with a rule against the target,
        in history order, each measured from that entry to `when`.
        """
        restrictions = []
        for record, required in self._interval_rules:
            distance = abs(day_difference(when, record.datetime))
            restrictions.append(Restriction(
                from_menu=record.menu.label(),
                to_menu=self.target.label(),
                last_date=record.date,
                required_interval=required,
                days_elapsed=distance,
                is_available=distance >= required,
                remaining_days=max(0, required - distance)
            ))
        return restrictions

    def applied_constraints(self) -> List[AppliedConstraint]:
        """Every history-vs-target rule currently in force."""
        return [
            AppliedConstraint(
                from_menu=record.menu.label(),
                to_menu=self.target.label(),
                required_days=required,
                last_date=record.datetime
            )
            for record, required in self._interval_rules
        ]
