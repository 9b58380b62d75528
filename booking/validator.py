"""
Reservation Validation.

The authoritative re-check run immediately before a booking is written.
It assumes nothing about earlier availability queries: history is fetched
again and the same `ConstraintChecker` used by the resolver is applied to
the one candidate datetime.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from models import (
    BookingRequest,
    IntervalCheck,
    IssueType,
    Menu,
    MenuIdentity,
    SameDayCheck,
    TreatmentHistoryRecord,
    ValidationIssue,
    ValidationResult,
    VisitHistory,
)
from . import config
from .catalog import MenuCatalog
from .constraints import ConstraintChecker, effective_history, months_before
from .errors import InvalidRequestError
from .interval_matrix import IntervalMatrix, format_interval
from .providers import HistoryProvider, call_collaborator

logger = logging.getLogger(__name__)


class ReservationValidator:
    """
    Commit-time checks: treatment interval, same-day constraint, visit history.
    Stateless between calls.
    """

    def __init__(
        self,
        catalog: MenuCatalog,
        matrix: IntervalMatrix,
        history_provider: HistoryProvider,
        clock: Callable[[], datetime] = datetime.now,
        history_window_months: int = config.HISTORY_WINDOW_MONTHS,
        visit_lookback_years: int = config.VISIT_HISTORY_LOOKBACK_YEARS
    ):
        self.catalog = catalog
        self.matrix = matrix
        self.history_provider = history_provider
        self.clock = clock
        self.history_window_months = history_window_months
        self.visit_lookback_years = visit_lookback_years

    # --- Public Checks ---

    def check_visit_history(self, patient_id: str, menu_id: Optional[str] = None) -> VisitHistory:
        """First-visit / return-visit summary. Informational only."""
        now = self.clock()
        records = self._fetch_snapshot(patient_id, now)
        target = self.catalog.resolve(menu_id).identity if menu_id else None
        return self._visit_history(records, target, now)

    def validate_treatment_interval(
        self,
        patient_id: str,
        menu_id: Optional[str] = None,
        menu_name: Optional[str] = None,
        reference_datetime: Optional[datetime] = None
    ) -> IntervalCheck:
        """
        Most restrictive violated interval rule for the target menu.
        Measured against `reference_datetime` (the candidate), default now.
        """
        now = self.clock()
        menu = self._resolve_menu(menu_id, menu_name)
        records = self._fetch_snapshot(patient_id, now)
        return self._interval_check(patient_id, menu, records, now, reference_datetime or now)

    def validate_same_day_constraint(
        self,
        patient_id: str,
        menu_id: Optional[str],
        candidate_datetime: datetime,
        menu_name: Optional[str] = None
    ) -> SameDayCheck:
        """Conflicting same-day, same-menu, non-void reservations."""
        now = self.clock()
        menu = self._resolve_menu(menu_id, menu_name)
        records = self._fetch_snapshot(patient_id, now)
        return self._same_day_check(patient_id, menu, records, candidate_datetime)

    def validate_reservation(
        self,
        patient_id: str,
        menu_id: Optional[str],
        candidate_datetime: datetime,
        menu_name: Optional[str] = None
    ) -> ValidationResult:
        """
        Compose the three checks over ONE history snapshot.
        `is_valid` depends on interval and same-day only; first visit is a warning.
        """
        now = self.clock()
        menu = self._resolve_menu(menu_id, menu_name)

        logger.info(
            f"Validating reservation: patient={patient_id}, menu={menu.id}, at {candidate_datetime.isoformat()}"
        )

        records = self._fetch_snapshot(patient_id, now)

        interval_check = self._interval_check(patient_id, menu, records, now, candidate_datetime)
        same_day_check = self._same_day_check(patient_id, menu, records, candidate_datetime)
        visit_history = self._visit_history(records, menu.identity, now)

        errors: List[ValidationIssue] = []
        warnings: List[ValidationIssue] = []

        # 1. Treatment interval
        if not interval_check.is_available:
            errors.append(ValidationIssue(
                type=IssueType.TREATMENT_INTERVAL,
                message=interval_check.message,
                details=[r.model_dump(mode='json') for r in interval_check.restrictions]
            ))

        # 2. One booking per menu per day
        if not same_day_check.is_available:
            errors.append(ValidationIssue(
                type=IssueType.SAME_DAY_CONSTRAINT,
                message=same_day_check.message,
                details=[r.model_dump(mode='json') for r in same_day_check.existing_reservations]
            ))

        # 3. First visit (information for staff)
        if visit_history.is_first_visit:
            warnings.append(ValidationIssue(
                type=IssueType.FIRST_VISIT,
                message="First visit for this patient"
            ))

        result = ValidationResult(
            is_valid=interval_check.is_available and same_day_check.is_available,
            errors=errors,
            warnings=warnings,
            visit_history=visit_history,
            interval_check=interval_check,
            same_day_check=same_day_check
        )

        if result.is_valid:
            logger.info(f"Reservation valid: patient={patient_id}, menu={menu.id}")
        else:
            logger.info(
                f"Reservation rejected: patient={patient_id}, menu={menu.id}, "
                f"errors={[e.type.value for e in errors]}"
            )
        return result

    def validate(self, request: BookingRequest) -> ValidationResult:
        """Call-level entry point taking a BookingRequest."""
        if request.candidate_datetime is None:
            raise InvalidRequestError("Validation needs a candidate datetime")
        return self.validate_reservation(
            request.patient_id, request.menu_id, request.candidate_datetime, request.menu_name
        )

    def available_menus(
        self,
        patient_id: str,
        reference_datetime: Optional[datetime] = None
    ) -> List[Tuple[Menu, IntervalCheck]]:
        """Active catalog menus with the patient's interval status for each."""
        now = self.clock()
        records = self._fetch_snapshot(patient_id, now)
        when = reference_datetime or now

        return [
            (menu, self._interval_check(patient_id, menu, records, now, when))
            for menu in self.catalog if menu.is_active
        ]

    # --- Internals ---

    def _resolve_menu(self, menu_id: Optional[str], menu_name: Optional[str]) -> Menu:
        if not menu_id and not menu_name:
            raise InvalidRequestError("A menu id or name is required")
        return self.catalog.resolve(MenuIdentity(id=menu_id, name=menu_name))

    def _fetch_snapshot(self, patient_id: str, now: datetime) -> List[TreatmentHistoryRecord]:
        """Non-void records since the longer of the two lookback windows."""
        if not patient_id:
            raise InvalidRequestError("A patient id is required")

        visit_since = months_before(now, self.visit_lookback_years * 12)
        interval_since = months_before(now, self.history_window_months)
        since = min(visit_since, interval_since)

        records = call_collaborator(
            "HistoryProvider", self.history_provider.get_history, patient_id, since.date()
        )
        return [r for r in records if not r.is_void]

    def _checker(
        self,
        patient_id: str,
        menu: Menu,
        records: List[TreatmentHistoryRecord],
        now: datetime
    ) -> ConstraintChecker:
        history = effective_history(records, now, self.history_window_months)
        return ConstraintChecker(self.matrix, menu.identity, patient_id, history)

    def _interval_check(
        self,
        patient_id: str,
        menu: Menu,
        records: List[TreatmentHistoryRecord],
        now: datetime,
        when: datetime
    ) -> IntervalCheck:
        restrictions = self._checker(patient_id, menu, records, now).interval_restrictions(when)

        # The binding rule: largest required interval among the violated ones
        binding = None
        for restriction in restrictions:
            if restriction.is_available:
                continue
            if binding is None or restriction.required_interval > binding.required_interval:
                binding = restriction

        if binding is None:
            return IntervalCheck(is_available=True, restrictions=restrictions)

        message = (
            f"{menu.name} needs {format_interval(binding.required_interval)} after {binding.from_menu} "
            f"(last on {binding.last_date.isoformat()}): {binding.remaining_days} more day(s) required"
        )
        return IntervalCheck(
            is_available=False,
            last_treatment_date=binding.last_date,
            required_interval=binding.required_interval,
            days_elapsed=binding.days_elapsed,
            restrictive_menu=binding.from_menu,
            restrictions=restrictions,
            message=message
        )

    def _same_day_check(
        self,
        patient_id: str,
        menu: Menu,
        records: List[TreatmentHistoryRecord],
        candidate_datetime: datetime
    ) -> SameDayCheck:
        # Any non-void record of the menu on that day blocks, whatever its status
        checker = ConstraintChecker(self.matrix, menu.identity, patient_id, records)
        conflicts = checker.same_day_conflicts(candidate_datetime.date())

        if not conflicts:
            return SameDayCheck(is_available=True, message="Available")

        first = conflicts[0]
        message = (
            f"{menu.name} is already booked on {first.datetime.strftime('%Y-%m-%d %H:%M')}. "
            f"Each menu can be booked once per day."
        )
        return SameDayCheck(is_available=False, existing_reservations=conflicts, message=message)

    def _visit_history(
        self,
        records: List[TreatmentHistoryRecord],
        target: Optional[MenuIdentity],
        now: datetime
    ) -> VisitHistory:
        since = months_before(now, self.visit_lookback_years * 12)
        records = [r for r in records if r.datetime >= since]
        if not records:
            return VisitHistory(is_first_visit=True)

        menu_count = sum(1 for r in records if target is not None and r.menu.matches(target))
        return VisitHistory(
            is_first_visit=False,
            last_visit_date=max(r.date for r in records),
            visit_count=len(records),
            menu_specific_visit_count=menu_count
        )
