"""
Single-patient availability resolution.

Raw vacancy slots for one menu are filtered through the patient's
constraints (interval, same-day) and, on request, through room availability.
The computation is read-only: inputs are never mutated, annotated slots are
copies.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from models import BookingRequest, DateRange, Menu, Slot, SingleAvailabilityResult, TreatmentHistoryRecord
from . import config
from .catalog import MenuCatalog
from .constraints import ROOM, ConstraintChecker, ConstraintViolation, effective_history, months_before, room_requirement_for
from .errors import InvalidRequestError
from .interval_matrix import IntervalMatrix
from .providers import HistoryProvider, ResourceAvailabilityProvider, VacancySource, call_collaborator
from .state import ResolutionTrace

logger = logging.getLogger(__name__)


class SingleAvailabilityResolver:
    """
    Computes the bookable slots of one patient for one menu.
    """

    def __init__(
        self,
        catalog: MenuCatalog,
        matrix: IntervalMatrix,
        vacancy_source: VacancySource,
        history_provider: HistoryProvider,
        resource_provider: Optional[ResourceAvailabilityProvider] = None,
        clock: Callable[[], datetime] = datetime.now,
        history_window_months: int = config.HISTORY_WINDOW_MONTHS
    ):
        self.catalog = catalog
        self.matrix = matrix
        self.vacancy_source = vacancy_source
        self.history_provider = history_provider
        self.resource_provider = resource_provider
        self.clock = clock
        self.history_window_months = history_window_months

    def resolve(self, request: BookingRequest, date_range: DateRange) -> SingleAvailabilityResult:
        """
        Execute the filtering pipeline for one request.
        """
        now = self.clock()

        # 1. Identify the menu (hard stop when unknown)
        menu = self.catalog.resolve(request.menu)
        check_date_range(date_range, now)

        logger.info(
            f"Resolving availability: patient={request.patient_id}, menu={menu.id} ({menu.name}), "
            f"{date_range.date_from} - {date_range.date_to}"
        )

        # 2. Fetch raw vacancies and the patient's history
        granularity = request.granularity_minutes or config.DEFAULT_GRANULARITY_MINUTES
        raw_slots = call_collaborator(
            "VacancySource",
            self.vacancy_source.get_slots,
            menu.id, date_range.date_from, date_range.date_to, granularity
        )
        records = self.fetch_history(request.patient_id, now)

        # 3. Constraint filters (interval + same-day)
        slots, checker, trace = self.filter_slots(request.patient_id, menu, raw_slots, records, date_range)

        # 4. Room filter (optional)
        if request.include_room_info:
            slots = self._filter_by_rooms(slots, menu, request.patient_id, trace)

        logger.info(
            f"Availability for patient={request.patient_id}, menu={menu.id}: "
            f"{len(slots)} of {len(raw_slots)} slots kept"
        )

        return SingleAvailabilityResult(
            patient_id=request.patient_id,
            menu_id=menu.id,
            menu_name=menu.name,
            date_range=date_range,
            slots=slots,
            applied_constraints=checker.applied_constraints(),
            rejections_by_type=trace.rejections_by_type()
        )

    def fetch_history(self, patient_id: str, now: datetime) -> List[TreatmentHistoryRecord]:
        """Non-void records of the patient since the start of the history window."""
        since = months_before(now, self.history_window_months)
        records = call_collaborator(
            "HistoryProvider", self.history_provider.get_history, patient_id, since.date()
        )
        return [r for r in records if not r.is_void]

    def filter_slots(
        self,
        patient_id: str,
        menu: Menu,
        raw_slots: List[Slot],
        history: List[TreatmentHistoryRecord],
        date_range: Optional[DateRange] = None
    ) -> Tuple[List[Slot], ConstraintChecker, ResolutionTrace]:
        """
        Apply interval and same-day constraints to already-fetched slots.
        Pure with respect to its inputs.

        Interval rules use the effective history (future bookings and recent
        completed treatments). The one-per-day rule uses every non-void record,
        matching the commit-time validator.
        """
        effective = effective_history(history, self.clock(), self.history_window_months)
        checker = ConstraintChecker(self.matrix, menu.identity, patient_id, effective, same_day_history=history)
        trace = ResolutionTrace()
        kept: List[Slot] = []

        for slot in raw_slots:
            if not slot.available:
                continue
            if date_range is not None and slot.date not in date_range:
                continue

            violation = checker.check_slot(slot)
            if violation is not None:
                logger.debug(f"Slot {slot.datetime.isoformat()} rejected: {violation.reason}")
                trace.record_rejection(slot, violation)
                continue

            trace.record_acceptance(slot)
            kept.append(slot)

        return kept, checker, trace

    def _filter_by_rooms(
        self,
        slots: List[Slot],
        menu: Menu,
        patient_id: str,
        trace: ResolutionTrace
    ) -> List[Slot]:
        """Keep slots with at least one suitable free room; attach the rooms."""
        if self.resource_provider is None:
            raise InvalidRequestError("Room information requested but no resource provider is configured")

        required = room_requirement_for(menu)
        duration = menu.duration_minutes or config.DEFAULT_MENU_DURATION_MINUTES
        annotated: List[Slot] = []

        for slot in slots:
            rooms = call_collaborator(
                "ResourceAvailabilityProvider",
                self.resource_provider.get_available_rooms,
                slot.datetime, duration, required
            )
            rooms = [r for r in rooms if r.is_active and r.satisfies(required)]

            if not rooms:
                violation = ConstraintViolation(
                    ROOM,
                    f"No free room for {menu.name} ({duration} min)",
                    patient_id,
                    slot.datetime,
                    {"required": sorted(c.value for c in required)}
                )
                logger.debug(f"Slot {slot.datetime.isoformat()} rejected: {violation.reason}")
                trace.record_rejection(slot, violation)
                continue

            annotated.append(slot.model_copy(update={"available_rooms": rooms}))

        return annotated


def check_date_range(date_range: DateRange, now: datetime) -> None:
    """Reject past start dates and ranges longer than the configured maximum."""
    if date_range.date_from < now.date():
        raise InvalidRequestError(f"Start date {date_range.date_from} is in the past")
    if date_range.days > config.MAX_DATE_RANGE_DAYS:
        raise InvalidRequestError(
            f"Date range of {date_range.days} days exceeds the maximum of {config.MAX_DATE_RANGE_DAYS}"
        )
