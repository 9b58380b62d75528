"""
The Clinic Booking Engine.

Facade over the availability pipeline. It exposes the three call-level
operations callers use:
1. resolve_single      - bookable slots for one patient and one menu.
2. resolve_multi_party - common slots for a party, with room/staff allocation.
3. validate            - authoritative commit-time re-check of one candidate.
plus `commit`, which runs `validate` and the write in one guarded step.

The engine holds read-only snapshots (menu catalog, interval matrix) and
collaborator handles; it keeps no state between calls.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from models import (
    BookingRequest,
    CommitOutcome,
    DateRange,
    MultiPartyResult,
    SingleAvailabilityResult,
    ValidationResult,
)
from . import config
from .catalog import MenuCatalog
from .commit import BookingCommitter, PatientLocks
from .interval_matrix import IntervalMatrix
from .multi_party import MultiPartyAvailabilityResolver
from .providers import HistoryProvider, ReservationWriter, ResourceAvailabilityProvider, VacancySource
from .single import SingleAvailabilityResolver
from .validator import ReservationValidator

logger = logging.getLogger(__name__)


class BookingEngine:
    """
    Main availability engine.
    Ingests reference data (menus, matrix) and collaborators, answers queries.
    """

    def __init__(
        self,
        catalog: MenuCatalog,
        matrix: IntervalMatrix,
        vacancy_source: VacancySource,
        history_provider: HistoryProvider,
        resource_provider: Optional[ResourceAvailabilityProvider] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.catalog = catalog
        self.matrix = matrix
        self.vacancy_source = vacancy_source
        self.clock = clock

        # Initialize Helpers
        self.single = SingleAvailabilityResolver(
            catalog, matrix, vacancy_source, history_provider,
            resource_provider=resource_provider, clock=clock
        )
        self.multi_party = (
            MultiPartyAvailabilityResolver(self.single, resource_provider)
            if resource_provider is not None else None
        )
        self.validator = ReservationValidator(catalog, matrix, history_provider, clock=clock)

        # Shared by every committer of this engine
        self.patient_locks = PatientLocks()

    def default_range(self) -> DateRange:
        return DateRange.starting(self.clock().date(), config.DEFAULT_DATE_RANGE_DAYS)

    def resolve_single(
        self,
        request: BookingRequest,
        date_range: Optional[DateRange] = None
    ) -> SingleAvailabilityResult:
        return self.single.resolve(request, date_range or self.default_range())

    def resolve_multi_party(
        self,
        requests: Sequence[BookingRequest],
        date_range: Optional[DateRange] = None
    ) -> MultiPartyResult:
        if self.multi_party is None:
            raise RuntimeError("Multi-party resolution needs a resource provider")
        return self.multi_party.resolve(requests, date_range or self.default_range())

    def validate(self, request: BookingRequest) -> ValidationResult:
        return self.validator.validate(request)

    def committer(self, writer: ReservationWriter) -> BookingCommitter:
        """A commit guard bound to this engine's validator and vacancy source."""
        return BookingCommitter(
            self.validator, writer, vacancy_source=self.vacancy_source, locks=self.patient_locks
        )

    def commit(self, request: BookingRequest, writer: ReservationWriter) -> CommitOutcome:
        return self.committer(writer).commit(request)
