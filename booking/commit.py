"""
Guarded commit: validate, confirm the slot is still offered, then write.

Availability answers go stale the moment they are computed. This step
narrows (it cannot close) the window between the last check and the write:
the re-validation, the vacancy re-check and the write run inside one short
per-patient critical section.
"""

import logging
import threading
import weakref
from typing import List, Optional

from models import BookingRequest, CommitOutcome, IssueType, ValidationIssue
from . import config
from .errors import InvalidRequestError
from .providers import ReservationWriter, VacancySource, call_collaborator
from .validator import ReservationValidator

logger = logging.getLogger(__name__)


class PatientLocks:
    """
    One lock per patient, shared by every committer that holds this registry.
    Entries live only while a caller holds the lock.
    """

    def __init__(self):
        self._registry_lock = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()

    def get(self, patient_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(patient_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[patient_id] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)


class BookingCommitter:
    """
    Compare-and-commit at the system boundary.
    Committers sharing a `PatientLocks` registry serialize per patient.
    """

    def __init__(
        self,
        validator: ReservationValidator,
        writer: ReservationWriter,
        vacancy_source: Optional[VacancySource] = None,
        granularity_minutes: int = config.DEFAULT_GRANULARITY_MINUTES,
        locks: Optional[PatientLocks] = None
    ):
        self.validator = validator
        self.writer = writer
        self.vacancy_source = vacancy_source
        self.granularity_minutes = granularity_minutes
        self.locks = locks if locks is not None else PatientLocks()

    def commit(self, request: BookingRequest) -> CommitOutcome:
        """
        Re-validate and write. Constraint failures are a normal outcome
        (committed=False with itemized errors), not an exception.
        """
        if request.candidate_datetime is None:
            raise InvalidRequestError("A booking needs a candidate datetime")

        with self.locks.get(request.patient_id):
            validation = self.validator.validate(request)
            errors: List[ValidationIssue] = list(validation.errors)

            if self.vacancy_source is not None and not self._still_offered(request):
                errors.append(ValidationIssue(
                    type=IssueType.SLOT_UNAVAILABLE,
                    message="This time slot is no longer available",
                    details=[request.candidate_datetime.isoformat()]
                ))

            if errors:
                logger.info(
                    f"Commit refused for patient={request.patient_id}: {[e.type.value for e in errors]}"
                )
                return CommitOutcome(committed=False, errors=errors, validation=validation)

            reservation_id = call_collaborator("ReservationWriter", self.writer.write, request)

        logger.info(f"Committed reservation {reservation_id} for patient={request.patient_id}")
        return CommitOutcome(committed=True, reservation_id=reservation_id, validation=validation)

    def _still_offered(self, request: BookingRequest) -> bool:
        menu = self.validator.catalog.resolve(request.menu)
        day = request.candidate_datetime.date()
        granularity = request.granularity_minutes or self.granularity_minutes

        slots = call_collaborator(
            "VacancySource", self.vacancy_source.get_slots, menu.id, day, day, granularity
        )
        return any(s.datetime == request.candidate_datetime and s.available for s in slots)
