"""
Collaborator interfaces consumed by the engine.

Storage, REST calls and retry policy belong to the implementations; the
engine only translates their failures into `CollaboratorUnavailableError`.
"""

import logging
from datetime import date, datetime
from typing import Callable, FrozenSet, List, Optional, Protocol, TypeVar

from models import BookingRequest, Room, RoomCapability, RoomPair, Slot, Staff, TreatmentHistoryRecord
from .errors import BookingError, CollaboratorUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VacancySource(Protocol):
    def get_slots(
        self, menu_id: str, date_from: date, date_to: date, granularity_minutes: int
    ) -> Optional[List[Slot]]:
        """Raw candidate slots; None means the source could not answer."""
        ...


class HistoryProvider(Protocol):
    def get_history(self, patient_id: str, since_date: date) -> Optional[List[TreatmentHistoryRecord]]:
        """Past records since `since_date` plus all future records of the patient."""
        ...


class ResourceAvailabilityProvider(Protocol):
    def get_available_rooms(
        self, start: datetime, duration_minutes: int, capability_filter: FrozenSet[RoomCapability]
    ) -> List[Room]:
        ...

    def get_adjacent_room_pairs(self, start: datetime, duration_minutes: int) -> List[RoomPair]:
        ...

    def get_available_staff(self, start: datetime, duration_minutes: int) -> List[Staff]:
        ...


class ReservationWriter(Protocol):
    def write(self, request: BookingRequest) -> str:
        """Persist the booking and return its reservation id."""
        ...


def call_collaborator(name: str, func: Callable[..., Optional[T]], *args, **kwargs) -> T:
    """
    Invoke a collaborator at the I/O boundary.
    Failures and missing answers (None) become CollaboratorUnavailableError.
    """
    try:
        result = func(*args, **kwargs)
    except BookingError:
        raise
    except Exception as exc:
        logger.warning(f"{name} failed: {type(exc).__name__}: {exc}")
        raise CollaboratorUnavailableError(name, f"raised {type(exc).__name__}: {exc}", exc) from exc

    if result is None:
        logger.warning(f"{name} returned no data")
        raise CollaboratorUnavailableError(name, "returned no data")

    return result
