"""
In-memory collaborators.

Reference implementations of the engine's collaborator interfaces, backed by
plain lists. The demo runner and the test-suite use them; a deployment
replaces them with clients of the reservation system.
"""

import itertools
import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, FrozenSet, Iterable, List, Optional

from models import (
    BookingRequest,
    Occupancy,
    Room,
    RoomCapability,
    RoomPair,
    Slot,
    Staff,
    TreatmentHistoryRecord,
)

logger = logging.getLogger(__name__)


def generate_slots(
    start_day: date,
    days: int,
    open_time: time,
    close_time: time,
    step_minutes: int
) -> List[Slot]:
    """Evenly spaced slots between opening and closing time, every day."""
    slots: List[Slot] = []
    for offset in range(days):
        day = start_day + timedelta(days=offset)
        current = datetime.combine(day, open_time)
        closing = datetime.combine(day, close_time)
        while current < closing:
            slots.append(Slot.at(current, duration_minutes=step_minutes))
            current += timedelta(minutes=step_minutes)
    return slots


class StaticVacancySource:
    """
    Serves a fixed list of slots per menu id.
    `fallback_slots` answer for menus without an explicit entry.
    """

    def __init__(
        self,
        slots_by_menu: Optional[Dict[str, List[Slot]]] = None,
        fallback_slots: Optional[List[Slot]] = None,
        unavailable: bool = False,
        error: Optional[Exception] = None
    ):
        self.slots_by_menu = slots_by_menu or {}
        self.fallback_slots = fallback_slots or []
        self.unavailable = unavailable  # Simulates a source that answers with nothing at all
        self.error = error
        self.calls = 0

    def get_slots(
        self, menu_id: str, date_from: date, date_to: date, granularity_minutes: int
    ) -> Optional[List[Slot]]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.unavailable:
            return None

        slots = self.slots_by_menu.get(menu_id, self.fallback_slots)
        return [s for s in slots if date_from <= s.date <= date_to]


class InMemoryHistoryProvider:
    """Treatment history of every patient, in one list."""

    def __init__(self, records: Iterable[TreatmentHistoryRecord] = ()):
        self.records: List[TreatmentHistoryRecord] = list(records)

    def add(self, record: TreatmentHistoryRecord) -> None:
        self.records.append(record)

    def get_history(self, patient_id: str, since_date: date) -> List[TreatmentHistoryRecord]:
        # Future records are always on or after `since_date`
        return [
            r for r in self.records
            if r.patient_id == patient_id and r.date >= since_date
        ]


class InMemoryResourceProvider:
    """
    Rooms and staff with a list of existing occupancies.
    A resource is free when no occupancy of it overlaps the requested window.
    """

    def __init__(
        self,
        rooms: Iterable[Room] = (),
        staff: Iterable[Staff] = (),
        occupancies: Iterable[Occupancy] = ()
    ):
        self.rooms: List[Room] = list(rooms)
        self.staff: List[Staff] = list(staff)
        self.occupancies: List[Occupancy] = list(occupancies)

    def occupy(self, occupancy: Occupancy) -> None:
        self.occupancies.append(occupancy)

    def _room_is_free(self, room_id: str, start: datetime, end: datetime) -> bool:
        return not any(
            o.room_id == room_id and o.overlaps(start, end) for o in self.occupancies
        )

    def _staff_is_free(self, staff_id: str, start: datetime, end: datetime) -> bool:
        return not any(
            o.staff_id == staff_id and o.overlaps(start, end) for o in self.occupancies
        )

    def get_available_rooms(
        self, start: datetime, duration_minutes: int, capability_filter: FrozenSet[RoomCapability]
    ) -> List[Room]:
        end = start + timedelta(minutes=duration_minutes)
        return [
            room for room in self.rooms
            if room.is_active
            and room.satisfies(capability_filter)
            and self._room_is_free(room.id, start, end)
        ]

    def get_adjacent_room_pairs(self, start: datetime, duration_minutes: int) -> List[RoomPair]:
        """
        Neighbouring rooms of the same adjacency group, both free.
        Within a group, rooms are adjacent in the order they were listed.
        """
        end = start + timedelta(minutes=duration_minutes)
        grouped = [r for r in self.rooms if r.pair_group_id]
        grouped.sort(key=lambda r: r.pair_group_id)

        pairs: List[RoomPair] = []
        for _, members in itertools.groupby(grouped, key=lambda r: r.pair_group_id):
            members = list(members)
            for first, second in zip(members, members[1:]):
                if not (first.is_active and second.is_active):
                    continue
                if self._room_is_free(first.id, start, end) and self._room_is_free(second.id, start, end):
                    pairs.append(RoomPair(first=first, second=second))
        return pairs

    def get_available_staff(self, start: datetime, duration_minutes: int) -> List[Staff]:
        end = start + timedelta(minutes=duration_minutes)
        return [
            member for member in self.staff
            if member.is_active and self._staff_is_free(member.id, start, end)
        ]


class InMemoryReservationWriter:
    """Records written bookings and hands out sequential reservation ids."""

    def __init__(self, prefix: str = "RSV"):
        self.prefix = prefix
        self.written: List[BookingRequest] = []

    def write(self, request: BookingRequest) -> str:
        self.written.append(request)
        reservation_id = f"{self.prefix}{len(self.written):05d}"
        logger.info(f"Wrote reservation {reservation_id} for patient={request.patient_id}")
        return reservation_id
