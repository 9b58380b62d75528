"""
Multi-party availability resolution.

Finds slots where every member of a party is individually bookable, then
allocates rooms (and staff) for the whole party:
1. Pair mode  - two patients, two ADJACENT rooms.
2. Group mode - N patients, N free rooms (any) and N active free staff.

Allocation is first-fit by provider order and places no hold; the commit
step re-validates each booking.
"""

import logging
from typing import Dict, List, Sequence

from models import BookingRequest, DateRange, MultiPartyResult, PartyMode, Slot
from . import config
from .errors import InvalidRequestError
from .providers import ResourceAvailabilityProvider, call_collaborator
from .single import SingleAvailabilityResolver

logger = logging.getLogger(__name__)


def find_common_slots(per_patient_slots: Sequence[Sequence[Slot]]) -> List[Slot]:
    """
    Slots of the first list whose datetime is available in every list.
    Matching is by exact datetime; duplicates in the first list are dropped.
    """
    if not per_patient_slots:
        return []

    available_sets = [
        {slot.datetime for slot in slots if slot.available}
        for slots in per_patient_slots
    ]

    common: List[Slot] = []
    seen = set()
    for slot in per_patient_slots[0]:
        if slot.datetime in seen:
            continue
        if all(slot.datetime in available for available in available_sets):
            common.append(slot)
            seen.add(slot.datetime)
    return common


class MultiPartyAvailabilityResolver:
    """
    Intersects per-patient availability and applies party-level resource rules.
    """

    def __init__(
        self,
        single_resolver: SingleAvailabilityResolver,
        resource_provider: ResourceAvailabilityProvider
    ):
        self.single_resolver = single_resolver
        self.resource_provider = resource_provider

    def resolve(self, requests: Sequence[BookingRequest], date_range: DateRange) -> MultiPartyResult:
        """
        Execute the party pipeline.
        """
        self._validate_party(requests)

        party_size = len(requests)
        pair_mode = party_size == 2 and any(r.pair_booking for r in requests)
        mode = PartyMode.PAIR if pair_mode else PartyMode.GROUP

        logger.info(f"Resolving {mode.value} availability for {party_size} patients")

        # 1. Individual availability (no shared state besides the read-only matrix)
        per_patient: List[List[Slot]] = []
        counts: Dict[str, int] = {}
        for request in requests:
            individual = self.single_resolver.resolve(
                request.model_copy(update={"include_room_info": False}), date_range
            )
            per_patient.append(individual.slots)
            counts[request.patient_id] = individual.total_available

        # 2. Short-circuit: one empty list makes the intersection empty
        blocked = [pid for pid, count in counts.items() if count == 0]
        if blocked:
            logger.info(f"No common availability: no slots for {blocked}")
            return MultiPartyResult(
                mode=mode,
                party_size=party_size,
                date_range=date_range,
                no_common_availability=True,
                unavailable_patient_ids=blocked,
                individual_counts=counts,
                message="No common availability: at least one patient has no bookable slot"
            )

        # 3. Intersection
        common = find_common_slots(per_patient)
        if not common:
            logger.info("No common availability: individual slots do not overlap")
            return MultiPartyResult(
                mode=mode,
                party_size=party_size,
                date_range=date_range,
                no_common_availability=True,
                individual_counts=counts,
                message="No common availability: no time works for every patient"
            )

        # 4. Resource allocation
        duration = self._party_duration(requests)
        if pair_mode:
            slots = self._filter_pair_slots(common, duration)
        else:
            slots = self._filter_group_slots(common, duration, party_size)

        logger.info(f"{mode.value} availability: {len(slots)} of {len(common)} common slots have resources")

        return MultiPartyResult(
            mode=mode,
            party_size=party_size,
            date_range=date_range,
            slots=slots,
            individual_counts=counts,
            message="" if slots else "No common slot has enough rooms/staff for the party"
        )

    def _validate_party(self, requests: Sequence[BookingRequest]) -> None:
        if len(requests) < 2:
            raise InvalidRequestError("A multi-party booking needs at least two patients")

        patient_ids = [r.patient_id for r in requests]
        if len(set(patient_ids)) != len(patient_ids):
            raise InvalidRequestError("Each patient can appear only once in a party")

        # party_size=1 is the single-booking default; anything else must match the party
        declared = {r.party_size for r in requests if r.party_size != 1}
        if declared and declared != {len(requests)}:
            raise InvalidRequestError(
                f"Declared party size {sorted(declared)} does not match {len(requests)} patients"
            )

    def _party_duration(self, requests: Sequence[BookingRequest]) -> int:
        """Longest menu of the party; every room/staff must be free that long."""
        durations = []
        for request in requests:
            menu = self.single_resolver.catalog.resolve(request.menu)
            durations.append(menu.duration_minutes or config.DEFAULT_MENU_DURATION_MINUTES)
        return max(durations)

    def _filter_pair_slots(self, slots: List[Slot], duration: int) -> List[Slot]:
        """Keep slots with two adjacent free rooms; attach the first such pair."""
        kept: List[Slot] = []
        for slot in slots:
            pairs = call_collaborator(
                "ResourceAvailabilityProvider",
                self.resource_provider.get_adjacent_room_pairs,
                slot.datetime, duration
            )
            pair = next((p for p in pairs if p.first.is_active and p.second.is_active), None)
            if pair is None:
                logger.debug(f"Slot {slot.datetime.isoformat()} dropped: no adjacent room pair")
                continue
            kept.append(slot.model_copy(update={
                "pair_rooms": pair,
                "available_rooms": [pair.first, pair.second]
            }))
        return kept

    def _filter_group_slots(self, slots: List[Slot], duration: int, party_size: int) -> List[Slot]:
        """Keep slots with `party_size` free rooms AND `party_size` active free staff."""
        kept: List[Slot] = []
        for slot in slots:
            rooms = call_collaborator(
                "ResourceAvailabilityProvider",
                self.resource_provider.get_available_rooms,
                slot.datetime, duration, frozenset()
            )
            rooms = [r for r in rooms if r.is_active]

            staff = call_collaborator(
                "ResourceAvailabilityProvider",
                self.resource_provider.get_available_staff,
                slot.datetime, duration
            )
            staff = [s for s in staff if s.is_active]

            if len(rooms) < party_size or len(staff) < party_size:
                logger.debug(
                    f"Slot {slot.datetime.isoformat()} dropped: "
                    f"{len(rooms)} rooms / {len(staff)} staff for {party_size} patients"
                )
                continue

            kept.append(slot.model_copy(update={
                "available_rooms": rooms[:party_size],
                "allocated_staff": staff[:party_size]
            }))
        return kept
