"""
Resource data models for the clinic availability engine.

This module defines the 'Supply' side of a booking:
1. Rooms (with capabilities and an optional adjacency group)
2. Staff (active / inactive)
3. Occupancy (existing room/staff usage, consumed by in-memory providers)
"""

from typing import List, Optional, FrozenSet
from pydantic import BaseModel, Field, ConfigDict, model_validator
from datetime import datetime, timedelta

from .menu import RoomCapability


class Room(BaseModel):
    """
    A treatment room.
    Rooms sharing a `pair_group_id` are physically adjacent.
    """
    id: str = Field(description="Unique identifier")
    name: str = Field(min_length=1, description="e.g. 'Room 3'")
    can_treatment: bool = Field(default=True, description="Equipped for general treatments")
    can_iv: bool = Field(default=False, description="Equipped for IV drips")
    pair_group_id: Optional[str] = Field(default=None, description="Adjacency group")
    max_capacity: int = Field(default=1, ge=1)
    is_active: bool = Field(default=True)

    model_config = ConfigDict(frozen=True, json_schema_extra={
        "example": {
            "id": "room_01",
            "name": "Room 1",
            "can_treatment": True,
            "can_iv": True,
            "pair_group_id": "pair_A",
            "is_active": True
        }
    })

    @property
    def capabilities(self) -> FrozenSet[RoomCapability]:
        caps = set()
        if self.can_treatment:
            caps.add(RoomCapability.TREATMENT)
        if self.can_iv:
            caps.add(RoomCapability.IV)
        return frozenset(caps)

    def satisfies(self, required: FrozenSet[RoomCapability]) -> bool:
        """An empty requirement is satisfied by any room."""
        if not required:
            return True
        return bool(self.capabilities & required)


class RoomPair(BaseModel):
    """Two adjacent rooms allocated together for a pair booking."""
    first: Room
    second: Room

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_distinct(self):
        if self.first.id == self.second.id:
            raise ValueError("A room pair needs two different rooms")
        return self

    @property
    def room_ids(self) -> List[str]:
        return [self.first.id, self.second.id]


class Staff(BaseModel):
    """A practitioner who can attend one patient at a time."""
    id: str = Field(description="Unique identifier")
    name: str = Field(min_length=1)
    is_active: bool = Field(default=True, description="Inactive staff are never allocated")

    model_config = ConfigDict(frozen=True)


class Occupancy(BaseModel):
    """An existing use of a room and/or a staff member."""
    start: datetime
    duration_minutes: int = Field(default=60, ge=1)
    room_id: Optional[str] = Field(default=None)
    staff_id: Optional[str] = Field(default=None)

    model_config = ConfigDict(frozen=True)

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap: StartA < EndB and StartB < EndA."""
        return self.start < end and start < self.end
