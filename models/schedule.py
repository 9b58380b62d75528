"""
Schedule data models for the clinic availability engine.

This module defines the inputs and the per-slot output of a resolution:
candidate time slots, the requested date range and the booking request.
"""

from typing import List, Optional, Iterator
from pydantic import BaseModel, Field, ConfigDict, model_validator
from datetime import date as date_type, time as time_type, datetime as datetime_type, timedelta

from .menu import MenuIdentity
from .resource import Room, RoomPair, Staff


class Slot(BaseModel):
    """
    A candidate bookable unit emitted by the vacancy source.
    Frozen: resolvers annotate by copying, never by mutating.
    """

    # --- Core Slot Data ---
    date: date_type = Field(description="Calendar day")
    time: time_type = Field(description="Start time (HH:MM)")
    datetime: datetime_type = Field(description="Combined start")
    duration_minutes: int = Field(default=5, ge=1, description="Vacancy grid granularity")
    available: bool = Field(default=True)

    # --- Resource Annotations (filled by resolvers) ---
    available_rooms: List[Room] = Field(default_factory=list)
    pair_rooms: Optional[RoomPair] = Field(default=None)
    allocated_staff: List[Staff] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, json_schema_extra={
        "example": {
            "date": "2024-06-10",
            "time": "10:30:00",
            "datetime": "2024-06-10T10:30:00",
            "duration_minutes": 5,
            "available": True
        }
    })

    @model_validator(mode='after')
    def validate_consistency(self):
        if self.datetime.date() != self.date or self.datetime.time() != self.time:
            raise ValueError("Slot date/time must match its combined datetime")
        return self

    @classmethod
    def at(cls, start: datetime_type, duration_minutes: int = 5, available: bool = True) -> "Slot":
        """Build a slot from a single datetime."""
        return cls(
            date=start.date(),
            time=start.time(),
            datetime=start,
            duration_minutes=duration_minutes,
            available=available
        )

    @property
    def time_label(self) -> str:
        return self.time.strftime("%H:%M")


class DateRange(BaseModel):
    """Inclusive calendar range of a query."""
    date_from: date_type
    date_to: date_type

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_order(self):
        if self.date_to < self.date_from:
            raise ValueError("date_to cannot be before date_from")
        return self

    @classmethod
    def starting(cls, start: date_type, days: int = 7) -> "DateRange":
        """`days` consecutive days beginning at `start`."""
        if days < 1:
            raise ValueError("A date range covers at least one day")
        return cls(date_from=start, date_to=start + timedelta(days=days - 1))

    @property
    def days(self) -> int:
        return (self.date_to - self.date_from).days + 1

    def dates(self) -> Iterator[date_type]:
        current = self.date_from
        while current <= self.date_to:
            yield current
            current += timedelta(days=1)

    def __contains__(self, day: date_type) -> bool:
        return self.date_from <= day <= self.date_to


class BookingRequest(BaseModel):
    """
    One patient's request for one menu.
    `candidate_datetime` is only needed for validation / commit.
    """
    patient_id: str = Field(min_length=1, description="Patient (visitor) ID")
    menu_id: Optional[str] = Field(default=None)
    menu_name: Optional[str] = Field(default=None)
    candidate_datetime: Optional[datetime_type] = Field(default=None)

    party_size: int = Field(default=1, ge=1, description="Number of patients booking together")
    pair_booking: bool = Field(default=False, description="Require two adjacent rooms")

    include_room_info: bool = Field(default=False, description="Apply the room filter to single resolution")
    granularity_minutes: Optional[int] = Field(default=None, ge=1, description="Vacancy grid step")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_menu_reference(self):
        if not self.menu_id and not self.menu_name:
            raise ValueError("Booking request must reference a menu by id or name")
        return self

    @property
    def menu(self) -> MenuIdentity:
        return MenuIdentity(id=self.menu_id, name=self.menu_name)
