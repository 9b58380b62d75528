"""
Result models returned by the resolvers and the reservation validator.

Constraint violations are data, not exceptions: every check returns an
itemized, UI-ready structure explaining what blocked a slot or a booking.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, computed_field
from datetime import date as date_type, datetime

from .history import TreatmentHistoryRecord
from .schedule import DateRange, Slot


class IssueType(str, Enum):
    """Machine-readable kind of a validation error / warning."""
    TREATMENT_INTERVAL = "TREATMENT_INTERVAL"
    SAME_DAY_CONSTRAINT = "SAME_DAY_CONSTRAINT"
    SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"
    FIRST_VISIT = "FIRST_VISIT"


class PartyMode(str, Enum):
    """How a multi-party booking is allocated."""
    PAIR = "Pair"      # Two patients, two adjacent rooms
    GROUP = "Group"    # N patients, N rooms + N staff


class Restriction(BaseModel):
    """One interval rule evaluated for a patient / target menu / candidate."""
    from_menu: str
    to_menu: str
    last_date: date_type = Field(description="Date of the history entry the rule was measured from")
    required_interval: int = Field(ge=0)
    days_elapsed: int = Field(ge=0, description="Absolute day distance to the candidate")
    is_available: bool
    remaining_days: int = Field(ge=0)


class IntervalCheck(BaseModel):
    """Outcome of the treatment-interval check at commit time."""
    is_available: bool = True
    last_treatment_date: Optional[date_type] = None
    required_interval: int = 0
    days_elapsed: Optional[int] = None
    restrictive_menu: Optional[str] = None
    restrictions: List[Restriction] = Field(default_factory=list)
    message: str = ""


class SameDayCheck(BaseModel):
    """Outcome of the one-booking-per-menu-per-day check."""
    is_available: bool = True
    existing_reservations: List[TreatmentHistoryRecord] = Field(default_factory=list)
    message: str = ""


class VisitHistory(BaseModel):
    """Informational visit summary over the lookback window."""
    is_first_visit: bool
    last_visit_date: Optional[date_type] = None
    visit_count: int = 0
    menu_specific_visit_count: int = 0


class ValidationIssue(BaseModel):
    """A single error or warning, with details for the UI."""
    type: IssueType
    message: str
    details: List[Any] = Field(default_factory=list)


class ValidationResult(BaseModel):
    """Composite result of `ReservationValidator.validate_reservation`."""
    is_valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)
    visit_history: VisitHistory
    interval_check: IntervalCheck
    same_day_check: SameDayCheck


class AppliedConstraint(BaseModel):
    """An interval rule in force between a history entry and the target menu."""
    from_menu: str
    to_menu: str
    required_days: int
    last_date: datetime


class SingleAvailabilityResult(BaseModel):
    """Slots a single patient can book for a single menu."""
    patient_id: str
    menu_id: str
    menu_name: str
    date_range: DateRange
    slots: List[Slot] = Field(default_factory=list)
    applied_constraints: List[AppliedConstraint] = Field(default_factory=list)
    rejections_by_type: Dict[str, int] = Field(default_factory=dict)

    @computed_field
    @property
    def total_available(self) -> int:
        return len(self.slots)


class MultiPartyResult(BaseModel):
    """Common slots for a party, after room / staff allocation."""
    mode: PartyMode
    party_size: int
    date_range: DateRange
    slots: List[Slot] = Field(default_factory=list)
    no_common_availability: bool = False
    unavailable_patient_ids: List[str] = Field(default_factory=list)
    individual_counts: Dict[str, int] = Field(default_factory=dict)
    message: str = ""

    @computed_field
    @property
    def total_available(self) -> int:
        return len(self.slots)


class CommitOutcome(BaseModel):
    """Result of a guarded validate-then-write."""
    committed: bool
    reservation_id: Optional[str] = None
    errors: List[ValidationIssue] = Field(default_factory=list)
    validation: Optional[ValidationResult] = None
