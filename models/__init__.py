"""
Data models package for the clinic availability engine.

This package exports the four pillars of the data architecture:
1. Demand (Menu, MenuIdentity, BookingRequest)
2. History (TreatmentHistoryRecord, HistoryStatus)
3. Supply (Room, RoomPair, Staff, Occupancy)
4. Output (Slot, results of resolution and validation)
"""

from .menu import (
    Menu,
    MenuIdentity,
    RoomCapability
)

from .history import (
    HistoryStatus,
    TreatmentHistoryRecord
)

from .resource import (
    Room,
    RoomPair,
    Staff,
    Occupancy
)

from .schedule import (
    Slot,
    DateRange,
    BookingRequest
)

from .result import (
    IssueType,
    PartyMode,
    Restriction,
    IntervalCheck,
    SameDayCheck,
    VisitHistory,
    ValidationIssue,
    ValidationResult,
    AppliedConstraint,
    SingleAvailabilityResult,
    MultiPartyResult,
    CommitOutcome
)

__all__ = [
    # --- Demand Models ---
    "Menu",
    "MenuIdentity",
    "RoomCapability",
    "BookingRequest",

    # --- History Models ---
    "HistoryStatus",
    "TreatmentHistoryRecord",

    # --- Resource Models ---
    "Room",
    "RoomPair",
    "Staff",
    "Occupancy",

    # --- Slot Models ---
    "Slot",
    "DateRange",

    # --- Output Models ---
    "IssueType",
    "PartyMode",
    "Restriction",
    "IntervalCheck",
    "SameDayCheck",
    "VisitHistory",
    "ValidationIssue",
    "ValidationResult",
    "AppliedConstraint",
    "SingleAvailabilityResult",
    "MultiPartyResult",
    "CommitOutcome",
]
