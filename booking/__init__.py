"""
The clinic availability engine.

1. IntervalMatrix / MenuCatalog - read-only reference data
2. SingleAvailabilityResolver / MultiPartyAvailabilityResolver - slot queries
3. ReservationValidator / BookingCommitter - commit-time checks and guarded write
4. BookingEngine - facade wiring all of the above
"""

from .errors import (
    BookingError,
    InvalidRequestError,
    MenuNotFoundError,
    CollaboratorUnavailableError
)

from .interval_matrix import (
    IntervalMatrix,
    ImportSummary,
    MatrixQualityReport,
    MatrixStructureReport,
    normalize_interval,
    format_interval
)

from .catalog import MenuCatalog
from .constraints import ConstraintChecker, ConstraintViolation
from .single import SingleAvailabilityResolver
from .multi_party import MultiPartyAvailabilityResolver, find_common_slots
from .validator import ReservationValidator
from .commit import BookingCommitter, PatientLocks
from .engine import BookingEngine

__all__ = [
    # --- Errors ---
    "BookingError",
    "InvalidRequestError",
    "MenuNotFoundError",
    "CollaboratorUnavailableError",

    # --- Reference Data ---
    "IntervalMatrix",
    "ImportSummary",
    "MatrixQualityReport",
    "MatrixStructureReport",
    "normalize_interval",
    "format_interval",
    "MenuCatalog",

    # --- Resolution ---
    "ConstraintChecker",
    "ConstraintViolation",
    "SingleAvailabilityResolver",
    "MultiPartyAvailabilityResolver",
    "find_common_slots",

    # --- Validation & Commit ---
    "ReservationValidator",
    "BookingCommitter",
    "PatientLocks",
    "BookingEngine",
]
