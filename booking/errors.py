"""
Exception hierarchy for the booking engine.

Only input problems and collaborator failures raise. Constraint violations
are returned as data (see `booking.constraints.ConstraintViolation` and
`models.ValidationIssue`).
"""

from typing import Optional


class BookingError(Exception):
    """Base class for all engine errors."""


class InvalidRequestError(BookingError, ValueError):
    """Malformed input: missing identifiers, bad date range, too few parties."""


class MenuNotFoundError(InvalidRequestError):
    """The requested menu is not in the catalog."""

    def __init__(self, menu_ref: str):
        super().__init__(f"Menu not found: {menu_ref}")
        self.menu_ref = menu_ref


class CollaboratorUnavailableError(BookingError):
    """
    A collaborator (vacancy, history or resource source) failed or returned
    no data. Never to be confused with a rule violation.
    """

    def __init__(self, collaborator: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f"Could not determine availability: {collaborator} {reason}")
        self.collaborator = collaborator
        self.reason = reason
        self.cause = cause
