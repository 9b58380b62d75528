"""
Treatment history models.

Records are built once at the collaborator boundary; the engine never looks
at raw spreadsheet rows.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator
from datetime import datetime as datetime_type, date as date_type

from .menu import MenuIdentity


class HistoryStatus(str, Enum):
    """Lifecycle status of a reservation record."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "noShow"


class TreatmentHistoryRecord(BaseModel):
    """A past or future reservation of one patient."""
    patient_id: str = Field(min_length=1)
    menu_id: Optional[str] = Field(default=None)
    menu_name: Optional[str] = Field(default=None)
    datetime: datetime_type = Field(description="Reservation start")
    status: HistoryStatus = Field(default=HistoryStatus.SCHEDULED)
    duration_minutes: int = Field(default=60, ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_menu_reference(self):
        if not self.menu_id and not self.menu_name:
            raise ValueError("History record must reference a menu by id or name")
        return self

    @property
    def menu(self) -> MenuIdentity:
        return MenuIdentity(id=self.menu_id, name=self.menu_name)

    @property
    def date(self) -> date_type:
        return self.datetime.date()

    @property
    def is_void(self) -> bool:
        """Cancelled and no-show records never take part in constraint checks."""
        return self.status in (HistoryStatus.CANCELLED, HistoryStatus.NO_SHOW)
