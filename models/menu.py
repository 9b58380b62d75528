"""
Menu data models for the clinic availability engine.

A 'Menu' is a billable treatment offering. The clinic refers to menus by
ID in some places and by display name in others, so identity is modelled
explicitly with both fields and a single matching rule (ID first, then name).
"""

from enum import Enum
from typing import List, Optional, FrozenSet
from pydantic import BaseModel, Field, ConfigDict, model_validator


class RoomCapability(str, Enum):
    """What a room is equipped for."""
    TREATMENT = "Treatment"
    IV = "IV"          # Drip / infusion chair


class MenuIdentity(BaseModel):
    """
    Identifier pair for a menu.
    At least one of `id` / `name` must be present.
    """
    id: Optional[str] = Field(default=None, description="Menu ID (authoritative when present)")
    name: Optional[str] = Field(default=None, description="Display name")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_identity(self):
        if not self.id and not self.name:
            raise ValueError("A menu identity needs an id or a name")
        return self

    def keys(self) -> List[str]:
        """Lookup keys in resolution order: ID first, then name."""
        keys = []
        for key in (self.id, self.name):
            if key and key not in keys:
                keys.append(key)
        return keys

    def matches(self, other: "MenuIdentity") -> bool:
        """
        Same-menu test.
        IDs are compared when both sides carry one; otherwise names are.
        """
        if self.id and other.id:
            return self.id == other.id
        if self.name and other.name:
            return self.name == other.name
        return False

    def label(self) -> str:
        return self.name or self.id or ""


class Menu(BaseModel):
    """A treatment offering from the menu master."""
    id: str = Field(min_length=1, description="Menu ID")
    name: str = Field(min_length=1, description="Display name, e.g. '高濃度ビタミンC点滴'")
    category: str = Field(default="", description="Category label used for room matching")
    duration_minutes: Optional[int] = Field(default=None, ge=5, le=480, description="Chair time for one patient (engine default when unset)")
    is_active: bool = Field(default=True)

    @property
    def identity(self) -> MenuIdentity:
        return MenuIdentity(id=self.id, name=self.name)

    def required_capabilities(
        self,
        iv_markers: FrozenSet[str],
        treatment_markers: FrozenSet[str]
    ) -> FrozenSet[RoomCapability]:
        """
        Derive the room capability set from category / name markers.
        IV wins over general treatment; no marker means any room will do.
        """
        haystacks = (self.category or "", self.name or "")

        if any(marker in text for marker in iv_markers for text in haystacks):
            return frozenset({RoomCapability.IV})

        if any(marker in text for marker in treatment_markers for text in haystacks):
            return frozenset({RoomCapability.TREATMENT})

        return frozenset()

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "MENU001",
            "name": "白玉点滴",
            "category": "点滴",
            "duration_minutes": 60,
            "is_active": True
        }
    })
