"""
Clinic snapshot loader.

Reads a JSON export of the clinic (menu master, interval sheet, reservations,
rooms, staff, opening hours) and rehydrates it into pydantic models and
in-memory collaborators. Invalid items are skipped with a warning so one bad
row does not sink the whole snapshot.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from booking import IntervalMatrix, MenuCatalog
from models import Menu, Occupancy, Room, Slot, Staff, TreatmentHistoryRecord
from .in_memory import (
    InMemoryHistoryProvider,
    InMemoryResourceProvider,
    StaticVacancySource,
    generate_slots,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


@dataclass
class ClinicSnapshot:
    """Everything the engine needs, frozen at `as_of`."""
    as_of: datetime
    catalog: MenuCatalog
    matrix: IntervalMatrix
    vacancy_source: StaticVacancySource
    history_provider: InMemoryHistoryProvider
    resource_provider: InMemoryResourceProvider
    skipped: Dict[str, int] = field(default_factory=dict)

    def clock(self) -> datetime:
        return self.as_of


def _parse_items(items: List[Dict[str, Any]], model_class: Type[M], label: str, skipped: Dict[str, int]) -> List[M]:
    valid_items = []
    for i, item in enumerate(items):
        try:
            valid_items.append(model_class(**item))
        except (TypeError, ValidationError) as e:
            logger.warning(f"Skipping invalid {label} item {i}: {e}")
            skipped[label] = skipped.get(label, 0) + 1
    return valid_items


def _build_matrix(data: Dict[str, Any]) -> IntervalMatrix:
    """Grid layout ('interval_matrix') wins over a flat entry list ('interval_entries')."""
    grid = data.get("interval_matrix")
    if grid:
        return IntervalMatrix.from_grid(grid.get("header", []), grid.get("rows", []))

    entries = data.get("interval_entries")
    if entries:
        matrix, _ = IntervalMatrix.from_entries(entries)
        return matrix

    logger.warning("Snapshot has no interval rules; every menu pair is unconstrained")
    return IntervalMatrix()


def _build_vacancies(data: Dict[str, Any], as_of: datetime, skipped: Dict[str, int]) -> StaticVacancySource:
    """
    Explicit per-menu slots ('vacancies') plus generated opening-hours slots
    ('opening_hours') for every other menu.
    """
    slots_by_menu: Dict[str, List[Slot]] = {}
    for menu_id, items in (data.get("vacancies") or {}).items():
        slots_by_menu[menu_id] = _parse_items(items, Slot, "vacancy", skipped)

    fallback: List[Slot] = []
    hours = data.get("opening_hours")
    if hours:
        fallback = generate_slots(
            start_day=as_of.date(),
            days=int(hours.get("days", 14)),
            open_time=time.fromisoformat(hours.get("open", "10:00")),
            close_time=time.fromisoformat(hours.get("close", "18:00")),
            step_minutes=int(hours.get("step_minutes", 30))
        )

    return StaticVacancySource(slots_by_menu=slots_by_menu, fallback_slots=fallback)


def parse_snapshot(data: Dict[str, Any]) -> ClinicSnapshot:
    """Build a snapshot from already-decoded JSON."""
    skipped: Dict[str, int] = {}
    as_of = datetime.fromisoformat(data["as_of"]) if data.get("as_of") else datetime.now()

    # 1. Reference data
    menus = _parse_items(data.get("menus", []), Menu, "menu", skipped)
    matrix = _build_matrix(data)

    # 2. Patient history
    history = _parse_items(data.get("history", []), TreatmentHistoryRecord, "history", skipped)

    # 3. Supply
    rooms = _parse_items(data.get("rooms", []), Room, "room", skipped)
    staff = _parse_items(data.get("staff", []), Staff, "staff", skipped)
    occupancies = _parse_items(data.get("occupancies", []), Occupancy, "occupancy", skipped)

    snapshot = ClinicSnapshot(
        as_of=as_of,
        catalog=MenuCatalog(menus),
        matrix=matrix,
        vacancy_source=_build_vacancies(data, as_of, skipped),
        history_provider=InMemoryHistoryProvider(history),
        resource_provider=InMemoryResourceProvider(rooms, staff, occupancies),
        skipped=skipped
    )

    logger.info(
        f"Snapshot as of {as_of.isoformat()}: {len(menus)} menus, {len(matrix)} interval rules, "
        f"{len(history)} history records, {len(rooms)} rooms, {len(staff)} staff"
    )
    return snapshot


def load_snapshot(filename: str) -> Optional[ClinicSnapshot]:
    """
    Load a snapshot file. Returns None when the file is missing or not JSON.
    """
    try:
        with open(filename, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.warning(f"Snapshot file {filename} not found or invalid: {e}")
        return None

    logger.info(f"Loading clinic snapshot from {filename}...")
    return parse_snapshot(data)
