"""
Shared pytest fixtures for the availability engine tests.

All tests run against a fixed clock (Monday 2024-06-03 09:00) and
in-memory collaborators; nothing touches the network or the filesystem.
"""

from datetime import datetime, time, timedelta

import pytest

from booking import (
    IntervalMatrix,
    MenuCatalog,
    MultiPartyAvailabilityResolver,
    ReservationValidator,
    SingleAvailabilityResolver,
)
from models import HistoryStatus, Menu, Room, Staff, TreatmentHistoryRecord
from providers import (
    InMemoryHistoryProvider,
    InMemoryResourceProvider,
    StaticVacancySource,
    generate_slots,
)

NOW = datetime(2024, 6, 3, 9, 0)


def at(day: int, hour: int = 10, minute: int = 0, month: int = 6) -> datetime:
    """Shorthand for a 2024 datetime."""
    return datetime(2024, month, day, hour, minute)


def record(patient_id, menu_id, menu_name, when, status=HistoryStatus.COMPLETED):
    return TreatmentHistoryRecord(
        patient_id=patient_id,
        menu_id=menu_id,
        menu_name=menu_name,
        datetime=when,
        status=status
    )


# ============================================================================
# REFERENCE DATA
# ============================================================================


@pytest.fixture
def clock():
    """Fixed 'now'."""
    return lambda: NOW


@pytest.fixture
def menus():
    return [
        Menu(id="A", name="Menu A", category="点滴", duration_minutes=60),
        Menu(id="B", name="Menu B", category="施術", duration_minutes=30),
        Menu(id="C", name="Menu C", duration_minutes=30),
        Menu(id="D", name="Menu D", is_active=False),
    ]


@pytest.fixture
def catalog(menus):
    return MenuCatalog(menus)


@pytest.fixture
def matrix():
    """A->A needs 14 days, B->A needs 10 days (read both ways)."""
    return IntervalMatrix({
        ("Menu A", "Menu A"): 14,
        ("Menu B", "Menu A"): "10",
    })


# ============================================================================
# COLLABORATORS
# ============================================================================


@pytest.fixture
def vacancy_source():
    """10:00 and 11:00 every day for 40 days from NOW."""
    slots = generate_slots(NOW.date(), 40, time(10, 0), time(12, 0), 60)
    return StaticVacancySource(fallback_slots=slots)


@pytest.fixture
def history_provider():
    return InMemoryHistoryProvider()


@pytest.fixture
def rooms():
    return [
        Room(id="room_01", name="Room 1", can_iv=True, pair_group_id="pair_A"),
        Room(id="room_02", name="Room 2", can_iv=True, pair_group_id="pair_A"),
        Room(id="room_03", name="Room 3"),
        Room(id="room_04", name="Room 4", can_iv=True, is_active=False),
    ]


@pytest.fixture
def staff():
    return [
        Staff(id="s1", name="Sato"),
        Staff(id="s2", name="Suzuki"),
        Staff(id="s3", name="Takahashi"),
        Staff(id="s4", name="Tanaka", is_active=False),
    ]


@pytest.fixture
def resource_provider(rooms, staff):
    return InMemoryResourceProvider(rooms, staff)


# ============================================================================
# ENGINE COMPONENTS
# ============================================================================


@pytest.fixture
def resolver(catalog, matrix, vacancy_source, history_provider, resource_provider, clock):
    return SingleAvailabilityResolver(
        catalog, matrix, vacancy_source, history_provider,
        resource_provider=resource_provider, clock=clock
    )


@pytest.fixture
def multi_resolver(resolver, resource_provider):
    return MultiPartyAvailabilityResolver(resolver, resource_provider)


@pytest.fixture
def validator(catalog, matrix, history_provider, clock):
    return ReservationValidator(catalog, matrix, history_provider, clock=clock)


@pytest.fixture
def days_ago():
    return lambda n: NOW - timedelta(days=n)
