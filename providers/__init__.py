"""
Collaborator implementations for the clinic availability engine.

1. In-memory vacancy, history, resource and reservation-writer backends
2. A JSON snapshot loader wiring them from a clinic export
"""

from .in_memory import (
    StaticVacancySource,
    InMemoryHistoryProvider,
    InMemoryResourceProvider,
    InMemoryReservationWriter,
    generate_slots
)

from .snapshot import (
    ClinicSnapshot,
    parse_snapshot,
    load_snapshot
)

__all__ = [
    # --- In-Memory Backends ---
    "StaticVacancySource",
    "InMemoryHistoryProvider",
    "InMemoryResourceProvider",
    "InMemoryReservationWriter",
    "generate_slots",

    # --- Snapshot Loading ---
    "ClinicSnapshot",
    "parse_snapshot",
    "load_snapshot",
]
