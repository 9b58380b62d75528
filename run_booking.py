"""
Main Execution Script for the Clinic Availability Engine.
Loads a clinic snapshot, then walks through the three call-level operations:
single availability, multi-party availability and commit-time validation.
"""

import os
import sys
import logging
from datetime import datetime, time, timedelta

# Add current directory to path so imports work
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from booking import BookingEngine, BookingError
from models import BookingRequest, DateRange
from providers import InMemoryReservationWriter, load_snapshot

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger("Main")

# --- CONFIGURATION ---
CLINIC_DATA_FILE = os.getenv(
    "CLINIC_DATA_FILE",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "sample_clinic_data.json")
)
# ---------------------


def print_matrix_report(engine: BookingEngine):
    structure = engine.matrix.structure_report()
    quality = engine.matrix.quality_report(engine.catalog.names())

    print("\n" + "=" * 50)
    print("INTERVAL MATRIX")
    print("=" * 50)
    for key, label in engine.matrix.formatted_rules.items():
        print(f"  {key}: {label}")
    print(f"Structure valid: {structure.is_valid}")
    for error in structure.errors:
        print(f"  ! {error}")
    for warning in structure.warnings:
        print(f"  ~ {warning}")
    print(f"Cells: {quality.filled_cells}/{quality.total_cells} filled ({quality.empty_rate}% empty)")
    if quality.needs_sync:
        print(f"Out of sync with menu master: missing={quality.missing_menus}, extra={quality.extra_menus}")


def print_single(engine: BookingEngine, request: BookingRequest, date_range: DateRange):
    result = engine.resolve_single(request, date_range)

    print("\n" + "=" * 50)
    print(f"SINGLE AVAILABILITY: {result.patient_id} / {result.menu_name}")
    print("=" * 50)
    for constraint in result.applied_constraints:
        print(f"  rule {constraint.from_menu} -> {constraint.to_menu}: {constraint.required_days} days "
              f"(from {constraint.last_date.date().isoformat()})")
    print(f"Slots: {result.total_available}, rejected: {result.rejections_by_type}")

    by_day = {}
    for slot in result.slots:
        by_day.setdefault(slot.date, []).append(slot.time_label)
    for day, labels in sorted(by_day.items()):
        print(f"  {day.isoformat()}: {', '.join(labels[:6])}{' ...' if len(labels) > 6 else ''}")


def print_multi_party(engine: BookingEngine, requests, date_range: DateRange):
    result = engine.resolve_multi_party(requests, date_range)

    print("\n" + "=" * 50)
    print(f"MULTI-PARTY AVAILABILITY ({result.mode.value}, {result.party_size} patients)")
    print("=" * 50)
    print(f"Individual counts: {result.individual_counts}")
    if result.no_common_availability:
        print(f"No common availability. {result.message}")
        return

    print(f"Common slots with resources: {result.total_available}")
    for slot in result.slots[:5]:
        rooms = ", ".join(r.name for r in slot.available_rooms)
        staff = ", ".join(s.name for s in slot.allocated_staff)
        print(f"  {slot.datetime.isoformat()} rooms=[{rooms}] staff=[{staff}]")


def print_commit(engine: BookingEngine, request: BookingRequest):
    writer = InMemoryReservationWriter()
    outcome = engine.commit(request, writer)

    print("\n" + "=" * 50)
    print(f"COMMIT: {request.patient_id} / {request.menu_id} at {request.candidate_datetime.isoformat()}")
    print("=" * 50)
    if outcome.committed:
        print(f"Reservation {outcome.reservation_id} written")
    for error in outcome.errors:
        print(f"  x [{error.type.value}] {error.message}")
    if outcome.validation:
        for warning in outcome.validation.warnings:
            print(f"  ~ [{warning.type.value}] {warning.message}")


def main():
    logger.info("Starting Clinic Availability Engine demo...")

    # --- PHASE 1: DATA ACQUISITION ---
    snapshot = load_snapshot(CLINIC_DATA_FILE)
    if snapshot is None:
        logger.error("No clinic data available. Exiting.")
        return

    engine = BookingEngine(
        catalog=snapshot.catalog,
        matrix=snapshot.matrix,
        vacancy_source=snapshot.vacancy_source,
        history_provider=snapshot.history_provider,
        resource_provider=snapshot.resource_provider,
        clock=snapshot.clock
    )
    date_range = DateRange.starting(snapshot.as_of.date(), 7)

    # --- PHASE 2: QUERIES ---
    try:
        print_matrix_report(engine)

        print_single(engine, BookingRequest(patient_id="P001", menu_id="M001", include_room_info=True), date_range)

        print_multi_party(engine, [
            BookingRequest(patient_id="P001", menu_id="M003", pair_booking=True),
            BookingRequest(patient_id="P002", menu_id="M003", pair_booking=True),
        ], date_range)

        # --- PHASE 3: COMMIT ---
        tomorrow = datetime.combine(snapshot.as_of.date() + timedelta(days=1), time(11, 0))
        print_commit(engine, BookingRequest(patient_id="P001", menu_id="M001", candidate_datetime=tomorrow))
        print_commit(engine, BookingRequest(patient_id="P004", menu_id="M004", candidate_datetime=tomorrow))
    except BookingError as e:
        logger.error(f"Demo aborted: {e}")
        return

    print("\nDemo Complete.")


if __name__ == "__main__":
    main()
