"""
Engine configuration.

Tunables live here as module constants; each can be overridden from the
environment so a deployment can adjust windows without a code change.
"""

import os


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _markers_env(name: str, default: str) -> frozenset:
    raw = os.getenv(name, default)
    return frozenset(m.strip() for m in raw.split(",") if m.strip())


# --- History Windows ---
HISTORY_WINDOW_MONTHS = _int_env("BOOKING_HISTORY_WINDOW_MONTHS", 6)    # Completed treatments looked back on
VISIT_HISTORY_LOOKBACK_YEARS = _int_env("BOOKING_VISIT_LOOKBACK_YEARS", 2)

# --- Query Shape ---
DEFAULT_DATE_RANGE_DAYS = _int_env("BOOKING_DATE_RANGE_DAYS", 7)
MAX_DATE_RANGE_DAYS = _int_env("BOOKING_MAX_DATE_RANGE_DAYS", 62)
DEFAULT_GRANULARITY_MINUTES = _int_env("BOOKING_GRANULARITY_MINUTES", 5)
DEFAULT_MENU_DURATION_MINUTES = _int_env("BOOKING_MENU_DURATION_MINUTES", 60)

# --- Matrix Data Quality ---
IMPLAUSIBLE_INTERVAL_DAYS = _int_env("BOOKING_IMPLAUSIBLE_INTERVAL_DAYS", 365)

# --- Room Matching ---
# Substrings of a menu's category / name that select a room capability
IV_MARKERS = _markers_env("BOOKING_IV_MARKERS", "点滴")
TREATMENT_MARKERS = _markers_env("BOOKING_TREATMENT_MARKERS", "施術")
