"""
Resolution Trace.

Per-call memory of why candidate slots were dropped. Created at the start
of a resolution and discarded with its result; nothing here outlives a call.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List

from models import Slot
from .constraints import ConstraintViolation


class ResolutionTrace:
    """Collects rejected slots and their violations."""

    def __init__(self):
        self.rejected: List[ConstraintViolation] = []
        self.accepted_count: int = 0
        self._by_datetime: Dict[datetime, List[ConstraintViolation]] = defaultdict(list)

    def record_acceptance(self, slot: Slot) -> None:
        self.accepted_count += 1

    def record_rejection(self, slot: Slot, violation: ConstraintViolation) -> None:
        self.rejected.append(violation)
        self._by_datetime[slot.datetime].append(violation)

    def violations_for(self, slot_datetime: datetime) -> List[ConstraintViolation]:
        return list(self._by_datetime.get(slot_datetime, []))

    def rejections_by_type(self) -> Dict[str, int]:
        summary: Dict[str, int] = defaultdict(int)
        for violation in self.rejected:
            summary[violation.constraint_type] += 1
        return dict(summary)

    def get_rejection_report(self) -> List[Dict[str, Any]]:
        """
        Human-readable list of rejected slots, in slot order.
        One entry per slot with the first reason that blocked it.
        """
        report = []
        for slot_datetime in sorted(self._by_datetime):
            violations = self._by_datetime[slot_datetime]
            report.append({
                "datetime": slot_datetime.isoformat(),
                "constraint_type": violations[0].constraint_type,
                "reason": violations[0].reason,
                "violation_count": len(violations)
            })
        return report
