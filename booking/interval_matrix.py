"""
Treatment Interval Matrix.

Minimum-gap rules between menus, stored directionally (row menu -> column
menu) and read bidirectionally. This module is the ONLY place the
bidirectional fallback lives; the resolvers and the validator all call
`IntervalMatrix.lookup`.

Cells arrive as free text from the administration sheet ("14", "4w",
"2週", "1month", ...). Unparseable cells degrade to "no rule" and are kept
aside for the diagnostic reports; they never raise from the lookup path.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from models import MenuIdentity
from . import config

logger = logging.getLogger(__name__)

RULE_SEPARATOR = "→"

MenuRef = Union[MenuIdentity, str]

# Week / month notations. Months are approximated as 30 days.
_WEEK_PATTERN = re.compile(r"^(\d+)\s*(?:w|週間|週|weeks?)$")
_MONTH_PATTERN = re.compile(r"^(\d+)\s*(?:m|ヶ月|か月|ヵ月|月|months?)$")
_LEADING_INT_PATTERN = re.compile(r"^[+-]?\d+")


def normalize_interval(raw_value: Any) -> Optional[int]:
    """
    Parse a day count from a matrix cell.

    Returns None for blank input and for anything that cannot be read as a
    day count. Callers treat None as "no rule".
    """
    if raw_value is None or isinstance(raw_value, bool):
        return None

    if isinstance(raw_value, int):
        return raw_value
    if isinstance(raw_value, float):
        return int(raw_value) if math.isfinite(raw_value) else None

    text = str(raw_value).strip().lower()
    if not text:
        return None

    match = _WEEK_PATTERN.match(text)
    if match:
        return int(match.group(1)) * 7

    match = _MONTH_PATTERN.match(text)
    if match:
        return int(match.group(1)) * 30

    # Anything else: leading integer, as a spreadsheet would read "14日"
    match = _LEADING_INT_PATTERN.match(text)
    if match:
        return int(match.group(0))

    return None


def format_interval(days: Optional[int]) -> str:
    """Display form of a day count (28 -> '4週間'). Never used in comparisons."""
    if not days:
        return "制限なし"

    if days % 7 == 0:
        return f"{days // 7}週間"

    if days % 30 == 0:
        return f"{days // 30}ヶ月"

    return f"{days}日"


@dataclass
class MatrixCellIssue:
    """A cell that did not yield a usable rule."""
    from_menu: str
    to_menu: str
    value: Any
    reason: str


@dataclass
class MatrixStructureReport:
    """Layout consistency of the administration grid."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class MatrixQualityReport:
    """Fill rate, outliers and menu drift of the matrix."""
    total_cells: int
    filled_cells: int
    empty_rate: int                 # percent
    average_interval: int
    max_interval: int
    unusual_values: List[MatrixCellIssue] = field(default_factory=list)
    unparseable_cells: List[MatrixCellIssue] = field(default_factory=list)
    missing_menus: List[str] = field(default_factory=list)   # in menu master, not in matrix
    extra_menus: List[str] = field(default_factory=list)     # in matrix, not in menu master

    @property
    def empty_cells(self) -> int:
        return self.total_cells - self.filled_cells

    @property
    def needs_sync(self) -> bool:
        return bool(self.missing_menus or self.extra_menus)


@dataclass
class ImportSummary:
    """Outcome of building a matrix from a flat list of entries."""
    total_processed: int = 0
    imported: int = 0
    normalized_count: int = 0
    skipped: int = 0


class IntervalMatrix:
    """
    Read-only snapshot of the interval rules.
    Build it once per resolution (or cache it); never mutate it mid-call.
    """

    def __init__(
        self,
        cells: Optional[Mapping[Tuple[str, str], Any]] = None,
        header_menus: Optional[Sequence[str]] = None,
        side_menus: Optional[Sequence[str]] = None
    ):
        self._raw: Dict[Tuple[str, str], Any] = {}
        self._rules: Dict[Tuple[str, str], int] = {}
        self._unparseable: List[MatrixCellIssue] = []

        for (from_menu, to_menu), value in (cells or {}).items():
            self._load_cell(from_menu, to_menu, value)

        menus_in_rules = self._menus_from_keys()
        self.header_menus: List[str] = list(header_menus) if header_menus is not None else menus_in_rules
        self.side_menus: List[str] = list(side_menus) if side_menus is not None else menus_in_rules

    # --- Construction ---

    @classmethod
    def from_grid(cls, header: Sequence[str], rows: Sequence[Sequence[Any]]) -> "IntervalMatrix":
        """
        Build from the sheet layout: `header` lists the column (to) menus,
        each row is `[from_menu, cell, cell, ...]`.
        """
        cells: Dict[Tuple[str, str], Any] = {}
        side: List[str] = []

        for row in rows:
            if not row or not row[0]:
                continue
            from_menu = str(row[0])
            side.append(from_menu)
            for col_index, to_menu in enumerate(header):
                if not to_menu:
                    continue
                value = row[col_index + 1] if col_index + 1 < len(row) else None
                if value is None or (isinstance(value, str) and not value.strip()):
                    continue
                cells[(from_menu, str(to_menu))] = value

        return cls(cells, header_menus=[str(h) for h in header if h], side_menus=side)

    @classmethod
    def from_entries(cls, entries: Iterable[Mapping[str, Any]]) -> Tuple["IntervalMatrix", ImportSummary]:
        """
        Build from `{"from_menu", "to_menu", "interval"}` entries.
        Entries without both menus are skipped; later entries win.
        """
        summary = ImportSummary()
        cells: Dict[Tuple[str, str], Any] = {}

        for entry in entries:
            summary.total_processed += 1
            from_menu = entry.get("from_menu")
            to_menu = entry.get("to_menu")
            if not from_menu or not to_menu:
                summary.skipped += 1
                continue

            raw = entry.get("interval")
            normalized = normalize_interval(raw)
            if normalized is not None and normalized != raw:
                summary.normalized_count += 1

            cells[(from_menu, to_menu)] = raw
            summary.imported += 1

        logger.info(
            f"Imported {summary.imported} interval entries "
            f"({summary.normalized_count} normalized, {summary.skipped} skipped)"
        )
        return cls(cells), summary

    def _load_cell(self, from_menu: str, to_menu: str, value: Any) -> None:
        if value is None or (isinstance(value, str) and not value.strip()):
            return

        self._raw[(from_menu, to_menu)] = value
        days = normalize_interval(value)

        if days is None:
            issue = MatrixCellIssue(from_menu, to_menu, value, "cannot be read as a day count")
            self._unparseable.append(issue)
            logger.warning(f"Interval cell {from_menu}{RULE_SEPARATOR}{to_menu} = {value!r} ignored: {issue.reason}")
            return

        self._rules[(from_menu, to_menu)] = days

    def _menus_from_keys(self) -> List[str]:
        seen: List[str] = []
        for from_menu, to_menu in self._raw:
            for name in (from_menu, to_menu):
                if name not in seen:
                    seen.append(name)
        return seen

    # --- Hot Path ---

    def lookup(self, from_menu: MenuRef, to_menu: MenuRef) -> int:
        """
        Required gap in days between two menus, 0 when unconstrained.
        Checks from->to first, then to->from.
        """
        return self._directed(from_menu, to_menu) or self._directed(to_menu, from_menu)

    def _directed(self, from_menu: MenuRef, to_menu: MenuRef) -> int:
        for from_key in _keys(from_menu):
            for to_key in _keys(to_menu):
                days = self._rules.get((from_key, to_key))
                if days and days > 0:
                    return days
        return 0

    def format(self, days: Optional[int]) -> str:
        return format_interval(days)

    # --- Introspection ---

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def rules(self) -> Dict[str, int]:
        """Stored rules keyed 'A→B' (directional, as entered)."""
        return {f"{a}{RULE_SEPARATOR}{b}": days for (a, b), days in self._rules.items()}

    @property
    def formatted_rules(self) -> Dict[str, str]:
        return {key: format_interval(days) for key, days in self.rules.items()}

    @property
    def menus(self) -> List[str]:
        names = list(self.header_menus)
        for name in self.side_menus:
            if name not in names:
                names.append(name)
        return names

    # --- Diagnostics (never on the lookup path) ---

    def structure_report(self) -> MatrixStructureReport:
        """Header/side alignment, diagonal values and invalid cells."""
        errors: List[str] = []
        warnings: List[str] = []

        if len(self.header_menus) != len(self.side_menus):
            errors.append(
                f"Row count ({len(self.side_menus)}) does not match column count ({len(self.header_menus)})"
            )

        for position, (header, side) in enumerate(zip(self.header_menus, self.side_menus), start=1):
            if header != side:
                errors.append(f"Menu order differs at position {position}: column '{header}' vs row '{side}'")

        for name in self.side_menus:
            days = self._rules.get((name, name))
            if days:
                warnings.append(f"Diagonal cell for '{name}' is {days} days (expected empty or 0)")

        invalid = [
            f"{issue.from_menu}{RULE_SEPARATOR}{issue.to_menu} = {issue.value!r}"
            for issue in self._unparseable
        ]
        invalid += [
            f"{a}{RULE_SEPARATOR}{b} = {days} (negative)"
            for (a, b), days in self._rules.items() if days < 0
        ]
        # Report the first five, count the rest
        for text in invalid[:5]:
            errors.append(f"Invalid value: {text}")
        if len(invalid) > 5:
            errors.append(f"{len(invalid) - 5} more invalid values")

        return MatrixStructureReport(is_valid=not errors, errors=errors, warnings=warnings)

    def quality_report(self, current_menus: Optional[Iterable[str]] = None) -> MatrixQualityReport:
        """
        Fill statistics, implausible values and drift against the menu master.
        Issues are logged as warnings.
        """
        if self.header_menus and self.side_menus:
            total_cells = len(self.header_menus) * len(self.side_menus)
        else:
            total_cells = len(self._raw)

        filled = len(self._raw)
        values = list(self._rules.values())
        threshold = config.IMPLAUSIBLE_INTERVAL_DAYS

        unusual = [
            MatrixCellIssue(a, b, days, f"interval over {threshold} days")
            for (a, b), days in self._rules.items() if days > threshold
        ]

        missing: List[str] = []
        extra: List[str] = []
        if current_menus is not None:
            current = list(current_menus)
            matrix_menus = self.menus
            missing = [m for m in current if m not in matrix_menus]
            extra = [m for m in matrix_menus if m not in current]

        report = MatrixQualityReport(
            total_cells=total_cells,
            filled_cells=filled,
            empty_rate=round((1 - filled / total_cells) * 100) if total_cells else 0,
            average_interval=round(sum(values) / len(values)) if values else 0,
            max_interval=max(values) if values else 0,
            unusual_values=unusual,
            unparseable_cells=list(self._unparseable),
            missing_menus=missing,
            extra_menus=extra
        )

        for issue in report.unusual_values:
            logger.warning(f"Implausible interval {issue.from_menu}{RULE_SEPARATOR}{issue.to_menu}: {issue.value} days")
        if report.unparseable_cells:
            logger.warning(f"{len(report.unparseable_cells)} interval cells could not be parsed")
        if report.needs_sync:
            logger.warning(f"Interval matrix out of sync with menus: missing={missing}, extra={extra}")

        return report


def _keys(menu: MenuRef) -> List[str]:
    if isinstance(menu, MenuIdentity):
        return menu.keys()
    return [menu] if menu else []
