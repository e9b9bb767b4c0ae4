"""Resolve which billed class lines of an invoice are in scope.

The resolver drops refill/top-up lines, orders the remaining lines
chronologically (undated lines last, original order kept among them) and
then applies the invoice coverage policy: either a cap on cumulative hours
or, when no cap is set, an end-date cutoff. The cap walks the sorted lines
and stops at the first line that would overflow it, so the result is always
a chronological prefix.

Nothing here raises for malformed lines; bad dates sort last and bad
durations count as zero minutes.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Literal

from tutorbill.app.core.logging_config import get_logger
from tutorbill.app.core.money import MINUTES_PER_HOUR, ZERO, to_decimal
from tutorbill.app.core.time import end_of_day, parse_datetime
from tutorbill.app.services.records import mapping_items, mapping_or_empty

logger = get_logger(__name__)

REFILL_LINE_PATTERN = re.compile(r"refill|top\s?-?up", re.IGNORECASE)

IDENTITY_KEYS = ("identity", "class_id", "lesson_id")
DATE_KEYS = ("date", "scheduled_date")
DURATION_KEYS = ("duration_minutes", "duration", "minutes")

EntrySource = Literal["static", "dynamic", "dynamic_declared"]

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class ClassEntry:
    item: Mapping
    timestamp: datetime | None
    minutes: Decimal

    @property
    def hours(self) -> Decimal:
        return self.minutes / MINUTES_PER_HOUR


@dataclass(frozen=True)
class ResolvedEntries:
    """In-scope class entries plus their aggregate duration.

    ``total_minutes``/``total_hours`` are None only when a dynamic list fell
    back to totals it never declared.
    """

    entries: tuple[ClassEntry, ...] = ()
    total_minutes: Decimal | None = ZERO
    total_hours: Decimal | None = ZERO
    source: EntrySource = "static"

    @property
    def items(self) -> list[Mapping]:
        return [entry.item for entry in self.entries]


@dataclass(frozen=True)
class BillingWindow:
    start: datetime | None = None
    end: datetime | None = None


def has_identity(item: Mapping) -> bool:
    return any(item.get(key) for key in IDENTITY_KEYS)


def is_refill_line(item) -> bool:
    """True for non-class lines (hour refills, top-ups) that must never count as classes."""
    if not isinstance(item, Mapping) or has_identity(item):
        return False
    description = item.get("description")
    if not isinstance(description, str):
        return False
    return REFILL_LINE_PATTERN.search(description) is not None


def item_minutes(item: Mapping) -> Decimal:
    minutes = None
    for key in DURATION_KEYS:
        minutes = to_decimal(item.get(key))
        if minutes is not None:
            break
    if minutes is None or minutes <= 0:
        return ZERO
    return minutes


def item_timestamp(item: Mapping) -> datetime | None:
    for key in DATE_KEYS:
        parsed = parse_datetime(item.get(key))
        if parsed is not None:
            return parsed
    return None


def to_entry(item: Mapping) -> ClassEntry:
    return ClassEntry(item=item, timestamp=item_timestamp(item), minutes=item_minutes(item))


def _chronological_key(entry: ClassEntry):
    return (entry.timestamp is None, entry.timestamp or _EPOCH)


def sort_entries(entries: Iterable[ClassEntry]) -> list[ClassEntry]:
    """Stable chronological sort with undated entries last."""
    return sorted(entries, key=_chronological_key)


def _cap_minutes(coverage: Mapping) -> Decimal | None:
    max_hours = to_decimal(coverage.get("max_hours"))
    if max_hours is None or max_hours <= 0:
        return None
    return (max_hours * MINUTES_PER_HOUR).to_integral_value(rounding=ROUND_HALF_UP)


def resolve_class_entries(items, coverage=None, source: EntrySource = "static") -> ResolvedEntries:
    """Filter and bound raw invoice lines according to a coverage policy."""
    raw_items = mapping_items(items)
    if not raw_items:
        return ResolvedEntries(source=source)

    coverage = mapping_or_empty(coverage)
    cap_minutes = _cap_minutes(coverage)
    cutoff = None
    if cap_minutes is None and coverage.get("end_date"):
        cutoff = end_of_day(coverage.get("end_date"))

    normalized = sort_entries(to_entry(item) for item in raw_items if not is_refill_line(item))

    selected: list[ClassEntry] = []
    accumulated = ZERO
    for entry in normalized:
        if cutoff is not None and entry.timestamp is not None and entry.timestamp > cutoff:
            continue
        if cap_minutes is not None:
            if accumulated + entry.minutes > cap_minutes:
                break
            accumulated += entry.minutes
        selected.append(entry)

    if not selected and normalized and cap_minutes is not None:
        # A cap smaller than the first class still covers that class
        selected = [normalized[0]]

    total_minutes = sum((entry.minutes for entry in selected), ZERO)
    return ResolvedEntries(
        entries=tuple(selected),
        total_minutes=total_minutes,
        total_hours=total_minutes / MINUTES_PER_HOUR,
        source=source,
    )


def choose_entry_source(invoice) -> Literal["dynamic", "static"]:
    """Prefer the freshly fetched dynamic class list whenever it carries any lines."""
    dynamic = mapping_or_empty(mapping_or_empty(invoice).get("dynamic_classes"))
    if mapping_items(dynamic.get("items")):
        return "dynamic"
    return "static"


def resolve_invoice_class_entries(invoice) -> ResolvedEntries:
    """Resolve the in-scope class entries of an invoice record.

    When the dynamic list filters down to nothing, its class lines are
    returned without the coverage filter, together with whatever totals it
    declared upstream. Refill lines stay excluded either way.
    """
    invoice = mapping_or_empty(invoice)
    coverage = mapping_or_empty(invoice.get("coverage"))

    if choose_entry_source(invoice) == "static":
        return resolve_class_entries(invoice.get("items"), coverage)

    dynamic = invoice["dynamic_classes"]
    dynamic_items = mapping_items(dynamic.get("items"))
    resolved = resolve_class_entries(dynamic_items, coverage, source="dynamic")
    if resolved.entries:
        return resolved

    logger.debug("Dynamic class list filtered to nothing; using its declared totals")
    return ResolvedEntries(
        entries=tuple(to_entry(item) for item in dynamic_items if not is_refill_line(item)),
        total_minutes=to_decimal(dynamic.get("total_minutes")),
        total_hours=to_decimal(dynamic.get("total_hours")),
        source="dynamic_declared",
    )


def billing_window(resolved: ResolvedEntries) -> BillingWindow:
    """Earliest and latest dated entry in scope (the invoice's class period)."""
    dates = [entry.timestamp for entry in resolved.entries if entry.timestamp is not None]
    if not dates:
        return BillingWindow()
    return BillingWindow(start=min(dates), end=max(dates))


def format_duration(minutes) -> str | None:
    """Render minutes as ``"2h 05m"``; None when there is nothing to show."""
    value = to_decimal(minutes)
    if value is None or value <= 0:
        return None
    whole_hours = int(value // MINUTES_PER_HOUR)
    remainder = value - whole_hours * MINUTES_PER_HOUR
    rounded_minutes = int(remainder.to_integral_value(rounding=ROUND_HALF_UP))
    if rounded_minutes == 60:
        whole_hours += 1
        rounded_minutes = 0
    return f"{whole_hours}h {rounded_minutes:02d}m"
