"""Canonical invoice totals.

Every screen that shows or seeds invoice money goes through
:func:`compute_invoice_totals`, so the subtotal, transfer fee, total and
balance are derived in exactly one order with exactly one rounding policy:
cents, half away from zero, applied at each step.

Fallback order
--------------
* subtotal: in-scope class lines → stored ``subtotal`` → None (indeterminate)
* total: recomputed from the subtotal → ``adjusted_total`` → ``total`` →
  ``amount`` → 0
* hours: resolved class hours → summed line minutes → ``hours_covered`` → 0
* remaining: stored ``remaining_balance`` → ``total - paid``

A None subtotal tells the caller the total came from stored data and could
not be recomputed.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from tutorbill.app.core.logging_config import get_logger
from tutorbill.app.core.money import (
    MINUTES_PER_HOUR,
    ZERO,
    non_negative,
    round_currency,
    round_hours,
    to_decimal,
)
from tutorbill.app.core.settings import get_settings
from tutorbill.app.services.class_entries import (
    ResolvedEntries,
    is_refill_line,
    item_minutes,
    resolve_invoice_class_entries,
)
from tutorbill.app.services.records import as_flag, mapping_items, mapping_or_empty, nested

logger = get_logger(__name__)

FIXED_FEE_MODE = "fixed"
PERCENT_FEE_MODE = "percent"

_FALLBACK_TOTAL_FIELDS = ("adjusted_total", "total", "amount")


@dataclass(frozen=True)
class InvoiceTotals:
    total: Decimal
    paid: Decimal
    remaining: Decimal
    hours: Decimal
    transfer_fee: Decimal
    subtotal: Decimal | None
    hourly_rate: Decimal
    transfer_fee_waived: bool = False
    entries: ResolvedEntries = field(default_factory=ResolvedEntries)

    @property
    def recomputed(self) -> bool:
        return self.subtotal is not None


def _positive(value) -> Decimal | None:
    amount = to_decimal(value)
    if amount is None or amount <= 0:
        return None
    return amount


def resolve_hourly_rate(invoice, default=None) -> Decimal:
    """Pick the hourly rate used for lines without an amount and for payment conversion."""
    invoice = mapping_or_empty(invoice)
    for candidate in (
        nested(invoice, "guardian_financial", "hourly_rate"),
        nested(invoice, "guardian", "guardian_info", "hourly_rate"),
    ):
        rate = _positive(candidate)
        if rate is not None:
            return rate

    items = [item for item in mapping_items(invoice.get("items")) if not is_refill_line(item)]
    for item in items:
        rate = _positive(item.get("rate"))
        if rate is not None:
            return rate

    total_minutes = sum((item_minutes(item) for item in items), ZERO)
    total_amount = sum((to_decimal(item.get("amount")) or ZERO for item in items), ZERO)
    hours = total_minutes / MINUTES_PER_HOUR
    if hours > 0 and total_amount > 0:
        return round_currency(total_amount / hours)

    fallback = to_decimal(default)
    if fallback is None:
        fallback = get_settings().default_hourly_rate
    logger.debug("No hourly rate on invoice; using default %s", fallback)
    return fallback


def resolve_transfer_fee_spec(invoice) -> Mapping:
    """Invoice-level transfer fee settings win over the guardian profile's."""
    for candidate in (
        nested(invoice, "guardian_financial", "transfer_fee"),
        nested(invoice, "guardian", "guardian_info", "transfer_fee"),
    ):
        if isinstance(candidate, Mapping) and candidate:
            return candidate
    return {}


def fee_mode(spec: Mapping) -> str:
    mode = spec.get("mode")
    if isinstance(mode, str) and mode.strip().lower() == PERCENT_FEE_MODE:
        return PERCENT_FEE_MODE
    return FIXED_FEE_MODE


def compute_transfer_fee(spec, subtotal: Decimal | None) -> Decimal:
    """Fee amount before any waiver is applied."""
    spec = mapping_or_empty(spec)
    if not spec:
        return round_currency(ZERO)

    if fee_mode(spec) == PERCENT_FEE_MODE:
        if subtotal is None or subtotal <= 0:
            return round_currency(ZERO)
        percent = to_decimal(spec.get("value"))
        if percent is None:
            percent = to_decimal(spec.get("amount"))
        if percent is None or percent <= 0:
            return round_currency(ZERO)
        return round_currency(subtotal * percent / Decimal("100"))

    amount = _positive(spec.get("amount")) or _positive(spec.get("value")) or ZERO
    return round_currency(amount)


def line_amount(entry, hourly_rate: Decimal) -> Decimal:
    """Explicit line amount, else the line's own rate (or the invoice rate) times its hours."""
    explicit = to_decimal(entry.item.get("amount"))
    if explicit is not None and explicit >= 0:
        return round_currency(explicit)
    rate = _positive(entry.item.get("rate")) or hourly_rate
    if rate is None or rate <= 0 or entry.minutes <= 0:
        return round_currency(ZERO)
    return round_currency(rate * entry.hours)


def derive_subtotal(resolved: ResolvedEntries, hourly_rate: Decimal) -> Decimal | None:
    if not resolved.entries:
        return None
    return round_currency(sum((line_amount(entry, hourly_rate) for entry in resolved.entries), ZERO))


def _fallback_total(invoice: Mapping) -> Decimal:
    for key in _FALLBACK_TOTAL_FIELDS:
        value = to_decimal(invoice.get(key))
        if value is not None and value >= 0:
            return round_currency(value)
    return round_currency(ZERO)


def _resolve_hours(invoice: Mapping, resolved: ResolvedEntries) -> Decimal:
    # An empty scope carries no hours of its own; only declared totals count
    in_scope = bool(resolved.entries) or resolved.source == "dynamic_declared"
    if in_scope and resolved.total_hours is not None:
        return round_hours(resolved.total_hours)
    if in_scope and resolved.total_minutes is not None:
        return round_hours(resolved.total_minutes / MINUTES_PER_HOUR)
    if resolved.entries:
        minutes = sum((entry.minutes for entry in resolved.entries), ZERO)
        return round_hours(minutes / MINUTES_PER_HOUR)
    stored = to_decimal(invoice.get("hours_covered"))
    if stored is not None:
        return round_hours(non_negative(stored))
    return round_hours(ZERO)


def compute_invoice_totals(invoice) -> InvoiceTotals:
    """Derive total, paid, remaining, hours, transfer fee and subtotal for an invoice record."""
    invoice = mapping_or_empty(invoice)
    coverage = mapping_or_empty(invoice.get("coverage"))

    resolved = resolve_invoice_class_entries(invoice)
    hourly_rate = resolve_hourly_rate(invoice)

    subtotal = derive_subtotal(resolved, hourly_rate)
    if subtotal is None:
        stored_subtotal = to_decimal(invoice.get("subtotal"))
        if stored_subtotal is not None and stored_subtotal >= 0:
            subtotal = round_currency(stored_subtotal)
            logger.debug("No class entries in scope; using stored subtotal %s", subtotal)

    discount = round_currency(non_negative(invoice.get("discount")))
    late_fee = round_currency(non_negative(invoice.get("late_fee")))
    tip = round_currency(non_negative(invoice.get("tip")))

    fee_spec = resolve_transfer_fee_spec(invoice)
    waived = as_flag(coverage.get("waive_transfer_fee")) or as_flag(fee_spec.get("waived"))
    transfer_fee = round_currency(ZERO) if waived else compute_transfer_fee(fee_spec, subtotal)

    if subtotal is not None:
        total = round_currency(max(ZERO, subtotal - discount + late_fee + tip + transfer_fee))
    else:
        total = _fallback_total(invoice)
        logger.debug("Subtotal indeterminate; using stored total %s", total)

    paid = round_currency(non_negative(invoice.get("paid_amount")))
    stored_remaining = to_decimal(invoice.get("remaining_balance"))
    if stored_remaining is not None:
        remaining = round_currency(non_negative(stored_remaining))
    else:
        remaining = round_currency(max(ZERO, total - paid))

    return InvoiceTotals(
        total=total,
        paid=paid,
        remaining=remaining,
        hours=_resolve_hours(invoice, resolved),
        transfer_fee=transfer_fee,
        subtotal=subtotal,
        hourly_rate=hourly_rate,
        transfer_fee_waived=waived,
        entries=resolved,
    )
