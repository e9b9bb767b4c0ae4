"""Refund quotes for paid or partially paid invoices."""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from tutorbill.app.core.money import (
    MINUTES_PER_HOUR,
    ZERO,
    non_negative,
    round_currency,
    round_hours,
    to_decimal,
)
from tutorbill.app.services.class_entries import is_refill_line, item_minutes
from tutorbill.app.services.invoice_totals import compute_invoice_totals
from tutorbill.app.services.records import as_flag, mapping_items, mapping_or_empty, nested

_EXEMPT_KEYS = ("exclude_from_balance", "exempt_from_guardian")
_EXEMPT_FLAG_KEYS = ("not_count_for_both", "exempt_from_guardian")


@dataclass(frozen=True)
class RefundQuote:
    hours: Decimal
    amount: Decimal
    transfer_fee_share: Decimal


def is_refundable_line(item: Mapping) -> bool:
    if is_refill_line(item):
        return False
    if any(as_flag(item.get(key)) for key in _EXEMPT_KEYS):
        return False
    flags = mapping_or_empty(item.get("flags"))
    return not any(as_flag(flags.get(key)) for key in _EXEMPT_FLAG_KEYS)


def refundable_hours(items) -> Decimal:
    minutes = sum((item_minutes(item) for item in mapping_items(items) if is_refundable_line(item)), ZERO)
    return minutes / MINUTES_PER_HOUR


def _fee_share(hours: Decimal, transfer_fee: Decimal, fee_paid: bool, coverage_hours, total_hours) -> Decimal:
    if transfer_fee <= 0 or not fee_paid:
        return round_currency(ZERO)
    fee_hours = non_negative(coverage_hours) or non_negative(total_hours)
    if fee_hours <= 0:
        return round_currency(ZERO)
    ratio = min(hours / fee_hours, Decimal("1"))
    return round_currency(transfer_fee * ratio)


def refund_amount_for_hours(hours, hourly_rate, transfer_fee=ZERO, fee_paid=False, coverage_hours=None, total_hours=None) -> Decimal:
    """Refund for ``hours`` of classes, plus a proportional share of a paid transfer fee."""
    hours = to_decimal(hours)
    rate = non_negative(hourly_rate)
    if hours is None or hours <= 0:
        return round_currency(ZERO)
    base = round_currency(hours * rate)
    share = _fee_share(hours, non_negative(transfer_fee), fee_paid, coverage_hours, total_hours)
    return round_currency(base + share)


def refund_hours_for_amount(amount, hourly_rate, transfer_fee=ZERO, fee_paid=False, coverage_hours=None, total_hours=None) -> Decimal | None:
    """Hours whose refund comes closest to ``amount``.

    Tries the plain hourly rate and the rate with the fee spread over the
    covered hours, keeping whichever guess reproduces the amount best.
    """
    amount = to_decimal(amount)
    if amount is None or amount <= 0:
        return None
    rate = non_negative(hourly_rate)
    fee = non_negative(transfer_fee)
    coverage = non_negative(coverage_hours)
    ceiling = coverage or non_negative(total_hours)

    guesses = []
    if rate > 0:
        guesses.append(amount / rate)
    if fee > 0 and coverage > 0:
        effective_rate = rate + fee / coverage
        if effective_rate > 0:
            guesses.append(amount / effective_rate)
    if not guesses:
        return None

    target = round_currency(amount)
    best = None
    best_diff = None
    for guess in guesses:
        candidate = round_hours(guess)
        if ceiling > 0:
            candidate = min(candidate, round_hours(ceiling))
        diff = abs(
            refund_amount_for_hours(candidate, rate, fee, fee_paid, coverage_hours, total_hours) - target
        )
        if best_diff is None or diff < best_diff:
            best, best_diff = candidate, diff
    return best


def quote_refund(invoice, hours=None, amount=None) -> RefundQuote | None:
    """Quote a refund against an invoice from either hours or an amount."""
    invoice = mapping_or_empty(invoice)
    totals = compute_invoice_totals(invoice)
    fee_paid = str(invoice.get("status") or "").lower() == "paid"
    coverage_hours = nested(invoice, "coverage", "max_hours")
    total_hours = refundable_hours(invoice.get("items"))
    args = (totals.hourly_rate, totals.transfer_fee, fee_paid, coverage_hours, total_hours)

    if hours is None:
        hours = refund_hours_for_amount(amount, *args)
        if hours is None:
            return None
    hours = to_decimal(hours)
    if hours is None or hours <= 0:
        return None

    refund = refund_amount_for_hours(hours, *args)
    base = round_currency(hours * totals.hourly_rate)
    return RefundQuote(hours=round_hours(hours), amount=refund, transfer_fee_share=round_currency(refund - base))
