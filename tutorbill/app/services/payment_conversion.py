"""Convert between payment amounts and hours covered.

``hours_to_amount`` and ``amount_to_hours`` are inverses up to rounding:
amounts round to the cent and hours to the thousandth, so toggling between
the two fields of a payment form never drifts by more than one unit of
either precision.

Boundary hints tell an operator whether the hours being paid line up with
the end of a class. They are advisory only and always report ``valid``.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from tutorbill.app.core.money import (
    MINUTES_PER_HOUR,
    ZERO,
    non_negative,
    round_currency,
    round_hours,
    to_decimal,
)
from tutorbill.app.core.settings import get_settings
from tutorbill.app.services.class_entries import ClassEntry, ResolvedEntries, sort_entries
from tutorbill.app.services.invoice_totals import InvoiceTotals, compute_invoice_totals
from tutorbill.app.services.records import mapping_or_empty, nested


def hours_to_amount(hours, hourly_rate, transfer_fee=ZERO) -> Decimal | None:
    """Amount due for ``hours`` of classes plus the transfer fee; None for invalid input."""
    hours = to_decimal(hours)
    rate = to_decimal(hourly_rate)
    if hours is None or hours <= 0 or rate is None or rate <= 0:
        return None
    base = round_currency(hours * rate)
    return round_currency(base + non_negative(transfer_fee))


def amount_to_hours(amount, hourly_rate, transfer_fee=ZERO) -> Decimal | None:
    """Hours covered by ``amount`` once the transfer fee is taken out.

    Returns 0 (not None) when the amount does not even cover the fee.
    """
    amount = to_decimal(amount)
    rate = to_decimal(hourly_rate)
    if amount is None or amount <= 0 or rate is None or rate <= 0:
        return None
    base_portion = amount - non_negative(transfer_fee)
    if base_portion <= 0:
        return round_hours(ZERO)
    return round_hours(base_portion / rate)


@dataclass(frozen=True)
class ClassBoundary:
    hours: Decimal
    date: datetime | None = None


@dataclass(frozen=True)
class BoundaryHint:
    exact: bool
    covered_until: datetime | None = None
    suggested_hours: Decimal | None = None
    suggested_amount: Decimal | None = None
    includes_transfer_fee: bool = False
    valid: bool = True

    @property
    def message(self) -> str:
        if self.exact:
            if self.covered_until is None:
                return "covered through final class"
            return f"covered through {self.covered_until.date().isoformat()}"
        return "align to class boundary"


@dataclass(frozen=True)
class PaymentSuggestion:
    hours: Decimal
    amount: Decimal | None
    includes_transfer_fee: bool = False
    covered_until: datetime | None = None


@dataclass(frozen=True)
class PaymentTerms:
    hourly_rate: Decimal
    transfer_fee: Decimal
    boundaries: tuple[ClassBoundary, ...] = ()
    totals: InvoiceTotals | None = field(default=None, compare=False)


def class_boundaries(entries: ResolvedEntries | Iterable[ClassEntry]) -> list[ClassBoundary]:
    """Cumulative hours after each in-scope class, in chronological order."""
    if isinstance(entries, ResolvedEntries):
        entries = entries.entries
    boundaries = []
    cumulative_minutes = ZERO
    for entry in sort_entries(entries):
        if entry.minutes <= 0:
            continue
        cumulative_minutes += entry.minutes
        boundaries.append(
            ClassBoundary(hours=round_hours(cumulative_minutes / MINUTES_PER_HOUR), date=entry.timestamp)
        )
    return boundaries


def boundary_hint(
    hours_paid,
    boundaries: list[ClassBoundary],
    hourly_rate,
    transfer_fee=ZERO,
    tolerance=None,
) -> BoundaryHint | None:
    hours = to_decimal(hours_paid)
    if hours is None or hours <= 0 or not boundaries:
        return None
    tolerance = to_decimal(tolerance)
    if tolerance is None:
        tolerance = get_settings().boundary_tolerance_hours

    for boundary in boundaries:
        if abs(boundary.hours - hours) <= tolerance:
            return BoundaryHint(exact=True, covered_until=boundary.date)

    index = next((i for i, boundary in enumerate(boundaries) if boundary.hours >= hours), len(boundaries) - 1)
    target = boundaries[index]
    is_final = index == len(boundaries) - 1
    return BoundaryHint(
        exact=False,
        covered_until=target.date,
        suggested_hours=target.hours,
        suggested_amount=hours_to_amount(target.hours, hourly_rate, transfer_fee if is_final else ZERO),
        includes_transfer_fee=is_final,
    )


def suggest_payment(boundaries: list[ClassBoundary], covered_hours, hourly_rate, transfer_fee=ZERO) -> PaymentSuggestion | None:
    """Default payment for a form: the next class boundary past what is already covered."""
    if not boundaries:
        return None
    covered = non_negative(covered_hours)
    index = next((i for i, boundary in enumerate(boundaries) if boundary.hours > covered), len(boundaries) - 1)
    target = boundaries[index]
    is_final = index == len(boundaries) - 1
    fee = transfer_fee if is_final else ZERO
    amount = hours_to_amount(target.hours, hourly_rate, fee)
    if amount is None:
        amount = round_currency(target.hours * (to_decimal(hourly_rate) or ZERO))
    return PaymentSuggestion(
        hours=target.hours,
        amount=amount,
        includes_transfer_fee=is_final,
        covered_until=target.date,
    )


def payment_terms(invoice) -> PaymentTerms:
    """Rate, fee and boundaries for a payment form, taken from the canonical totals."""
    totals = compute_invoice_totals(invoice)
    return PaymentTerms(
        hourly_rate=totals.hourly_rate,
        transfer_fee=totals.transfer_fee,
        boundaries=tuple(class_boundaries(totals.entries)),
        totals=totals,
    )


def covered_hours(invoice) -> Decimal:
    """Hours the invoice coverage cap already accounts for."""
    return non_negative(nested(mapping_or_empty(invoice), "coverage", "max_hours"))
