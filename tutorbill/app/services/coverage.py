"""Coverage save planning.

Saving a coverage change belongs to whoever owns invoice storage. This
module only decides *whether* a save is due and builds the request; the
caller hands it to a :class:`CoverageStore` on its own schedule (typically
after a debounce timer).
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Protocol

from tutorbill.app.core.money import CENTS, MINUTES_PER_HOUR, round_hours, to_decimal
from tutorbill.app.core.settings import get_settings

SAME_HOURS_TOLERANCE = Decimal("0.001")


@dataclass(frozen=True)
class CoverageSaveRequest:
    invoice_id: str
    max_hours: Decimal


class CoverageStore(Protocol):
    def save_coverage(self, request: CoverageSaveRequest) -> None: ...


def plan_coverage_save(
    invoice_id,
    hours_paid,
    current_max_hours=None,
    last_saved_hours=None,
) -> CoverageSaveRequest | None:
    """Build a save request for ``hours_paid`` unless it would change nothing."""
    hours = to_decimal(hours_paid)
    if hours is None or hours <= 0:
        return None
    hours = round_hours(hours)

    last_saved = to_decimal(last_saved_hours)
    if last_saved is not None and round_hours(last_saved) == hours:
        return None

    current = to_decimal(current_max_hours)
    if current is not None and abs(current - hours) < SAME_HOURS_TOLERANCE:
        return None

    return CoverageSaveRequest(invoice_id=str(invoice_id), max_hours=hours)


def snap_max_hours(max_hours, resolved_minutes) -> Decimal | None:
    """Align a stored cap with the hours the resolver actually covered.

    Returns the resolved hours (to the cent of an hour) when the cap is off
    by more than the boundary tolerance, otherwise None.
    """
    cap = to_decimal(max_hours)
    minutes = to_decimal(resolved_minutes)
    if cap is None or cap <= 0 or minutes is None or minutes <= 0:
        return None
    actual = (minutes / MINUTES_PER_HOUR).quantize(CENTS, rounding=ROUND_HALF_UP)
    if abs(actual - cap) > get_settings().boundary_tolerance_hours:
        return actual
    return None
