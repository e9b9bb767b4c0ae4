"""Invoice schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from tutorbill.app.schemas.base import ApiModel, LenientDatetime, LenientDecimal


class LineFlags(ApiModel):
    not_count_for_both: Optional[bool] = None
    exempt_from_guardian: Optional[bool] = None


class ClassLineItem(ApiModel):
    identity: Optional[Any] = None
    class_id: Optional[Any] = None
    lesson_id: Optional[Any] = None
    date: LenientDatetime = None
    scheduled_date: LenientDatetime = None
    duration_minutes: LenientDecimal = None
    duration: LenientDecimal = None
    minutes: LenientDecimal = None
    amount: LenientDecimal = None
    rate: LenientDecimal = None
    description: Optional[str] = None
    exclude_from_balance: Optional[bool] = None
    exempt_from_guardian: Optional[bool] = None
    flags: Optional[LineFlags] = None


class DynamicClasses(ApiModel):
    items: List[ClassLineItem] = []
    total_minutes: LenientDecimal = None
    total_hours: LenientDecimal = None


class CoveragePolicy(ApiModel):
    max_hours: LenientDecimal = None
    # Kept raw so the cutoff lands on the caller's own calendar day
    end_date: Optional[Any] = None
    waive_transfer_fee: bool = False


class TransferFeeSpec(ApiModel):
    mode: Optional[str] = None
    value: LenientDecimal = None
    amount: LenientDecimal = None
    waived: bool = False


class GuardianFinancial(ApiModel):
    hourly_rate: LenientDecimal = None
    transfer_fee: Optional[TransferFeeSpec] = None


class Guardian(ApiModel):
    guardian_info: Optional[GuardianFinancial] = None


class InvoicePayload(ApiModel):
    status: Optional[str] = None
    items: List[ClassLineItem] = []
    dynamic_classes: Optional[DynamicClasses] = None
    coverage: Optional[CoveragePolicy] = None
    guardian_financial: Optional[GuardianFinancial] = None
    guardian: Optional[Guardian] = None
    discount: LenientDecimal = None
    late_fee: LenientDecimal = None
    tip: LenientDecimal = None
    subtotal: LenientDecimal = None
    adjusted_total: LenientDecimal = None
    total: LenientDecimal = None
    amount: LenientDecimal = None
    paid_amount: LenientDecimal = None
    remaining_balance: LenientDecimal = None
    hours_covered: LenientDecimal = None


class InvoiceTotalsRead(ApiModel):
    total: Decimal
    paid: Decimal
    remaining: Decimal
    hours: Decimal
    transfer_fee: Decimal
    subtotal: Optional[Decimal]
    hourly_rate: Decimal
    transfer_fee_waived: bool

    @classmethod
    def from_totals(cls, totals) -> "InvoiceTotalsRead":
        return cls(
            total=totals.total,
            paid=totals.paid,
            remaining=totals.remaining,
            hours=totals.hours,
            transfer_fee=totals.transfer_fee,
            subtotal=totals.subtotal,
            hourly_rate=totals.hourly_rate,
            transfer_fee_waived=totals.transfer_fee_waived,
        )


class ClassEntryRead(ApiModel):
    date: Optional[datetime] = None
    duration_minutes: Decimal
    amount: Optional[Decimal] = None
    description: Optional[str] = None


class ClassBoundaryRead(ApiModel):
    hours: Decimal
    date: Optional[datetime] = None


class ClassEntriesRead(ApiModel):
    source: str
    items: List[ClassEntryRead]
    total_minutes: Optional[Decimal]
    total_hours: Optional[Decimal]
    boundaries: List[ClassBoundaryRead]
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    duration_label: Optional[str] = None
    snapped_max_hours: Optional[Decimal] = None
