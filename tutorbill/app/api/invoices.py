"""Invoice computation routes. Stateless: every request carries the invoice record."""

from typing import Optional

from fastapi import APIRouter

from tutorbill.app.core.money import to_decimal
from tutorbill.app.schemas.coverage import CoveragePlanRequest, CoverageSaveRequestRead
from tutorbill.app.schemas.invoice import (
    ClassBoundaryRead,
    ClassEntriesRead,
    ClassEntryRead,
    InvoicePayload,
    InvoiceTotalsRead,
)
from tutorbill.app.services.class_entries import billing_window, format_duration, resolve_invoice_class_entries
from tutorbill.app.services.coverage import plan_coverage_save, snap_max_hours
from tutorbill.app.services.invoice_totals import compute_invoice_totals
from tutorbill.app.services.payment_conversion import class_boundaries
from tutorbill.app.services.records import nested

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _snapped_cap(record, resolved):
    # Declared totals were never bounded by the cap
    if resolved.source == "dynamic_declared":
        return None
    return snap_max_hours(nested(record, "coverage", "max_hours"), resolved.total_minutes)


@router.post("/totals", response_model=InvoiceTotalsRead)
async def compute_totals(payload: InvoicePayload):
    totals = compute_invoice_totals(payload.to_record())
    return InvoiceTotalsRead.from_totals(totals)


@router.post("/class-entries", response_model=ClassEntriesRead)
async def resolve_entries(payload: InvoicePayload):
    record = payload.to_record()
    resolved = resolve_invoice_class_entries(record)
    window = billing_window(resolved)
    return ClassEntriesRead(
        source=resolved.source,
        items=[
            ClassEntryRead(
                date=entry.timestamp,
                duration_minutes=entry.minutes,
                amount=to_decimal(entry.item.get("amount")),
                description=entry.item.get("description"),
            )
            for entry in resolved.entries
        ],
        total_minutes=resolved.total_minutes,
        total_hours=resolved.total_hours,
        boundaries=[ClassBoundaryRead(hours=b.hours, date=b.date) for b in class_boundaries(resolved)],
        window_start=window.start,
        window_end=window.end,
        duration_label=format_duration(resolved.total_minutes),
        snapped_max_hours=_snapped_cap(record, resolved),
    )


@router.post("/{invoice_id}/coverage-plan", response_model=Optional[CoverageSaveRequestRead])
async def plan_coverage(invoice_id: str, payload: CoveragePlanRequest):
    request = plan_coverage_save(
        invoice_id,
        payload.hours_paid,
        current_max_hours=payload.current_max_hours,
        last_saved_hours=payload.last_saved_hours,
    )
    if request is None:
        return None
    return CoverageSaveRequestRead(invoice_id=request.invoice_id, max_hours=request.max_hours)
