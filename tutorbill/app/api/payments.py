"""Payment entry helpers: amount/hours conversion and class-boundary guidance."""

from fastapi import APIRouter, HTTPException, status

from tutorbill.app.schemas.invoice import InvoicePayload
from tutorbill.app.schemas.payment import (
    BoundaryHintRead,
    BoundaryHintRequest,
    ConversionRead,
    ConversionRequest,
    PaymentSuggestionRead,
)
from tutorbill.app.services.payment_conversion import (
    amount_to_hours,
    boundary_hint,
    covered_hours,
    hours_to_amount,
    payment_terms,
    suggest_payment,
)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/convert", response_model=ConversionRead)
async def convert_payment(payload: ConversionRequest):
    if (payload.hours is None) == (payload.amount is None):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Provide exactly one of hours or amount")
    if payload.hours is not None:
        amount = hours_to_amount(payload.hours, payload.hourly_rate, payload.transfer_fee)
        return ConversionRead(hours=payload.hours, amount=amount)
    hours = amount_to_hours(payload.amount, payload.hourly_rate, payload.transfer_fee)
    return ConversionRead(hours=hours, amount=payload.amount)


@router.post("/boundary-hint", response_model=BoundaryHintRead | None)
async def get_boundary_hint(payload: BoundaryHintRequest):
    terms = payment_terms(payload.invoice.to_record())
    hint = boundary_hint(payload.hours_paid, terms.boundaries, terms.hourly_rate, terms.transfer_fee)
    if hint is None:
        return None
    return BoundaryHintRead(
        valid=hint.valid,
        exact=hint.exact,
        message=hint.message,
        covered_until=hint.covered_until,
        suggested_hours=hint.suggested_hours,
        suggested_amount=hint.suggested_amount,
        includes_transfer_fee=hint.includes_transfer_fee,
    )


@router.post("/suggestion", response_model=PaymentSuggestionRead)
async def get_payment_suggestion(payload: InvoicePayload):
    record = payload.to_record()
    terms = payment_terms(record)
    suggestion = suggest_payment(terms.boundaries, covered_hours(record), terms.hourly_rate, terms.transfer_fee)
    if suggestion is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice has no class boundaries")
    return PaymentSuggestionRead(
        hours=suggestion.hours,
        amount=suggestion.amount,
        includes_transfer_fee=suggestion.includes_transfer_fee,
        covered_until=suggestion.covered_until,
        hourly_rate=terms.hourly_rate,
        transfer_fee=terms.transfer_fee,
    )
