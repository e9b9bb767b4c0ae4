"""Refund quote routes."""

from fastapi import APIRouter, HTTPException, status

from tutorbill.app.schemas.refund import RefundQuoteRead, RefundQuoteRequest
from tutorbill.app.services.refunds import quote_refund

router = APIRouter(prefix="/refunds", tags=["refunds"])


@router.post("/quote", response_model=RefundQuoteRead)
async def get_refund_quote(payload: RefundQuoteRequest):
    if (payload.hours is None) == (payload.amount is None):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Provide exactly one of hours or amount")
    quote = quote_refund(payload.invoice.to_record(), hours=payload.hours, amount=payload.amount)
    if quote is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to refund for this request")
    return RefundQuoteRead(hours=quote.hours, amount=quote.amount, transfer_fee_share=quote.transfer_fee_share)
