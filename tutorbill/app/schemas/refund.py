"""Refund quote schemas."""

from decimal import Decimal
from typing import Optional

from tutorbill.app.schemas.base import ApiModel
from tutorbill.app.schemas.invoice import InvoicePayload


class RefundQuoteRequest(ApiModel):
    invoice: InvoicePayload
    hours: Optional[Decimal] = None
    amount: Optional[Decimal] = None


class RefundQuoteRead(ApiModel):
    hours: Decimal
    amount: Decimal
    transfer_fee_share: Decimal
