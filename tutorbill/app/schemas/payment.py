"""Payment entry schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from tutorbill.app.schemas.base import ApiModel
from tutorbill.app.schemas.invoice import InvoicePayload


class ConversionRequest(ApiModel):
    hours: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    hourly_rate: Decimal
    transfer_fee: Decimal = Decimal("0")


class ConversionRead(ApiModel):
    hours: Optional[Decimal] = None
    amount: Optional[Decimal] = None


class BoundaryHintRequest(ApiModel):
    invoice: InvoicePayload
    hours_paid: Decimal


class BoundaryHintRead(ApiModel):
    valid: bool
    exact: bool
    message: str
    covered_until: Optional[datetime] = None
    suggested_hours: Optional[Decimal] = None
    suggested_amount: Optional[Decimal] = None
    includes_transfer_fee: bool = False


class PaymentSuggestionRead(ApiModel):
    hours: Decimal
    amount: Optional[Decimal] = None
    includes_transfer_fee: bool = False
    covered_until: Optional[datetime] = None
    hourly_rate: Decimal
    transfer_fee: Decimal
