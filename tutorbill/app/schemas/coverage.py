"""Coverage planning schemas."""

from decimal import Decimal
from typing import Optional

from tutorbill.app.schemas.base import ApiModel


class CoveragePlanRequest(ApiModel):
    hours_paid: Decimal
    current_max_hours: Optional[Decimal] = None
    last_saved_hours: Optional[Decimal] = None


class CoverageSaveRequestRead(ApiModel):
    invoice_id: str
    max_hours: Decimal
