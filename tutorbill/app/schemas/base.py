"""Shared schema configuration."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

from tutorbill.app.core.money import to_decimal
from tutorbill.app.core.time import parse_datetime


class ApiModel(BaseModel):
    """Accepts and emits the dashboard's camelCase keys; dumps snake_case records."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(exclude_none=True)


# Stored records carry the odd malformed value; those read as absent rather than failing the request.
LenientDecimal = Annotated[Optional[Decimal], BeforeValidator(to_decimal)]
LenientDatetime = Annotated[Optional[datetime], BeforeValidator(parse_datetime)]
