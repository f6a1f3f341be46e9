"""
Shared schema building blocks.

All API bodies use camelCase keys (accountId, toAccountId, createdAt).
Request bodies also accept the snake_case field names.

Money is held as Decimal everywhere inside the service and only turned into
a JSON number at the very edge. Amounts have at most two decimal places, so
the float produced there represents the value exactly as displayed.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(CamelModel):
    """Body of every non-2xx response (documented in OpenAPI only)."""
    error: str
    error_type: str
