"""
Wine Stock — Shared Pydantic building blocks

The JSON surface is camelCase; snake_case input is accepted as well.
"""
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from winestock.core.ledger import MAX_BOXES


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


BoxCount = Annotated[int, Field(ge=0, le=MAX_BOXES)]

# Remaining water goes in as an exact decimal and out as a JSON number
WaterAmount = Annotated[
    Decimal,
    Field(
        ge=0,
        max_digits=12,
        decimal_places=3,
        description=(
            "Barrels, at most 3 decimal places and 999999999.999. "
            "Values with more decimal places are rejected, not rounded."
        ),
    ),
]
Water = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class QuantitiesOut(CamelModel):
    unpackaged_boxes: int
    packaged_boxes: int
    remaining_water: Water


class MessageResponse(CamelModel):
    message: str
