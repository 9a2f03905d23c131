"""
Wine Stock — Wine request/response schemas
"""
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict, Field

from winestock.core.ledger import MAX_BOXES
from winestock.models.wine import WineStatus
from winestock.schemas.common import BoxCount, CamelModel, Water, WaterAmount


class WineCreateRequest(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255, examples=["Cabernet 2019"])
    type: str = Field(..., min_length=1, max_length=100, examples=["red"])
    unpackaged_boxes: BoxCount = 0
    packaged_boxes: BoxCount = 0
    remaining_water: WaterAmount = Decimal("0")
    remark: str = Field("", max_length=500)


class StockDeltaRequest(CamelModel):
    """Amounts added by stock-in or removed by stock-out."""
    unpackaged_boxes: BoxCount = 0
    packaged_boxes: BoxCount = 0
    remaining_water: WaterAmount = Decimal("0")
    remark: str = Field("", max_length=500)


class StockUpdateRequest(CamelModel):
    """Absolute values; omitted fields keep their current value."""
    unpackaged_boxes: BoxCount | None = None
    packaged_boxes: BoxCount | None = None
    remaining_water: WaterAmount | None = None
    remark: str = Field("", max_length=500)


class PackageRequest(CamelModel):
    # amount converted from unpackaged to packaged; range checked against stock
    packaged_boxes: int = Field(0, le=MAX_BOXES)
    remaining_water: WaterAmount | None = None
    remark: str = Field("", max_length=500)


class WineOut(CamelModel):
    id: str
    name: str
    type: str
    unpackaged_boxes: int
    packaged_boxes: int
    remaining_water: Water
    total_stock: int
    status: WineStatus
    version_id: int
    created_at: datetime
    updated_at: datetime


class WineBrief(CamelModel):
    id: str
    name: str
    type: str
    status: WineStatus


class WineMutationResponse(CamelModel):
    message: str
    wine: WineOut


class PackageResponse(WineMutationResponse):
    packaged: int
