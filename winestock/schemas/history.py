"""
Wine Stock — History request/response schemas
"""
from datetime import datetime

from winestock.models.history import HistoryAction
from winestock.schemas.common import CamelModel, QuantitiesOut
from winestock.schemas.wine import WineBrief


class HistoryDetails(CamelModel):
    before: QuantitiesOut
    after: QuantitiesOut
    change: QuantitiesOut


class HistoryOut(CamelModel):
    id: str
    wine_id: str
    wine_name: str
    action: HistoryAction
    details: HistoryDetails
    remark: str
    operator: str
    created_at: datetime


class HistoryDetailOut(HistoryOut):
    # live wine, None once it has been deleted
    wine: WineBrief | None = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class HistoryListResponse(CamelModel):
    histories: list[HistoryOut]
    pagination: Pagination


class ActionSummary(CamelModel):
    action: HistoryAction
    action_name: str
    count: int
    latest_operation: datetime | None = None


class ClearHistoryRequest(CamelModel):
    password: str | None = None


class ClearHistoryResponse(CamelModel):
    message: str
    deleted_count: int
