"""
Wine Stock — History API routes

Static paths (/stats/summary, /clear-all) are registered before /{history_id}.
"""
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from winestock.api.deps import get_current_user
from winestock.core.config import get_settings
from winestock.db import history_ops
from winestock.db.database import get_db
from winestock.models.user import User
from winestock.schemas.history import (
    HistoryOut,
    HistoryDetailOut,
    HistoryListResponse,
    Pagination,
    ActionSummary,
    ClearHistoryRequest,
    ClearHistoryResponse,
)
from winestock.schemas.wine import WineBrief

settings = get_settings()
router = APIRouter(prefix=f"{settings.API_PREFIX}/history", tags=["history"])

ActionFilter = Literal["all", "stock_in", "stock_out", "update_stock"]


@router.get("", response_model=HistoryListResponse)
async def list_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    action: ActionFilter | None = Query(None),
    search: str | None = Query(None, description="Case-insensitive match on wine name"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Audit log, newest first. Date range is inclusive of both calendar days."""
    result = await history_ops.list_history(
        db,
        page=page,
        limit=limit,
        action=action,
        search=search,
        start_date=start_date,
        end_date=end_date,
    )
    return HistoryListResponse(
        histories=[HistoryOut.model_validate(h) for h in result.entries],
        pagination=Pagination(page=page, limit=limit, total=result.total, pages=result.pages),
    )


@router.get("/stats/summary", response_model=list[ActionSummary])
async def history_summary(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows = await history_ops.summarize_history(db, start_date, end_date)
    return [ActionSummary(**row) for row in rows]


@router.delete("/clear-all", response_model=ClearHistoryResponse)
async def clear_history(
    payload: ClearHistoryRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Delete the whole audit log. Administrator only; password re-entry required."""
    password = payload.password if payload else None
    deleted = await history_ops.clear_history(db, user, password)
    return ClearHistoryResponse(message="History cleared", deleted_count=deleted)


@router.get("/{history_id}", response_model=HistoryDetailOut)
async def get_history(
    history_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    entry, wine = await history_ops.get_history(db, history_id)
    detail = HistoryDetailOut.model_validate(entry)
    detail.wine = WineBrief.model_validate(wine) if wine is not None else None
    return detail
