"""
Wine Stock — Wine API routes
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from winestock.api.deps import get_current_user
from winestock.core.config import get_settings
from winestock.core.ledger import Quantities
from winestock.db import stock_ops
from winestock.db.database import get_db
from winestock.models.user import User
from winestock.schemas.common import MessageResponse
from winestock.schemas.wine import (
    WineCreateRequest,
    StockDeltaRequest,
    StockUpdateRequest,
    PackageRequest,
    WineOut,
    WineMutationResponse,
    PackageResponse,
)

settings = get_settings()
router = APIRouter(prefix=f"{settings.API_PREFIX}/wine", tags=["wine"])


def _delta(payload: StockDeltaRequest) -> Quantities:
    return Quantities(payload.unpackaged_boxes, payload.packaged_boxes, payload.remaining_water)


def _mutation(message: str, wine) -> WineMutationResponse:
    return WineMutationResponse(message=message, wine=WineOut.model_validate(wine))


@router.get("", response_model=list[WineOut])
async def list_wines(
    search: str | None = Query(None, description="Matches wine name or type"),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """List in-stock wines, most recently updated first."""
    wines = await stock_ops.list_wines(db, search)
    return [WineOut.model_validate(w) for w in wines]


@router.get("/{wine_id}", response_model=WineOut)
async def get_wine(
    wine_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return WineOut.model_validate(await stock_ops.get_wine(db, wine_id))


@router.post("", response_model=WineMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_wine(
    payload: WineCreateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Register a new wine (stock-in from zero)."""
    wine = await stock_ops.create_wine(
        db,
        name=payload.name,
        type_=payload.type,
        quantities=Quantities(payload.unpackaged_boxes, payload.packaged_boxes, payload.remaining_water),
        remark=payload.remark,
        operator=user.username,
    )
    return _mutation("Wine stocked in", wine)


@router.put("/{wine_id}/stock-in", response_model=WineMutationResponse)
async def stock_in(
    wine_id: str,
    payload: StockDeltaRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    wine = await stock_ops.stock_in(
        db, wine_id, _delta(payload), remark=payload.remark, operator=user.username
    )
    return _mutation("Stock in successful", wine)


@router.put("/{wine_id}/stock-out", response_model=WineMutationResponse)
async def stock_out(
    wine_id: str,
    payload: StockDeltaRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    wine = await stock_ops.stock_out(
        db, wine_id, _delta(payload), remark=payload.remark, operator=user.username
    )
    return _mutation("Stock out successful", wine)


@router.put("/{wine_id}/package", response_model=PackageResponse)
async def package_wine(
    wine_id: str,
    payload: PackageRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Convert unpackaged boxes into packaged boxes."""
    wine = await stock_ops.package_wine(
        db,
        wine_id,
        payload.packaged_boxes,
        remaining_water=payload.remaining_water,
        remark=payload.remark,
        operator=user.username,
    )
    return PackageResponse(
        message="Packaging successful",
        wine=WineOut.model_validate(wine),
        packaged=payload.packaged_boxes,
    )


@router.put("/{wine_id}", response_model=WineMutationResponse)
async def update_stock(
    wine_id: str,
    payload: StockUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Set absolute quantities; omitted fields are left as they are."""
    wine = await stock_ops.update_stock(
        db,
        wine_id,
        unpackaged_boxes=payload.unpackaged_boxes,
        packaged_boxes=payload.packaged_boxes,
        remaining_water=payload.remaining_water,
        remark=payload.remark,
        operator=user.username,
    )
    return _mutation("Stock updated", wine)


@router.delete("/{wine_id}", response_model=MessageResponse)
async def delete_wine(
    wine_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await stock_ops.delete_wine(db, wine_id)
    return MessageResponse(message="Wine deleted")
