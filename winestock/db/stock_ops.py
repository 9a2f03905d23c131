"""
Wine Stock — Stock mutation logic with optimistic locking

Every mutation follows the same path:
  - READ:  fetch the wine row (quantities + version_id)
  - CHECK: business rules against the freshly read quantities
  - WRITE: UPDATE ... WHERE version_id = <read_version>, plus one History row,
           committed together in a single transaction
  - If another transaction committed first → StaleDataError → retry from READ

The history entry always records change, before and after = before + change,
so the audit row and the persisted wine can never disagree.
"""
import uuid
import logging
from decimal import Decimal

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from winestock.core.errors import NotFoundError, BusinessRuleError, InsufficientStockError
from winestock.core.ledger import Quantities, ZERO, ledger_values
from winestock.core.optimistic_lock import StaleDataError, with_optimistic_retry
from winestock.models.history import History, HistoryAction
from winestock.models.wine import Wine, WineStatus

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_REMARK = "New packaging"


# ─── Reads ────────────────────────────────────────────────────────────────────

async def get_wine(db: AsyncSession, wine_id: str) -> Wine:
    result = await db.execute(
        select(Wine).where(Wine.id == wine_id).execution_options(populate_existing=True)
    )
    wine: Wine | None = result.scalar_one_or_none()
    if wine is None:
        raise NotFoundError("Wine not found")
    return wine


async def list_wines(db: AsyncSession, search: str | None = None) -> list[Wine]:
    """In-stock wines, most recently updated first. search matches name or type."""
    query = select(Wine).where(Wine.status == WineStatus.IN_STOCK)
    if search and search.strip():
        term = search.strip()
        query = query.where(
            or_(
                Wine.name.icontains(term, autoescape=True),
                Wine.type.icontains(term, autoescape=True),
            )
        )
    result = await db.execute(query.order_by(Wine.updated_at.desc()))
    return list(result.scalars().all())


# ─── Write path ───────────────────────────────────────────────────────────────

def _history_entry(
    wine: Wine,
    action: HistoryAction,
    before: Quantities,
    change: Quantities,
    remark: str,
    operator: str,
) -> History:
    return History(
        id=str(uuid.uuid4()),
        wine_id=wine.id,
        wine_name=wine.name,
        action=action,
        before=before,
        after=before + change,
        change=change,
        remark=remark,
        operator=operator,
    )


async def _apply_change(
    db: AsyncSession,
    wine: Wine,
    action: HistoryAction,
    change: Quantities,
    *,
    remark: str,
    operator: str,
    status: WineStatus | None = None,
) -> Wine:
    before = wine.quantities
    after = before + change
    # ledger_values rejects negative quantities before anything is written
    values = ledger_values(after, status or wine.status)

    current_version = wine.version_id
    result = await db.execute(
        update(Wine)
        .where(Wine.id == wine.id, Wine.version_id == current_version)
        .values(**values, version_id=current_version + 1)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        # Another transaction won the race → trigger retry
        await db.rollback()
        raise StaleDataError("Optimistic lock conflict: wine version changed concurrently.")

    db.add(_history_entry(wine, action, before, change, remark, operator))
    await db.commit()
    await db.refresh(wine)

    logger.info(
        "%s wine=%s operator=%s change=%s",
        action.value, wine.id, operator, change.as_dict(),
    )
    return wine


# ─── Mutations ────────────────────────────────────────────────────────────────

async def create_wine(
    db: AsyncSession,
    *,
    name: str,
    type_: str,
    quantities: Quantities = ZERO,
    remark: str = "",
    operator: str,
) -> Wine:
    """Register a new wine; recorded as a stock-in from zero."""
    wine = Wine(
        id=str(uuid.uuid4()),
        name=name,
        type=type_,
        version_id=1,
        **ledger_values(quantities, WineStatus.IN_STOCK),
    )
    db.add(wine)
    db.add(_history_entry(wine, HistoryAction.STOCK_IN, ZERO, quantities, remark, operator))
    await db.commit()
    await db.refresh(wine)

    logger.info("stock_in (new) wine=%s name=%s operator=%s", wine.id, wine.name, operator)
    return wine


@with_optimistic_retry()
async def stock_in(
    db: AsyncSession,
    wine_id: str,
    delta: Quantities,
    *,
    remark: str = "",
    operator: str,
) -> Wine:
    wine = await get_wine(db, wine_id)
    return await _apply_change(
        db, wine, HistoryAction.STOCK_IN, delta,
        remark=remark, operator=operator, status=WineStatus.IN_STOCK,
    )


@with_optimistic_retry()
async def update_stock(
    db: AsyncSession,
    wine_id: str,
    *,
    unpackaged_boxes: int | None = None,
    packaged_boxes: int | None = None,
    remaining_water: Decimal | None = None,
    remark: str = "",
    operator: str,
) -> Wine:
    """Absolute set. Fields passed as None keep their current value."""
    wine = await get_wine(db, wine_id)
    before = wine.quantities
    target = before.with_values(
        unpackaged_boxes=unpackaged_boxes,
        packaged_boxes=packaged_boxes,
        remaining_water=remaining_water,
    )
    return await _apply_change(
        db, wine, HistoryAction.UPDATE_STOCK, target - before,
        remark=remark, operator=operator,
    )


@with_optimistic_retry()
async def stock_out(
    db: AsyncSession,
    wine_id: str,
    amount: Quantities,
    *,
    remark: str = "",
    operator: str,
) -> Wine:
    wine = await get_wine(db, wine_id)
    if not wine.quantities.covers(amount):
        raise InsufficientStockError("Insufficient stock")
    return await _apply_change(
        db, wine, HistoryAction.STOCK_OUT, -amount,
        remark=remark, operator=operator,
    )


@with_optimistic_retry()
async def package_wine(
    db: AsyncSession,
    wine_id: str,
    amount: int,
    *,
    remaining_water: Decimal | None = None,
    remark: str = "",
    operator: str,
) -> Wine:
    """
    Move `amount` boxes from unpackaged to packaged.
    remaining_water, when given, is an absolute value for the leftover liquid.
    """
    wine = await get_wine(db, wine_id)

    if wine.status == WineStatus.OUT_OF_STOCK:
        raise BusinessRuleError("This wine is out of stock and cannot be packaged")
    if amount <= 0:
        raise BusinessRuleError("Packaging amount must be greater than 0")
    if amount > wine.unpackaged_boxes:
        raise BusinessRuleError(
            f"Packaging amount cannot exceed unpackaged boxes ({wine.unpackaged_boxes})"
        )

    water_change = Decimal("0")
    if remaining_water is not None:
        water_change = remaining_water - wine.quantities.remaining_water

    return await _apply_change(
        db, wine, HistoryAction.UPDATE_STOCK, Quantities(-amount, amount, water_change),
        remark=remark or DEFAULT_PACKAGE_REMARK, operator=operator,
    )


async def delete_wine(db: AsyncSession, wine_id: str) -> None:
    """Remove the wine row. Its history entries are left untouched."""
    wine = await get_wine(db, wine_id)
    await db.delete(wine)
    await db.commit()
    logger.info("deleted wine=%s name=%s", wine_id, wine.name)
