"""
Wine Stock — History queries and bulk clear

Filters: exact action, case-insensitive wine-name substring, inclusive calendar
day range on created_at. Day bounds are taken in REPORT_TIMEZONE and compared
in UTC, which is how created_at is stored.
"""
import logging
import math
from datetime import date, datetime, time, timezone
from typing import NamedTuple
from zoneinfo import ZoneInfo

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from winestock.core.config import get_settings
from winestock.core.errors import NotFoundError, PermissionDeniedError, BusinessRuleError, WineStockError
from winestock.core.security import verify_password
from winestock.models.history import History, HistoryAction, ACTION_NAMES
from winestock.models.user import User
from winestock.models.wine import Wine

settings = get_settings()
logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)


class HistoryPage(NamedTuple):
    entries: list[History]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)


def _report_tz():
    if settings.REPORT_TIMEZONE.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(settings.REPORT_TIMEZONE)


def day_bounds(
    start_date: date | None, end_date: date | None
) -> tuple[datetime | None, datetime | None]:
    """start_date → 00:00:00.000, end_date → 23:59:59.999, both as UTC instants."""
    tz = _report_tz()
    start = end = None
    if start_date:
        start = datetime.combine(start_date, time.min, tzinfo=tz).astimezone(timezone.utc)
    if end_date:
        end = datetime.combine(end_date, END_OF_DAY, tzinfo=tz).astimezone(timezone.utc)
    return start, end


def _filters(
    action: str | None = None,
    search: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list:
    conditions = []
    if action and action != "all":
        conditions.append(History.action == HistoryAction(action))
    if search and search.strip():
        conditions.append(History.wine_name.icontains(search.strip(), autoescape=True))
    start, end = day_bounds(start_date, end_date)
    if start is not None:
        conditions.append(History.created_at >= start)
    if end is not None:
        conditions.append(History.created_at <= end)
    return conditions


async def list_history(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 10,
    action: str | None = None,
    search: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> HistoryPage:
    conditions = _filters(action, search, start_date, end_date)

    total = await db.scalar(select(func.count()).select_from(History).where(*conditions))
    result = await db.execute(
        select(History)
        .where(*conditions)
        .order_by(History.created_at.desc(), History.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return HistoryPage(list(result.scalars().all()), total or 0, page, limit)


async def get_history(db: AsyncSession, history_id: str) -> tuple[History, Wine | None]:
    """The entry plus the live wine it refers to, if that still exists."""
    entry = await db.get(History, history_id)
    if entry is None:
        raise NotFoundError("History entry not found")
    wine = await db.get(Wine, entry.wine_id)
    return entry, wine


async def summarize_history(
    db: AsyncSession,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[dict]:
    """Per-action count and latest timestamp within the optional date range."""
    conditions = _filters(start_date=start_date, end_date=end_date)
    result = await db.execute(
        select(
            History.action,
            func.count(History.id),
            func.max(History.created_at),
        )
        .where(*conditions)
        .group_by(History.action)
        .order_by(History.action)
    )
    return [
        {
            "action": action,
            "action_name": ACTION_NAMES.get(action, str(action)),
            "count": count,
            "latest_operation": latest,
        }
        for action, count, latest in result.all()
    ]


async def clear_history(db: AsyncSession, user: User, password: str | None) -> int:
    """
    Delete every history entry. Administrator only, confirmed by re-entering
    the administrator's password. Irreversible.
    """
    if not user.is_admin:
        raise PermissionDeniedError("Insufficient permission: only administrators can clear history")
    if not password:
        raise WineStockError("Password is required to confirm this operation")
    if not verify_password(password, user.hashed_password):
        raise BusinessRuleError("Incorrect password")

    result = await db.execute(delete(History))
    await db.commit()

    logger.warning("history cleared by %s: %d entries deleted", user.username, result.rowcount)
    return result.rowcount
