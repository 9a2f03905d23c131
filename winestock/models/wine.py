"""
Wine Stock — Wine (stock ledger) model

One row per product holding its current quantities. total_stock, updated_at
and version_id are written by stock_ops on every save, never by hooks.
"""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Numeric, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column

from winestock.core.ledger import Quantities
from winestock.db.database import Base


class WineStatus(str, PyEnum):
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Wine(Base):
    """
    version_id is the optimistic locking column, incremented on every update.
    """
    __tablename__ = "wines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    unpackaged_boxes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    packaged_boxes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # barrels, fractional
    remaining_water: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    total_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[WineStatus] = mapped_column(
        Enum(WineStatus, name="wine_status", values_callable=lambda e: [m.value for m in e]),
        default=WineStatus.IN_STOCK,
        nullable=False,
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # optimistic lock
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    @property
    def quantities(self) -> Quantities:
        return Quantities(self.unpackaged_boxes, self.packaged_boxes, self.remaining_water)

    def __repr__(self) -> str:
        return f"<Wine name={self.name} total={self.total_stock} v{self.version_id}>"
