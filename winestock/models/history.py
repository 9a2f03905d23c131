"""
Wine Stock — History (audit trail) model

Append-only. Rows keep their own copy of the wine name and of the
before/after/change quantities; wine_id is deliberately not a foreign key so
entries outlive the wine they describe.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import String, Integer, Numeric, DateTime, Enum, Text
from sqlalchemy.orm import Mapped, mapped_column, composite

from winestock.core.ledger import Quantities
from winestock.db.database import Base


class HistoryAction(str, PyEnum):
    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    UPDATE_STOCK = "update_stock"


ACTION_NAMES = {
    HistoryAction.STOCK_IN: "Stock in",
    HistoryAction.STOCK_OUT: "Stock out",
    HistoryAction.UPDATE_STOCK: "Stock update",
}


def _quantity_columns(prefix: str):
    return (
        mapped_column(f"{prefix}_unpackaged_boxes", Integer, nullable=False),
        mapped_column(f"{prefix}_packaged_boxes", Integer, nullable=False),
        mapped_column(f"{prefix}_remaining_water", Numeric(12, 3), nullable=False),
    )


class History(Base):
    __tablename__ = "histories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    wine_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    wine_name: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    action: Mapped[HistoryAction] = mapped_column(
        Enum(HistoryAction, name="history_action", values_callable=lambda e: [m.value for m in e]),
        index=True,
        nullable=False,
    )

    before: Mapped[Quantities] = composite(*_quantity_columns("before"))
    after: Mapped[Quantities] = composite(*_quantity_columns("after"))
    change: Mapped[Quantities] = composite(*_quantity_columns("change"))

    remark: Mapped[str] = mapped_column(Text, nullable=False, default="")
    operator: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(tz=timezone.utc),
        index=True,
        nullable=False,
    )

    @property
    def details(self) -> dict[str, Quantities]:
        return {"before": self.before, "after": self.after, "change": self.change}

    @property
    def action_name(self) -> str:
        return ACTION_NAMES.get(self.action, str(self.action))
