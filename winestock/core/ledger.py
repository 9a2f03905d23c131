"""
Wine Stock — Stock ledger quantities

A Quantities value holds the three measures tracked for a wine. History
entries store three of them (before / after / change), and the wine row maps
its own columns onto one. All arithmetic is component-wise so that
after == before + change holds exactly (remaining water is a Decimal).
"""
import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from winestock.core.errors import BusinessRuleError

FIELDS = ("unpackaged_boxes", "packaged_boxes", "remaining_water")

# Column limits: Integer is 32-bit, remaining_water is Numeric(12, 3)
MAX_BOXES = 2**31 - 1
MAX_WATER = Decimal("999999999.999")


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class Quantities:
    unpackaged_boxes: int = 0
    packaged_boxes: int = 0
    remaining_water: Decimal = Decimal("0")

    def __post_init__(self):
        object.__setattr__(self, "remaining_water", _as_decimal(self.remaining_water))

    @property
    def total_boxes(self) -> int:
        return self.unpackaged_boxes + self.packaged_boxes

    def __add__(self, other: "Quantities") -> "Quantities":
        return Quantities(
            self.unpackaged_boxes + other.unpackaged_boxes,
            self.packaged_boxes + other.packaged_boxes,
            self.remaining_water + other.remaining_water,
        )

    def __sub__(self, other: "Quantities") -> "Quantities":
        return Quantities(
            self.unpackaged_boxes - other.unpackaged_boxes,
            self.packaged_boxes - other.packaged_boxes,
            self.remaining_water - other.remaining_water,
        )

    def __neg__(self) -> "Quantities":
        return Quantities(-self.unpackaged_boxes, -self.packaged_boxes, -self.remaining_water)

    def covers(self, other: "Quantities") -> bool:
        """True when every field here is at least the matching field of other."""
        return all(getattr(self, f) >= getattr(other, f) for f in FIELDS)

    def is_non_negative(self) -> bool:
        return self.covers(ZERO)

    def with_values(self, **values: Any) -> "Quantities":
        """Copy with the given fields replaced; None means keep the current value."""
        return dataclasses.replace(self, **{k: v for k, v in values.items() if v is not None})

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


ZERO = Quantities()


def ensure_non_negative(quantities: Quantities) -> None:
    if not quantities.is_non_negative():
        negative = [f for f in FIELDS if getattr(quantities, f) < 0]
        raise BusinessRuleError(f"Stock quantities cannot be negative: {', '.join(negative)}")


def ensure_storable(quantities: Quantities) -> None:
    too_large = [
        f for f, limit in zip(FIELDS, (MAX_BOXES, MAX_BOXES, MAX_WATER))
        if getattr(quantities, f) > limit
    ]
    if quantities.total_boxes > MAX_BOXES:
        too_large.append("total_stock")
    if too_large:
        raise BusinessRuleError(f"Stock quantities exceed the storable maximum: {', '.join(too_large)}")


def ledger_values(quantities: Quantities, status: str) -> dict[str, Any]:
    """
    Column values for persisting a wine row in the given state.

    Every write path goes through here: it enforces the non-negative
    invariant, keeps every value within its column limit, and recomputes
    the derived total_stock / updated_at fields.
    """
    ensure_non_negative(quantities)
    ensure_storable(quantities)
    return {
        "unpackaged_boxes": quantities.unpackaged_boxes,
        "packaged_boxes": quantities.packaged_boxes,
        "remaining_water": quantities.remaining_water,
        "total_stock": quantities.total_boxes,
        "status": status,
        "updated_at": datetime.now(tz=timezone.utc),
    }
