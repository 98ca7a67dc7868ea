"""Domain models for booking line items."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class LineItem:
    """Persistence-ready booking line item built from a detected item."""

    booking_id: int
    category_id: int | None
    size_id: int | None
    name: str
    description: str | None
    quantity: int
    height_cm: Decimal | None = None
    width_cm: Decimal | None = None
    depth_cm: Decimal | None = None
    weight_kg: Decimal | None = None
    is_fragile: bool | None = None
    requires_disassembly: bool | None = None
    ai_metadata: str | None = None
