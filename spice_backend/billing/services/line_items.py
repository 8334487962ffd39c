# billing/services/line_items.py

"""
LINE-ITEM CALCULATOR

Bill lines are a tagged union:
- RegularLine: one catalogue product
- ComboLine:   a folded mix of several products, billed as one line

Pricing rules:
- Rate is per kg.
- Only the "g" unit is scaled (quantity / 1000) before pricing. Every other
  unit, lb/oz/ml/discrete included, is multiplied by the rate as entered.
- Quantity, rate and GST% are rounded to 2 dp before use; every money
  result is rounded to 2 dp (ROUND_HALF_UP).

amount and gst_amount are derived properties, never stored, so a line can
not drift out of sync with its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
GRAMS_PER_KG = Decimal("1000")

KIND_REGULAR = "regular"
KIND_COMBO = "combo"


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def calculate_item_amount(quantity, unit, rate) -> Decimal:
    qty = _money(quantity)
    if (unit or "kg") == "g":
        qty = qty / GRAMS_PER_KG
    return (qty * _money(rate)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def calculate_gst_amount(amount, gst_percentage) -> Decimal:
    return (_money(amount) * _money(gst_percentage) / HUNDRED).quantize(
        TWOPLACES, rounding=ROUND_HALF_UP
    )


# ============================================================
# LINE TYPES
# ============================================================

@dataclass(frozen=True)
class RegularLine:
    product_id: int
    product_name: str
    quantity: Decimal
    unit: str = "kg"
    rate: Decimal = ZERO
    gst_percentage: Decimal = Decimal("5")

    kind = KIND_REGULAR

    @property
    def allocation_key(self) -> str:
        return str(self.product_id)

    @property
    def amount(self) -> Decimal:
        return calculate_item_amount(self.quantity, self.unit, self.rate)

    @property
    def gst_amount(self) -> Decimal:
        return calculate_gst_amount(self.amount, self.gst_percentage)

    def with_quantity(self, quantity) -> "RegularLine":
        return replace(self, quantity=_money(quantity))


@dataclass(frozen=True)
class ComboMember:
    product_id: int
    product_name: str
    quantity: Decimal
    allocated_price: Decimal


@dataclass(frozen=True)
class ComboLine:
    name: str
    members: tuple = field(default_factory=tuple)
    quantity: Decimal = ZERO
    unit: str = "kg"
    rate: Decimal = ZERO
    gst_percentage: Decimal = Decimal("5")

    kind = KIND_COMBO
    product_id = None

    @property
    def product_name(self) -> str:
        return self.name

    @property
    def allocation_key(self) -> str:
        return self.name

    @property
    def amount(self) -> Decimal:
        return calculate_item_amount(self.quantity, self.unit, self.rate)

    @property
    def gst_amount(self) -> Decimal:
        return calculate_gst_amount(self.amount, self.gst_percentage)

    def with_quantity(self, quantity) -> "ComboLine":
        return replace(self, quantity=_money(quantity))


def allocation_key(line) -> str:
    """Product id for regular lines, combo name for combos."""
    return line.allocation_key


def is_billable(line) -> bool:
    name = (line.product_name or "").strip()
    if not name:
        return False
    try:
        return Decimal(str(line.quantity)) > 0
    except ArithmeticError:
        return False


def is_combo(line) -> bool:
    return getattr(line, "kind", None) == KIND_COMBO


__all__ = [
    "ComboLine",
    "ComboMember",
    "RegularLine",
    "allocation_key",
    "calculate_gst_amount",
    "calculate_item_amount",
    "is_billable",
    "is_combo",
]
