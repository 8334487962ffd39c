# billing/services/mix_allocator.py

"""
MIX / COMBO ALLOCATOR

A "mix" splits one input value evenly across N products and bills the
result as a single combo line.

Modes:
- price:    value is a budget.   each product gets value/N money
            -> allocated_price = round(value/N, 2)
               calculated_quantity = round((value/N) / price, 2)
- quantity: value is a weight.   each product gets value/N kg
            -> calculated_quantity = round(value/N, 2)
               allocated_price = round((value/N) * price, 2)

Folding:
- quantity = sum of calculated quantities
- amount   = sum of allocated prices
- rate     = amount / quantity (weighted average per kg, 2 dp), unit kg
- all member batch allocations are merged under the combo name

Everything here is pure: inputs are never mutated.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from billing.services.exceptions import MixAllocationError
from billing.services.line_items import ComboLine, ComboMember
from inventory.services.batch_selection import BatchAllocation

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

MODE_PRICE = "price"
MODE_QUANTITY = "quantity"
MIX_MODES = (MODE_PRICE, MODE_QUANTITY)

COMBO_GST_PERCENTAGE = Decimal("5")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _round2(v: Decimal) -> Decimal:
    return v.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class MixComboProduct:
    id: int
    name: str
    price: Decimal
    allocated_price: Decimal = ZERO
    calculated_quantity: Decimal = ZERO
    selected_batches: BatchAllocation = field(default_factory=BatchAllocation)


def allocate_mix(value, products, mode=MODE_PRICE) -> list[MixComboProduct]:
    products = list(products or [])
    if not products:
        raise MixAllocationError("Add at least one product to the mix.")

    if mode not in MIX_MODES:
        raise MixAllocationError(f"Unknown mix mode: {mode!r}")

    try:
        total = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise MixAllocationError(f"Mix value must be numeric: {value!r}") from exc
    if not total.is_finite() or total <= 0:
        raise MixAllocationError("Mix value must be greater than zero.")

    share = total / len(products)
    out = []
    for p in products:
        price = Decimal(str(p.price))
        if mode == MODE_PRICE:
            qty = _round2(share / price) if price > 0 else ZERO
            out.append(replace(p, allocated_price=_round2(share), calculated_quantity=qty))
        else:
            out.append(
                replace(p, calculated_quantity=_round2(share), allocated_price=_round2(share * price))
            )
    return out


def attach_batches(products, product_id, allocation: BatchAllocation) -> list[MixComboProduct]:
    """
    Record a batch selection for one mix product.

    The product's calculated_quantity follows the selected total, so the
    folded combo bills what is actually taken from stock.
    """
    found = False
    out = []
    for p in products:
        if p.id == product_id:
            found = True
            out.append(
                replace(p, selected_batches=allocation, calculated_quantity=allocation.total)
            )
        else:
            out.append(p)
    if not found:
        raise MixAllocationError(f"Product {product_id} is not part of this mix.")
    return out


def default_combo_name() -> str:
    return f"Mix Combo {int(time.time() * 1000)}"


def fold_mix(name, products, gst_percentage=COMBO_GST_PERCENTAGE) -> tuple[ComboLine, BatchAllocation]:
    products = list(products or [])
    if not products:
        raise MixAllocationError("Add at least one product to the mix.")

    combo_name = (name or "").strip() or default_combo_name()

    total_qty = _round2(sum((Decimal(str(p.calculated_quantity)) for p in products), ZERO))
    total_amount = _round2(sum((Decimal(str(p.allocated_price)) for p in products), ZERO))
    rate = _round2(total_amount / total_qty) if total_qty > 0 else ZERO

    merged = BatchAllocation()
    for p in products:
        if not p.selected_batches.is_empty:
            merged = merged.merged_with(p.selected_batches)

    line = ComboLine(
        name=combo_name,
        members=tuple(
            ComboMember(
                product_id=p.id,
                product_name=p.name,
                quantity=_money(p.calculated_quantity),
                allocated_price=_money(p.allocated_price),
            )
            for p in products
        ),
        quantity=total_qty,
        unit="kg",
        rate=rate,
        gst_percentage=_money(gst_percentage),
    )
    return line, merged
