# inventory/services/batch_selection.py

"""
BATCH SELECTION ENGINE (FEFO)

Purpose:
- Rank a product's inventory batches First-Expired-First-Out.
- Let the biller allocate a required quantity across batches, in the
  required unit, with per-batch caps.

Rules:
- Only status == "active" and quantity > 0 batches are candidates.
- Candidates are ordered by ascending expiry date; batches without an
  expiry date go last; ties keep the back-office order.
- Each batch's stored quantity is converted into the required unit before
  it is offered.
- A batch can never be allocated more than its converted available amount
  (per-batch cap, not global).
- Entering <= 0 removes the batch from the allocation.
- The allocation total is a SOFT target: under / exact / over are all
  confirmable. status_message() tells the biller which case holds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.utils.dateparse import parse_date, parse_datetime

from inventory.services.exceptions import BatchDataError, BatchSelectionError
from inventory.services.units import (
    UnitConversionError,
    convert_unit,
    format_quantity_with_unit,
    normalize_unit,
    to_decimal,
)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
STATUS_DEPLETED = "depleted"

SELECTION_UNDER = "under"
SELECTION_EXACT = "exact"
SELECTION_OVER = "over"


def _qty(value) -> Decimal:
    return to_decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _parse_expiry(raw) -> date | None:
    if raw in (None, ""):
        return None
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    try:
        parsed = parse_date(text[:10]) if len(text) >= 10 else None
        if parsed is None:
            dt = parse_datetime(text)
            parsed = dt.date() if dt else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise BatchDataError(f"Invalid expiryDate: {raw!r}")
    return parsed


# ============================================================
# DOMAIN TYPES
# ============================================================

@dataclass(frozen=True)
class InventoryBatch:
    id: int
    product_id: int | None
    batch_number: str
    quantity: Decimal
    product_unit: str
    expiry_date: date | None
    status: str
    unit_price: Decimal = ZERO

    @property
    def is_eligible(self) -> bool:
        return self.status == STATUS_ACTIVE and self.quantity > ZERO

    @classmethod
    def from_api(cls, row: dict) -> "InventoryBatch":
        """Build from a back-office row ({id, quantity, productUnit, expiryDate, status, ...})."""
        if not isinstance(row, dict) or row.get("id") in (None, ""):
            raise BatchDataError("Inventory batch row must carry an id")

        try:
            quantity = to_decimal(row.get("quantity"))
            unit = normalize_unit(row.get("productUnit") or "kg")
            unit_price = to_decimal(row.get("unitPrice"))
        except UnitConversionError as exc:
            raise BatchDataError(f"Batch {row.get('id')}: {exc}") from exc

        return cls(
            id=row["id"],
            product_id=row.get("productId"),
            batch_number=str(row.get("batchNumber") or "Unknown"),
            quantity=quantity,
            product_unit=unit,
            expiry_date=_parse_expiry(row.get("expiryDate")),
            status=str(row.get("status") or "").strip().lower(),
            unit_price=unit_price,
        )


@dataclass(frozen=True)
class BatchAllocation:
    """Parallel lists: batch_ids[i] is allocated quantities[i]."""

    batch_ids: tuple = ()
    quantities: tuple = ()

    @property
    def total(self) -> Decimal:
        return sum((Decimal(q) for q in self.quantities), ZERO).quantize(
            TWOPLACES, rounding=ROUND_HALF_UP
        )

    @property
    def is_empty(self) -> bool:
        return not self.batch_ids

    def merged_with(self, other: "BatchAllocation") -> "BatchAllocation":
        return BatchAllocation(
            batch_ids=tuple(self.batch_ids) + tuple(other.batch_ids),
            quantities=tuple(self.quantities) + tuple(other.quantities),
        )

    def as_pairs(self) -> list[tuple]:
        return list(zip(self.batch_ids, self.quantities))


@dataclass(frozen=True)
class SelectionWarning:
    batch_id: int
    message: str


@dataclass(frozen=True)
class SelectionTotals:
    total_selected: Decimal
    remaining_needed: Decimal
    status: str
    batch_ids: tuple = field(default_factory=tuple)
    quantities: tuple = field(default_factory=tuple)


# ============================================================
# RANKING
# ============================================================

def eligible_batches(batches) -> list[InventoryBatch]:
    """Active, non-empty batches in FEFO order."""
    candidates = [b for b in batches if b.is_eligible]
    return sorted(
        candidates,
        key=lambda b: (b.expiry_date is None, b.expiry_date or date.max),
    )


def batches_from_api(rows) -> list[InventoryBatch]:
    return [InventoryBatch.from_api(r) for r in (rows or [])]


# ============================================================
# SELECTION SESSION
# ============================================================

class BatchSelection:
    """
    One product's batch picker.

    Quantities in `selected` are always expressed in `required_unit`.
    """

    def __init__(self, *, required_quantity, required_unit="kg", batches=()):
        self.required_unit = normalize_unit(required_unit)
        self.required_quantity = _qty(required_quantity)
        self.candidates = eligible_batches(batches)
        self._by_id = {b.id: b for b in self.candidates}
        self.selected: dict = {}

    # ------------------------------
    # lookups
    # ------------------------------

    def _batch(self, batch_id) -> InventoryBatch:
        try:
            return self._by_id[batch_id]
        except KeyError:
            raise BatchSelectionError(
                f"Batch {batch_id} is not an eligible candidate for this product"
            ) from None

    def available_quantity(self, batch_id) -> Decimal:
        batch = self._batch(batch_id)
        if batch.product_unit != self.required_unit:
            return convert_unit(batch.quantity, batch.product_unit, self.required_unit)
        return batch.quantity

    def total_available(self) -> Decimal:
        return sum((self.available_quantity(b.id) for b in self.candidates), ZERO)

    def suggested_quantity(self, batch_id) -> Decimal:
        """What the one-shot 'Select' action would take from this batch."""
        others = sum(
            (q for bid, q in self.selected.items() if bid != batch_id), ZERO
        )
        remaining = max(ZERO, self.required_quantity - others)
        return min(remaining, self.available_quantity(batch_id))

    # ------------------------------
    # mutations
    # ------------------------------

    def set_quantity(self, batch_id, value) -> SelectionWarning | None:
        maximum = self.available_quantity(batch_id)
        try:
            requested = _qty(value)
        except UnitConversionError:
            requested = ZERO

        if requested <= ZERO:
            self.selected.pop(batch_id, None)
            return None

        if requested > maximum:
            self.selected[batch_id] = maximum
            return SelectionWarning(
                batch_id=batch_id,
                message=f"Maximum available is {maximum.quantize(TWOPLACES, rounding=ROUND_HALF_UP)}",
            )

        self.selected[batch_id] = requested
        return None

    def adjust_quantity(self, batch_id, increment) -> SelectionWarning | None:
        maximum = self.available_quantity(batch_id)
        current = self.selected.get(batch_id, ZERO)
        new_value = max(ZERO, current + to_decimal(increment)).quantize(
            TWOPLACES, rounding=ROUND_HALF_UP
        )

        if new_value <= ZERO:
            self.selected.pop(batch_id, None)
            return None

        if new_value > maximum:
            if current < maximum:
                return SelectionWarning(
                    batch_id=batch_id, message="Cannot exceed available quantity."
                )
            return None

        self.selected[batch_id] = new_value
        return None

    def select_remaining(self, batch_id) -> Decimal:
        qty = self.suggested_quantity(batch_id)
        if qty > ZERO:
            self.selected[batch_id] = qty
        return qty

    def select_all(self, batch_id) -> Decimal:
        qty = self.available_quantity(batch_id)
        if qty > ZERO:
            self.selected[batch_id] = qty
        return qty

    def remove(self, batch_id) -> None:
        self.selected.pop(batch_id, None)

    def change_unit(self, unit) -> None:
        new_unit = normalize_unit(unit)
        if new_unit == self.required_unit:
            return
        old_unit = self.required_unit
        self.required_quantity = _qty(convert_unit(self.required_quantity, old_unit, new_unit))
        self.selected = {
            bid: _qty(convert_unit(q, old_unit, new_unit)) for bid, q in self.selected.items()
        }
        self.required_unit = new_unit

    # ------------------------------
    # read model
    # ------------------------------

    def totals(self) -> SelectionTotals:
        entries = [(bid, q) for bid, q in self.selected.items() if q > ZERO]
        total = sum((q for _, q in entries), ZERO).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
        remaining = max(ZERO, self.required_quantity - total).quantize(
            TWOPLACES, rounding=ROUND_HALF_UP
        )

        if total > self.required_quantity:
            status = SELECTION_OVER
        elif total == self.required_quantity:
            status = SELECTION_EXACT
        else:
            status = SELECTION_UNDER

        return SelectionTotals(
            total_selected=total,
            remaining_needed=remaining,
            status=status,
            batch_ids=tuple(bid for bid, _ in entries),
            quantities=tuple(q for _, q in entries),
        )

    def status_message(self) -> str:
        t = self.totals()
        if t.remaining_needed > ZERO:
            return f"Still need: {format_quantity_with_unit(t.remaining_needed, self.required_unit, True)}"
        if t.status == SELECTION_OVER:
            excess = t.total_selected - self.required_quantity
            return f"Excess: {format_quantity_with_unit(excess, self.required_unit, True)}"
        return "Quantity complete"

    def progress_percent(self) -> Decimal:
        if self.required_quantity <= ZERO:
            return ZERO
        pct = self.totals().total_selected / self.required_quantity * 100
        return min(Decimal("100"), pct).quantize(TWOPLACES, rounding=ROUND_HALF_UP)

    def to_allocation(self) -> BatchAllocation:
        t = self.totals()
        return BatchAllocation(batch_ids=t.batch_ids, quantities=t.quantities)
