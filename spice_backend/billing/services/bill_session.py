# billing/services/bill_session.py

"""
BILL SESSION (EDITING STATE)

One immutable object holds everything the desk knows about the bill being
typed: lines, batch allocations, payment choice, reminder plan and the
derived totals.

Every transition is a pure function returning a NEW session:
- totals are recomputed
- the payment option is re-applied (full/half/later follow the grand total,
  custom keeps the typed amount)
- the reminder state is re-derived from the balance

DESIGN PRINCIPLES:
- No HTTP, no cache, no logging side effects
- Computation is never blocked by the reminder step; only submission is
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.utils import timezone

from billing.services.bill_numbers import generate_bill_number
from billing.services.bill_totals import ZERO_TOTALS, BillTotals, calculate_totals, derive_status
from billing.services.exceptions import BillSessionError
from billing.services.line_items import ComboLine, RegularLine, is_combo
from billing.services.payment_options import (
    OPTION_CUSTOM,
    OPTION_FULL,
    PAYMENT_METHODS,
    amount_paid_for_option,
    normalize_option,
    option_requires_reminder,
)
from inventory.services.batch_selection import BatchAllocation
from inventory.services.units import normalize_unit

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

DEFAULT_REMINDER_LEAD_DAYS = 7

# ============================================================
# REMINDER STATE
# ============================================================

REMINDER_NOT_REQUIRED = "not_required"
REMINDER_PENDING = "pending"
REMINDER_SCHEDULED = "scheduled"
REMINDER_SKIPPED = "skipped"

REMINDER_RESOLVED = {REMINDER_SCHEDULED, REMINDER_SKIPPED}


@dataclass(frozen=True)
class ReminderPlan:
    state: str = REMINDER_NOT_REQUIRED
    due_date: date | None = None
    reminder_date: date | None = None
    notes: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.state in REMINDER_RESOLVED


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise BillSessionError(f"Not a number: {v!r}") from exc


def _billing_cfg() -> dict:
    cfg = getattr(settings, "BILLING", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


def default_gst_percentage() -> Decimal:
    return _money(_billing_cfg().get("DEFAULT_GST_PERCENTAGE") or "5")


def default_due_days() -> int:
    try:
        return int(_billing_cfg().get("DEFAULT_DUE_DAYS") or 15)
    except (TypeError, ValueError):
        return 15


# ============================================================
# SESSION
# ============================================================

@dataclass(frozen=True)
class BillSession:
    bill_no: str
    bill_date: date
    due_date: date
    caterer_id: int | None = None
    items: tuple = ()
    # allocation_key -> BatchAllocation; treat as read-only, transitions copy it
    allocations: dict = field(default_factory=dict, hash=False)
    payment_option: str = OPTION_FULL
    payment_method: str = ""
    amount_paid: Decimal = ZERO
    notes: str = ""
    reminder: ReminderPlan = field(default_factory=ReminderPlan)
    totals: BillTotals = ZERO_TOTALS

    @property
    def status(self) -> str:
        return derive_status(self.totals.balance_due)

    @property
    def has_balance(self) -> bool:
        return self.totals.balance_due > ZERO

    @property
    def awaiting_reminder(self) -> bool:
        """Submission is suspended until the reminder is scheduled or skipped."""
        return self.has_balance and not self.reminder.is_resolved

    @property
    def option_prompts_reminder(self) -> bool:
        return option_requires_reminder(self.payment_option, self.totals.balance_due)

    def allocation_for(self, line) -> BatchAllocation:
        return self.allocations.get(line.allocation_key) or BatchAllocation()


def _recompute(session: BillSession) -> BillSession:
    grand_total = calculate_totals(session.items).grand_total
    amount_paid = amount_paid_for_option(
        session.payment_option, grand_total, session.amount_paid
    )
    totals = calculate_totals(session.items, amount_paid)

    reminder = session.reminder
    if totals.balance_due <= ZERO:
        reminder = ReminderPlan()
    elif reminder.state == REMINDER_NOT_REQUIRED:
        reminder = replace(reminder, state=REMINDER_PENDING)

    return replace(session, amount_paid=amount_paid, totals=totals, reminder=reminder)


def new_session(
    *,
    bill_no: str | None = None,
    caterer_id: int | None = None,
    bill_date: date | None = None,
    due_date: date | None = None,
    notes: str = "",
) -> BillSession:
    day = bill_date or timezone.localdate()
    return _recompute(
        BillSession(
            bill_no=bill_no or generate_bill_number(day),
            bill_date=day,
            due_date=due_date or (day + timedelta(days=default_due_days())),
            caterer_id=caterer_id,
            notes=notes or "",
        )
    )


def _line_index(session: BillSession, index: int) -> int:
    if not isinstance(index, int) or index < 0 or index >= len(session.items):
        raise BillSessionError(f"No bill row at index {index!r}")
    return index


def _replace_item(session: BillSession, index: int, line) -> tuple:
    items = list(session.items)
    items[index] = line
    return tuple(items)


def _drop_orphan_allocations(items, allocations: dict) -> dict:
    keys = {line.allocation_key for line in items}
    return {k: v for k, v in allocations.items() if k in keys}


# ============================================================
# LINE TRANSITIONS
# ============================================================

def add_product(
    session: BillSession,
    *,
    product_id: int,
    product_name: str,
    quantity=1,
    unit: str = "kg",
    rate=None,
    gst_percentage=None,
) -> BillSession:
    """Adding a product already on the bill adds to that row's quantity."""
    if product_id in (None, "") or not (product_name or "").strip():
        raise BillSessionError("A product needs an id and a name.")

    qty = _money(quantity)
    for i, line in enumerate(session.items):
        if not is_combo(line) and line.product_id == product_id:
            merged = line.with_quantity(line.quantity + qty)
            return _recompute(replace(session, items=_replace_item(session, i, merged)))

    line = RegularLine(
        product_id=product_id,
        product_name=product_name.strip(),
        quantity=qty,
        unit=normalize_unit(unit or "kg"),
        rate=_money(rate),
        gst_percentage=default_gst_percentage() if gst_percentage is None else _money(gst_percentage),
    )
    return _recompute(replace(session, items=session.items + (line,)))


EDITABLE_FIELDS = {"product_name", "quantity", "unit", "rate", "gst_percentage"}


def update_item(session: BillSession, index: int, **changes) -> BillSession:
    i = _line_index(session, index)
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise BillSessionError(f"Cannot edit {', '.join(sorted(unknown))} on a bill row")

    line = session.items[i]
    clean = {}
    for key, value in changes.items():
        if key == "unit":
            clean[key] = normalize_unit(value)
        elif key == "product_name":
            if is_combo(line):
                raise BillSessionError("A combo is renamed by adding it again under the new name.")
            clean[key] = (value or "").strip()
        else:
            clean[key] = _money(value)

    return _recompute(replace(session, items=_replace_item(session, i, replace(line, **clean))))


def remove_item(session: BillSession, index: int) -> BillSession:
    i = _line_index(session, index)
    items = session.items[:i] + session.items[i + 1:]
    return _recompute(
        replace(
            session,
            items=items,
            allocations=_drop_orphan_allocations(items, session.allocations),
        )
    )


def cleanup_empty_rows(session: BillSession) -> BillSession:
    items = tuple(line for line in session.items if (line.product_name or "").strip())
    if len(items) == len(session.items):
        return session
    return _recompute(
        replace(
            session,
            items=items,
            allocations=_drop_orphan_allocations(items, session.allocations),
        )
    )


# ============================================================
# BATCHES / MIX
# ============================================================

def apply_batch_allocation(
    session: BillSession, *, product_id: int, allocation: BatchAllocation, unit: str | None = None
) -> BillSession:
    """
    Store a product's batch selection.

    The row's quantity (and unit, when given) follows the selected total.
    An empty allocation clears the selection and leaves the row as it was.
    """
    key = str(product_id)
    for i, line in enumerate(session.items):
        if is_combo(line) or line.allocation_key != key:
            continue

        allocations = dict(session.allocations)
        if allocation.is_empty:
            allocations.pop(key, None)
            return replace(session, allocations=allocations)

        allocations[key] = allocation
        changes = {"quantity": allocation.total}
        if unit:
            changes["unit"] = normalize_unit(unit)
        items = _replace_item(session, i, replace(line, **changes))
        return _recompute(replace(session, items=items, allocations=allocations))

    raise BillSessionError(f"Product {product_id} is not on this bill")


def add_mix_combo(session: BillSession, combo: ComboLine, allocation: BatchAllocation) -> BillSession:
    """
    Add a folded mix. A combo with the same name already on the bill grows by
    the new quantity and its batch allocation is extended.
    """
    allocations = dict(session.allocations)
    if not allocation.is_empty:
        existing = allocations.get(combo.allocation_key)
        allocations[combo.allocation_key] = (
            existing.merged_with(allocation) if existing else allocation
        )

    for i, line in enumerate(session.items):
        if (line.product_name or "") == combo.name:
            grown = line.with_quantity(line.quantity + combo.quantity)
            return _recompute(
                replace(session, items=_replace_item(session, i, grown), allocations=allocations)
            )

    return _recompute(replace(session, items=session.items + (combo,), allocations=allocations))


# ============================================================
# PAYMENT
# ============================================================

def choose_payment_option(session: BillSession, option: str) -> BillSession:
    try:
        o = normalize_option(option)
    except ValueError as exc:
        raise BillSessionError(str(exc)) from exc
    return _recompute(replace(session, payment_option=o))


def set_amount_paid(session: BillSession, amount) -> BillSession:
    """Typing an amount switches the option to custom."""
    paid = _money(amount)
    if paid < ZERO:
        raise BillSessionError("Amount paid cannot be negative.")
    return _recompute(replace(session, payment_option=OPTION_CUSTOM, amount_paid=paid))


def set_payment_method(session: BillSession, method: str) -> BillSession:
    m = (method or "").strip().lower()
    if m and m not in PAYMENT_METHODS:
        raise BillSessionError(f"Unknown payment method: {method!r}")
    return replace(session, payment_method=m)


def set_caterer(session: BillSession, caterer_id: int | None) -> BillSession:
    return replace(session, caterer_id=caterer_id or None)


# ============================================================
# REMINDER
# ============================================================

def schedule_reminder(
    session: BillSession,
    *,
    due_date: date | None = None,
    reminder_date: date | None = None,
    notes: str = "",
) -> BillSession:
    if not session.has_balance:
        raise BillSessionError("Nothing is outstanding on this bill.")

    due = due_date or session.due_date
    remind = reminder_date or (session.bill_date + timedelta(days=DEFAULT_REMINDER_LEAD_DAYS))
    if remind > due:
        raise BillSessionError("The reminder date must be on or before the due date.")

    plan = ReminderPlan(
        state=REMINDER_SCHEDULED,
        due_date=due,
        reminder_date=remind,
        notes=notes or "",
    )
    return replace(session, due_date=due, reminder=plan)


def skip_reminder(session: BillSession) -> BillSession:
    if not session.has_balance:
        return session
    return replace(session, reminder=ReminderPlan(state=REMINDER_SKIPPED, due_date=session.due_date))


def load_lines(session: BillSession, items, allocations=None) -> BillSession:
    """Replace every row at once (a bill re-posted by the desk), dropping blank rows."""
    items = tuple(line for line in items if (line.product_name or "").strip())
    allocations = {str(k): v for k, v in (allocations or {}).items() if not v.is_empty}
    return _recompute(replace(session, items=items, allocations=allocations))
