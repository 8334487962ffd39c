# billing/services/bill_totals.py

"""
BILL AGGREGATOR

- Sums billable lines (non-blank product name, quantity > 0) with running
  2 dp rounding, in the same order the lines appear on the bill.
- grand_total = total_amount + total_gst_amount
- balance_due = max(0, grand_total - amount_paid)

calculate_totals() never raises: malformed numeric input is logged and the
bill shows zero totals instead of crashing the desk. It is a pure function,
so calling it twice on the same input yields the same totals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from billing.services.line_items import is_billable

logger = logging.getLogger("billing")

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

STATUS_PAID = "paid"
STATUS_PARTIAL = "partial"


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class BillTotals:
    total_amount: Decimal = ZERO
    total_gst_amount: Decimal = ZERO
    grand_total: Decimal = ZERO
    balance_due: Decimal = ZERO

    def as_dict(self) -> dict:
        return {
            "totalAmount": self.total_amount,
            "totalGstAmount": self.total_gst_amount,
            "grandTotal": self.grand_total,
            "balanceDue": self.balance_due,
        }


ZERO_TOTALS = BillTotals()


def calculate_totals(items, amount_paid=None) -> BillTotals:
    try:
        total_amount = ZERO
        total_gst = ZERO

        for line in items or ():
            if not is_billable(line):
                continue
            total_amount = _money(total_amount + line.amount)
            total_gst = _money(total_gst + line.gst_amount)

        grand_total = _money(total_amount + total_gst)
        balance_due = _money(max(ZERO, grand_total - _money(amount_paid)))
    except (InvalidOperation, ValueError, TypeError, AttributeError):
        logger.exception("Bill totals could not be computed; showing zero totals")
        return ZERO_TOTALS

    return BillTotals(
        total_amount=total_amount,
        total_gst_amount=total_gst,
        grand_total=grand_total,
        balance_due=balance_due,
    )


def derive_status(balance_due) -> str:
    return STATUS_PAID if _money(balance_due) <= ZERO else STATUS_PARTIAL
