# billing/services/validation.py

"""
SUBMISSION GATES

Checked in this order before anything is sent to the back office:
1) items: at least one, each with a product, quantity > 0 and rate > 0
2) caterer selected
3) batch shortfalls (regular lines only; combos carry their own batches)
4) unless paying later: payment method chosen and amount paid > 0

Shortfalls need an explicit confirmation (BatchShortfallNotConfirmed);
everything else raises BillValidationError.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from billing.services.exceptions import BatchShortfallNotConfirmed, BillValidationError
from billing.services.line_items import is_combo
from billing.services.payment_options import OPTION_LATER

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class BatchShortfall:
    allocation_key: str
    product_name: str
    required_quantity: Decimal
    allocated_quantity: Decimal

    @property
    def missing_quantity(self) -> Decimal:
        return max(ZERO, self.required_quantity - self.allocated_quantity)


def validate_items(session) -> None:
    if not session.items:
        raise BillValidationError("Please add at least one product to the bill.", field="items")

    for line in session.items:
        has_product = bool((line.product_name or "").strip()) and (
            is_combo(line) or line.product_id not in (None, "", 0)
        )
        if not has_product or line.quantity <= ZERO or line.rate <= ZERO:
            raise BillValidationError(
                "Please ensure all products have valid quantities and rates.",
                field="items",
            )


def validate_caterer(session) -> None:
    if not session.caterer_id:
        raise BillValidationError(
            "Please select a caterer before saving the bill.", field="caterer_id"
        )


def validate_payment(session) -> None:
    if session.payment_option == OPTION_LATER:
        return
    if not (session.payment_method or "").strip():
        raise BillValidationError(
            "Please select a payment method when making a payment.",
            field="payment_method",
        )
    if session.amount_paid <= ZERO:
        raise BillValidationError(
            "Please enter a valid payment amount greater than 0.",
            field="amount_paid",
        )


def find_batch_shortfalls(session) -> list[BatchShortfall]:
    out = []
    for line in session.items:
        if is_combo(line):
            continue
        allocated = session.allocation_for(line).total
        if allocated < line.quantity:
            out.append(
                BatchShortfall(
                    allocation_key=line.allocation_key,
                    product_name=line.product_name,
                    required_quantity=line.quantity,
                    allocated_quantity=allocated,
                )
            )
    return out


def validate_for_submission(session, *, confirm_shortfall: bool = False) -> list[BatchShortfall]:
    """
    Raise on the first failing gate, in the order the biller meets them.
    Returns the shortfalls the biller confirmed (possibly empty).
    """
    validate_items(session)
    validate_caterer(session)

    shortfalls = find_batch_shortfalls(session)
    if shortfalls and not confirm_shortfall:
        raise BatchShortfallNotConfirmed(
            "Inventory batches are not selected for every product, so inventory "
            "will not be fully updated. Confirm to proceed anyway.",
            shortfalls=shortfalls,
        )

    validate_payment(session)
    return shortfalls
