# billing/services/payment_options.py

"""
PAYMENT OPTIONS

full   -> amount paid is the grand total
half   -> half the grand total (2 dp)
later  -> nothing paid now
custom -> whatever the biller typed; never overwritten by a recompute

half and later leave a balance, which triggers the payment-reminder step.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

OPTION_FULL = "full"
OPTION_HALF = "half"
OPTION_CUSTOM = "custom"
OPTION_LATER = "later"

PAYMENT_OPTIONS = (OPTION_FULL, OPTION_HALF, OPTION_CUSTOM, OPTION_LATER)
REMINDER_OPTIONS = {OPTION_HALF, OPTION_LATER}

PAYMENT_METHODS = ("cash", "upi", "bank_transfer", "cheque", "credit")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def normalize_option(option) -> str:
    o = (option or OPTION_FULL).strip().lower()
    if o not in PAYMENT_OPTIONS:
        raise ValueError(f"Unknown payment option: {option!r}")
    return o


def amount_paid_for_option(option, grand_total, current=None) -> Decimal:
    o = normalize_option(option)
    if o == OPTION_FULL:
        return _money(grand_total)
    if o == OPTION_HALF:
        return (_money(grand_total) / 2).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    if o == OPTION_LATER:
        return ZERO
    return _money(current)


def option_requires_reminder(option, balance_due) -> bool:
    return normalize_option(option) in REMINDER_OPTIONS and _money(balance_due) > ZERO


def amounts_by_option(grand_total, current=None) -> dict:
    """What each option would set amount paid to (the quote endpoint shows all four)."""
    return {o: amount_paid_for_option(o, grand_total, current) for o in PAYMENT_OPTIONS}
