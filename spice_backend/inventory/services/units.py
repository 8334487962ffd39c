# inventory/services/units.py

"""
UNIT CONVERSION TABLE

Purpose:
- Convert quantities between mass/volume units (kg, g, lb, oz, l, ml).
- Discrete units (pcs, box, pack, bag) never convert: identity both ways.

Conventions:
- 1 l is treated as 1 kg (water density) so liquids can be priced per kg.
- Factors are Decimal literals; results are rounded, never left as float noise:
    to g / ml          -> integer
    to kg / l          -> 3 dp
    any other target   -> >=1000 integer, >=100 1 dp, else 3 dp
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


class UnitConversionError(ValueError):
    pass


CONTINUOUS_UNITS = ("kg", "g", "lb", "oz", "l", "ml")
DISCRETE_UNITS = ("pcs", "box", "pack", "bag")
ALL_UNITS = CONTINUOUS_UNITS + DISCRETE_UNITS

MEASUREMENT_UNITS = [
    {"value": "kg", "label": "Kilogram (kg)"},
    {"value": "g", "label": "Gram (g)"},
    {"value": "lb", "label": "Pound (lb)"},
    {"value": "oz", "label": "Ounce (oz)"},
    {"value": "l", "label": "Liter (l)"},
    {"value": "ml", "label": "Milliliter (ml)"},
    {"value": "pcs", "label": "Pieces (pcs)"},
    {"value": "box", "label": "Box"},
    {"value": "pack", "label": "Pack"},
    {"value": "bag", "label": "Bag"},
]

_D = Decimal

UNIT_CONVERSIONS: dict[str, dict[str, Decimal]] = {
    "kg": {
        "kg": _D("1"), "g": _D("1000"), "lb": _D("2.20462"), "oz": _D("35.274"),
        "l": _D("1"), "ml": _D("1000"),
    },
    "g": {
        "kg": _D("0.001"), "g": _D("1"), "lb": _D("0.00220462"), "oz": _D("0.035274"),
        "l": _D("0.001"), "ml": _D("1"),
    },
    "lb": {
        "kg": _D("0.453592"), "g": _D("453.592"), "lb": _D("1"), "oz": _D("16"),
        "l": _D("0.453592"), "ml": _D("453.592"),
    },
    "oz": {
        "kg": _D("0.0283495"), "g": _D("28.3495"), "lb": _D("0.0625"), "oz": _D("1"),
        "l": _D("0.0283495"), "ml": _D("28.3495"),
    },
    "l": {
        "kg": _D("1"), "g": _D("1000"), "lb": _D("2.20462"), "oz": _D("35.274"),
        "l": _D("1"), "ml": _D("1000"),
    },
    "ml": {
        "kg": _D("0.001"), "g": _D("1"), "lb": _D("0.00220462"), "oz": _D("0.035274"),
        "l": _D("0.001"), "ml": _D("1"),
    },
}

ONE = Decimal("1")
ONE_DP = Decimal("0.1")
TWO_DP = Decimal("0.01")
THREE_DP = Decimal("0.001")


def normalize_unit(unit) -> str:
    u = str(unit or "").strip().lower()
    if u not in ALL_UNITS:
        raise UnitConversionError(f"Unknown unit: {unit!r}")
    return u


def is_discrete_unit(unit) -> bool:
    return normalize_unit(unit) in DISCRETE_UNITS


def to_decimal(value) -> Decimal:
    """Quantity normalizer (accepts Decimal, int, float, numeric str)."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise UnitConversionError("quantity must be numeric")
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise UnitConversionError(f"quantity must be numeric: {value!r}") from exc
    if not d.is_finite():
        raise UnitConversionError(f"quantity must be finite: {value!r}")
    return d


def _round_by_magnitude(value: Decimal) -> Decimal:
    magnitude = abs(value)
    if magnitude >= 1000:
        return value.quantize(ONE, rounding=ROUND_HALF_UP)
    if magnitude >= 100:
        return value.quantize(ONE_DP, rounding=ROUND_HALF_UP)
    return value.quantize(THREE_DP, rounding=ROUND_HALF_UP)


def convert_unit(quantity, from_unit, to_unit) -> Decimal:
    """
    Convert `quantity` from `from_unit` to `to_unit`.

    Discrete units are pass-through: callers must not mix discrete and
    continuous units and expect a physical conversion.
    """
    qty = to_decimal(quantity)
    src = normalize_unit(from_unit)
    dst = normalize_unit(to_unit)

    if src == dst:
        return qty

    if src in DISCRETE_UNITS or dst in DISCRETE_UNITS:
        return qty

    converted = qty * UNIT_CONVERSIONS[src][dst]

    if dst in ("g", "ml"):
        return converted.quantize(ONE, rounding=ROUND_HALF_UP)
    if dst in ("kg", "l"):
        return converted.quantize(THREE_DP, rounding=ROUND_HALF_UP)

    return _round_by_magnitude(converted)


def _plain(value: Decimal) -> str:
    """Decimal -> shortest human string ("3", "0.5", "12.25")."""
    if value == value.to_integral_value():
        return str(value.quantize(ONE))
    return format(value.normalize(), "f")


def format_quantity_with_unit(quantity, unit, show_alternate: bool = False) -> str:
    """
    "3 kg", "1250 g", "0.5 kg (500 g)".

    Values >= 1000 are shown without decimals; everything else with at most
    2 decimals and no trailing zeros. Non-numeric input renders as "0 <unit>".
    """
    try:
        qty = to_decimal(quantity)
    except UnitConversionError:
        return f"0 {unit}"

    if abs(qty) >= 1000:
        text = _plain(qty.quantize(ONE, rounding=ROUND_HALF_UP))
    else:
        text = _plain(qty.quantize(TWO_DP, rounding=ROUND_HALF_UP))

    if show_alternate and unit == "kg" and qty < 1:
        grams = convert_unit(qty, "kg", "g")
        return f"{text} {unit} ({_plain(grams)} g)"

    return f"{text} {unit}"


def check_stock_sufficiency(
    *, requested_quantity, requested_unit, available_stock, stock_unit
) -> tuple[bool, Decimal, Decimal]:
    """
    Returns (is_sufficient, available_in_requested_unit, shortfall).
    """
    requested = to_decimal(requested_quantity)
    available = convert_unit(available_stock, stock_unit, requested_unit)
    is_sufficient = available >= requested
    shortfall = Decimal("0") if is_sufficient else requested - available
    return is_sufficient, available, shortfall
