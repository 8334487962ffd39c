# inventory/tests/test_units.py

from decimal import Decimal

from django.test import SimpleTestCase

from inventory.services.units import (
    UnitConversionError,
    check_stock_sufficiency,
    convert_unit,
    format_quantity_with_unit,
    is_discrete_unit,
)


class UnitConversionTests(SimpleTestCase):
    """
    GUARANTEES:
    - Mass/volume conversions follow the factor table
    - Results are rounded by target unit, never left with float noise
    - Discrete units never convert
    """

    def test_kilograms_to_grams(self):
        self.assertEqual(convert_unit(1, "kg", "g"), Decimal("1000"))

    def test_grams_to_kilograms_rounds_to_three_places(self):
        self.assertEqual(convert_unit(1234.5678, "g", "kg"), Decimal("1.235"))

    def test_round_trip_kg_g_kg(self):
        grams = convert_unit(Decimal("2.5"), "kg", "g")
        self.assertEqual(convert_unit(grams, "g", "kg"), Decimal("2.5"))

    def test_round_trips_stay_within_rounding_tolerance(self):
        # each leg is rounded by its target unit, so allow 0.5%
        cases = [
            ("2.5", "kg", "lb"),
            ("0.75", "kg", "lb"),
            ("2.5", "kg", "oz"),
            ("40", "kg", "oz"),
            ("750", "g", "lb"),
            ("250", "g", "oz"),
            ("12", "lb", "kg"),
            ("3", "lb", "oz"),
            ("10", "oz", "g"),
        ]
        for quantity, a, b in cases:
            with self.subTest(quantity=quantity, there=a, back=b):
                q = Decimal(quantity)
                back = convert_unit(convert_unit(q, a, b), b, a)
                self.assertLessEqual(abs(back - q), q * Decimal("0.005"))

    def test_liter_is_treated_as_kilogram(self):
        self.assertEqual(convert_unit(2, "l", "kg"), Decimal("2"))
        self.assertEqual(convert_unit(1, "kg", "ml"), Decimal("1000"))

    def test_pound_and_ounce_use_magnitude_rounding(self):
        # 2.20462 -> 3 dp below 100
        self.assertEqual(convert_unit(1, "kg", "lb"), Decimal("2.205"))
        # 176.37 -> 1 dp between 100 and 1000
        self.assertEqual(convert_unit(5, "kg", "oz"), Decimal("176.4"))
        # 3527.4 -> integer at or above 1000
        self.assertEqual(convert_unit(100, "kg", "oz"), Decimal("3527"))

    def test_same_unit_is_unchanged(self):
        self.assertEqual(convert_unit("4.25", "kg", "kg"), Decimal("4.25"))

    def test_discrete_units_are_identity(self):
        self.assertEqual(convert_unit(7, "pcs", "kg"), Decimal("7"))
        self.assertEqual(convert_unit(3, "kg", "box"), Decimal("3"))
        self.assertTrue(is_discrete_unit("bag"))
        self.assertFalse(is_discrete_unit("oz"))

    def test_unknown_unit_is_rejected(self):
        with self.assertRaises(UnitConversionError):
            convert_unit(1, "kg", "stone")

    def test_non_numeric_quantity_is_rejected(self):
        with self.assertRaises(UnitConversionError):
            convert_unit("lots", "kg", "g")


class QuantityFormattingTests(SimpleTestCase):
    def test_whole_quantities_have_no_decimals(self):
        self.assertEqual(format_quantity_with_unit(3, "kg"), "3 kg")

    def test_two_decimals_without_trailing_zeros(self):
        self.assertEqual(format_quantity_with_unit("12.345", "kg"), "12.35 kg")
        self.assertEqual(format_quantity_with_unit("0.50", "kg"), "0.5 kg")

    def test_large_values_are_integers(self):
        self.assertEqual(format_quantity_with_unit("1250.4", "g"), "1250 g")

    def test_small_kilograms_show_grams(self):
        self.assertEqual(format_quantity_with_unit("0.5", "kg", True), "0.5 kg (500 g)")

    def test_garbage_renders_zero(self):
        self.assertEqual(format_quantity_with_unit("abc", "kg"), "0 kg")


class StockSufficiencyTests(SimpleTestCase):
    def test_shortfall_is_reported_in_requested_unit(self):
        ok, available, shortfall = check_stock_sufficiency(
            requested_quantity=600,
            requested_unit="g",
            available_stock="0.5",
            stock_unit="kg",
        )
        self.assertFalse(ok)
        self.assertEqual(available, Decimal("500"))
        self.assertEqual(shortfall, Decimal("100"))

    def test_enough_stock(self):
        ok, _, shortfall = check_stock_sufficiency(
            requested_quantity=2, requested_unit="kg", available_stock=3, stock_unit="kg"
        )
        self.assertTrue(ok)
        self.assertEqual(shortfall, Decimal("0"))
