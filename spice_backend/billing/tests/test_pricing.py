# billing/tests/test_pricing.py

from decimal import Decimal

from django.test import SimpleTestCase

from billing.services.bill_totals import ZERO_TOTALS, calculate_totals, derive_status
from billing.services.line_items import (
    ComboLine,
    RegularLine,
    allocation_key,
    calculate_gst_amount,
    calculate_item_amount,
    is_billable,
)
from billing.services.payment_options import (
    amount_paid_for_option,
    amounts_by_option,
    option_requires_reminder,
)


class LineItemTests(SimpleTestCase):
    """
    GUARANTEES:
    - Rate is per kg; grams are scaled, other units are not
    - Every money value is 2 dp, half-up
    """

    def test_grams_are_priced_per_kilogram(self):
        self.assertEqual(calculate_item_amount(2, "g", 500), Decimal("1.00"))

    def test_kilograms(self):
        self.assertEqual(calculate_item_amount("1.5", "kg", 400), Decimal("600.00"))

    def test_other_units_multiply_rate_as_entered(self):
        self.assertEqual(calculate_item_amount(2, "lb", 100), Decimal("200.00"))
        self.assertEqual(calculate_item_amount(3, "pcs", 12), Decimal("36.00"))

    def test_inputs_are_rounded_before_pricing(self):
        self.assertEqual(calculate_item_amount("1.005", "kg", 100), Decimal("101.00"))

    def test_gst(self):
        self.assertEqual(calculate_gst_amount(600, 5), Decimal("30.00"))
        self.assertEqual(calculate_gst_amount("0.99", 5), Decimal("0.05"))

    def test_line_amounts_are_derived(self):
        line = RegularLine(product_id=1, product_name="Cumin", quantity=Decimal("2"), rate=Decimal("250"))
        self.assertEqual(line.amount, Decimal("500.00"))
        self.assertEqual(line.gst_amount, Decimal("25.00"))
        self.assertEqual(line.with_quantity(4).amount, Decimal("1000.00"))

    def test_allocation_keys(self):
        regular = RegularLine(product_id=7, product_name="Clove", quantity=Decimal("1"))
        combo = ComboLine(name="Garam Mix", quantity=Decimal("1"))
        self.assertEqual(allocation_key(regular), "7")
        self.assertEqual(allocation_key(combo), "Garam Mix")

    def test_billable_rows(self):
        self.assertTrue(is_billable(RegularLine(1, "Clove", Decimal("1"))))
        self.assertFalse(is_billable(RegularLine(1, "  ", Decimal("1"))))
        self.assertFalse(is_billable(RegularLine(1, "Clove", Decimal("0"))))


class BillTotalsTests(SimpleTestCase):
    """
    GUARANTEES:
    - Only billable rows count
    - balance_due never goes negative
    - Malformed input yields zero totals instead of an exception
    """

    def setUp(self):
        self.items = [
            RegularLine(1, "Turmeric", Decimal("2"), "kg", Decimal("100"), Decimal("5")),
            RegularLine(2, "Chilli", Decimal("500"), "g", Decimal("300"), Decimal("5")),
            RegularLine(3, "", Decimal("9"), "kg", Decimal("999"), Decimal("5")),
            RegularLine(4, "Clove", Decimal("0"), "kg", Decimal("999"), Decimal("5")),
        ]

    def test_totals(self):
        totals = calculate_totals(self.items, Decimal("100"))

        self.assertEqual(totals.total_amount, Decimal("350.00"))
        self.assertEqual(totals.total_gst_amount, Decimal("17.50"))
        self.assertEqual(totals.grand_total, Decimal("367.50"))
        self.assertEqual(totals.balance_due, Decimal("267.50"))

    def test_totals_are_idempotent(self):
        self.assertEqual(calculate_totals(self.items, 50), calculate_totals(self.items, 50))

    def test_overpayment_leaves_no_balance(self):
        self.assertEqual(calculate_totals(self.items, 10_000).balance_due, Decimal("0.00"))

    def test_empty_bill(self):
        self.assertEqual(calculate_totals([]), ZERO_TOTALS)

    def test_malformed_rate_yields_zero_totals(self):
        bad = [RegularLine(1, "Cumin", Decimal("1"), "kg", "abc")]
        self.assertEqual(calculate_totals(bad, 0), ZERO_TOTALS)

    def test_status(self):
        self.assertEqual(derive_status(Decimal("0")), "paid")
        self.assertEqual(derive_status(Decimal("0.01")), "partial")


class PaymentOptionTests(SimpleTestCase):
    def test_full_half_later(self):
        self.assertEqual(amount_paid_for_option("full", Decimal("1000")), Decimal("1000.00"))
        self.assertEqual(amount_paid_for_option("half", Decimal("1000")), Decimal("500.00"))
        self.assertEqual(amount_paid_for_option("half", Decimal("999.99")), Decimal("500.00"))
        self.assertEqual(amount_paid_for_option("later", Decimal("1000")), Decimal("0.00"))

    def test_custom_keeps_typed_amount(self):
        self.assertEqual(
            amount_paid_for_option("custom", Decimal("1000"), Decimal("250")), Decimal("250.00")
        )

    def test_unknown_option(self):
        with self.assertRaises(ValueError):
            amount_paid_for_option("barter", Decimal("1"))

    def test_reminder_prompt(self):
        self.assertTrue(option_requires_reminder("half", Decimal("500")))
        self.assertTrue(option_requires_reminder("later", Decimal("1")))
        self.assertFalse(option_requires_reminder("later", Decimal("0")))
        self.assertFalse(option_requires_reminder("custom", Decimal("10")))

    def test_amounts_by_option(self):
        amounts = amounts_by_option(Decimal("80"), Decimal("20"))
        self.assertEqual(
            amounts,
            {
                "full": Decimal("80.00"),
                "half": Decimal("40.00"),
                "custom": Decimal("20.00"),
                "later": Decimal("0.00"),
            },
        )
