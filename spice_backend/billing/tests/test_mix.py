# billing/tests/test_mix.py

from decimal import Decimal

from django.test import SimpleTestCase

from billing.services.exceptions import MixAllocationError
from billing.services.mix_allocator import (
    MODE_PRICE,
    MODE_QUANTITY,
    MixComboProduct,
    allocate_mix,
    attach_batches,
    fold_mix,
)
from inventory.services.batch_selection import BatchAllocation


class MixAllocatorTests(SimpleTestCase):
    """
    GUARANTEES:
    - Value is split evenly across products
    - The folded combo bills the sum of the parts at their weighted rate
    - Member batch selections end up under the combo name
    """

    def setUp(self):
        self.products = [
            MixComboProduct(id=1, name="Cumin", price=Decimal("50")),
            MixComboProduct(id=2, name="Pepper", price=Decimal("75")),
        ]

    def test_budget_split(self):
        out = allocate_mix(300, self.products, MODE_PRICE)

        self.assertEqual([p.allocated_price for p in out], [Decimal("150.00"), Decimal("150.00")])
        self.assertEqual([p.calculated_quantity for p in out], [Decimal("3.00"), Decimal("2.00")])

    def test_weight_split(self):
        out = allocate_mix(3, self.products, MODE_QUANTITY)

        self.assertEqual([p.calculated_quantity for p in out], [Decimal("1.50"), Decimal("1.50")])
        self.assertEqual([p.allocated_price for p in out], [Decimal("75.00"), Decimal("112.50")])

    def test_inputs_are_not_mutated(self):
        allocate_mix(300, self.products, MODE_PRICE)
        self.assertEqual(self.products[0].allocated_price, Decimal("0.00"))

    def test_free_product_gets_no_quantity_by_budget(self):
        out = allocate_mix(100, [MixComboProduct(id=3, name="Sample", price=Decimal("0"))])
        self.assertEqual(out[0].calculated_quantity, Decimal("0.00"))

    def test_empty_mix_or_bad_value(self):
        with self.assertRaises(MixAllocationError):
            allocate_mix(300, [], MODE_PRICE)
        with self.assertRaises(MixAllocationError):
            allocate_mix(0, self.products, MODE_PRICE)
        with self.assertRaises(MixAllocationError):
            allocate_mix("lots", self.products, MODE_PRICE)

    def test_selected_batches_set_the_quantity(self):
        out = attach_batches(
            allocate_mix(300, self.products),
            1,
            BatchAllocation(batch_ids=(11, 12), quantities=(Decimal("2"), Decimal("1.5"))),
        )
        self.assertEqual(out[0].calculated_quantity, Decimal("3.50"))
        self.assertEqual(out[1].calculated_quantity, Decimal("2.00"))

        with self.assertRaises(MixAllocationError):
            attach_batches(out, 99, BatchAllocation())

    def test_fold(self):
        products = allocate_mix(300, self.products)
        products = attach_batches(products, 1, BatchAllocation((11,), (Decimal("3"),)))
        products = attach_batches(products, 2, BatchAllocation((21,), (Decimal("2"),)))

        line, allocation = fold_mix("Garam Mix", products)

        self.assertEqual(line.name, "Garam Mix")
        self.assertEqual(line.quantity, Decimal("5.00"))
        self.assertEqual(line.rate, Decimal("60.00"))
        self.assertEqual(line.unit, "kg")
        self.assertEqual(line.gst_percentage, Decimal("5.00"))
        self.assertEqual(line.amount, Decimal("300.00"))
        self.assertEqual(len(line.members), 2)
        self.assertEqual(allocation.batch_ids, (11, 21))

    def test_blank_name_gets_a_generated_one(self):
        line, _ = fold_mix("  ", allocate_mix(300, self.products))
        self.assertTrue(line.name.startswith("Mix Combo "))
