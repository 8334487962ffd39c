# inventory/tests/test_batch_selection.py

from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from inventory.services.batch_selection import (
    SELECTION_EXACT,
    SELECTION_OVER,
    SELECTION_UNDER,
    BatchSelection,
    InventoryBatch,
    eligible_batches,
)
from inventory.services.exceptions import BatchDataError, BatchSelectionError


def _batch(batch_id, qty, expiry=None, status="active", unit="kg"):
    return InventoryBatch(
        id=batch_id,
        product_id=10,
        batch_number=f"B-{batch_id}",
        quantity=Decimal(str(qty)),
        product_unit=unit,
        expiry_date=expiry,
        status=status,
    )


class FefoOrderingTests(SimpleTestCase):
    """
    GUARANTEES:
    - Only active batches with stock are offered
    - Earliest expiry first; batches without expiry last
    """

    def test_candidates_are_ordered_by_expiry(self):
        batches = [
            _batch(1, 5, date(2025, 3, 1)),
            _batch(2, 5, None),
            _batch(3, 5, date(2025, 1, 1)),
            _batch(4, 5, date(2025, 2, 1)),
        ]
        self.assertEqual([b.id for b in eligible_batches(batches)], [3, 4, 1, 2])

    def test_inactive_and_empty_batches_are_excluded(self):
        batches = [
            _batch(1, 5, date(2025, 1, 1), status="inactive"),
            _batch(2, 0, date(2025, 1, 1)),
            _batch(3, 5, date(2025, 1, 1), status="depleted"),
            _batch(4, 2, date(2025, 6, 1)),
        ]
        self.assertEqual([b.id for b in eligible_batches(batches)], [4])

    def test_from_api_reads_back_office_rows(self):
        batch = InventoryBatch.from_api(
            {
                "id": 9,
                "productId": 10,
                "batchNumber": "TUR-01",
                "quantity": "4.5",
                "productUnit": "KG",
                "expiryDate": "2025-03-01T00:00:00.000Z",
                "status": "Active",
            }
        )
        self.assertEqual(batch.expiry_date, date(2025, 3, 1))
        self.assertEqual(batch.product_unit, "kg")
        self.assertTrue(batch.is_eligible)

    def test_from_api_rejects_bad_expiry(self):
        with self.assertRaises(BatchDataError):
            InventoryBatch.from_api({"id": 1, "quantity": 1, "expiryDate": "soon"})


class BatchSelectionTests(SimpleTestCase):
    """
    GUARANTEES:
    - Per-batch cap, never silently dropped
    - Under / exact / over are all reportable states
    """

    def setUp(self):
        self.selection = BatchSelection(
            required_quantity=10,
            required_unit="kg",
            batches=[_batch(2, 8, date(2025, 2, 1)), _batch(1, 5, date(2025, 1, 1))],
        )

    def test_earliest_batch_is_offered_first(self):
        self.assertEqual(self.selection.candidates[0].id, 1)

    def test_select_takes_min_of_remaining_and_available(self):
        self.assertEqual(self.selection.suggested_quantity(1), Decimal("5"))
        self.selection.select_remaining(1)
        self.assertEqual(self.selection.suggested_quantity(2), Decimal("5"))
        self.assertEqual(self.selection.status_message(), "Still need: 5 kg")

    def test_selecting_everything_reports_excess(self):
        self.selection.select_all(1)
        self.selection.select_all(2)

        totals = self.selection.totals()
        self.assertEqual(totals.total_selected, Decimal("13.00"))
        self.assertEqual(totals.status, SELECTION_OVER)
        self.assertEqual(self.selection.status_message(), "Excess: 3 kg")
        self.assertEqual(self.selection.progress_percent(), Decimal("100.00"))

    def test_exact_allocation_is_complete(self):
        self.selection.set_quantity(1, 5)
        self.selection.set_quantity(2, 5)
        self.assertEqual(self.selection.totals().status, SELECTION_EXACT)
        self.assertEqual(self.selection.status_message(), "Quantity complete")

    def test_typed_quantity_is_clamped_with_warning(self):
        warning = self.selection.set_quantity(2, 20)
        self.assertIsNotNone(warning)
        self.assertIn("Maximum available is 8", warning.message)
        self.assertEqual(self.selection.selected[2], Decimal("8"))

    def test_zero_or_negative_removes_batch(self):
        self.selection.set_quantity(1, 3)
        self.selection.set_quantity(1, 0)
        self.assertNotIn(1, self.selection.selected)
        self.assertEqual(self.selection.totals().status, SELECTION_UNDER)

    def test_step_past_available_warns_only_below_max(self):
        self.selection.set_quantity(1, "4.8")
        warning = self.selection.adjust_quantity(1, "0.5")
        self.assertEqual(warning.message, "Cannot exceed available quantity.")
        self.assertEqual(self.selection.selected[1], Decimal("4.80"))

        self.selection.set_quantity(1, 5)
        self.assertIsNone(self.selection.adjust_quantity(1, "0.5"))
        self.assertEqual(self.selection.selected[1], Decimal("5"))

    def test_step_down_to_zero_removes(self):
        self.selection.set_quantity(1, "0.5")
        self.selection.adjust_quantity(1, "-0.5")
        self.assertNotIn(1, self.selection.selected)

    def test_changing_unit_converts_target_and_selection(self):
        self.selection.set_quantity(1, 5)
        self.selection.change_unit("g")
        self.assertEqual(self.selection.required_quantity, Decimal("10000.00"))
        self.assertEqual(self.selection.selected[1], Decimal("5000.00"))
        self.assertEqual(self.selection.available_quantity(2), Decimal("8000"))

    def test_batches_stored_in_grams_are_offered_in_required_unit(self):
        selection = BatchSelection(
            required_quantity=1, required_unit="kg", batches=[_batch(5, 2000, unit="g")]
        )
        self.assertEqual(selection.available_quantity(5), Decimal("2.000"))

    def test_unknown_batch_is_an_error(self):
        with self.assertRaises(BatchSelectionError):
            self.selection.set_quantity(99, 1)

    def test_allocation_keeps_batch_quantity_pairs(self):
        self.selection.set_quantity(1, 5)
        self.selection.set_quantity(2, "2.5")
        allocation = self.selection.to_allocation()
        self.assertEqual(allocation.batch_ids, (1, 2))
        self.assertEqual(allocation.total, Decimal("7.50"))
