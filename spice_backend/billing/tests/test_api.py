# billing/tests/test_api.py

import json
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.conf import settings
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from rest_framework.test import APISimpleTestCase

from backoffice.services.api_client import create_distribution as real_create_distribution
from backoffice.services.exceptions import BackofficeHTTPError, BackofficeUnavailableError
from backoffice.tests.servers import hang_up_server

API = "backoffice.services.api_client."


def _bill(**overrides):
    body = {
        "billNo": "CB-20250114-007",
        "catererId": 3,
        "billDate": "2025-01-14",
        "items": [
            {"productId": 1, "productName": "Cumin", "quantity": "10", "unit": "kg", "rate": "100", "gstPercentage": "0"},
        ],
        "allocations": [{"key": "1", "batchIds": [11, 12], "quantities": ["6", "4"]}],
        "paymentOption": "full",
        "paymentMethod": "cash",
    }
    body.update(overrides)
    return body


class BillQuoteApiTests(APISimpleTestCase):
    def test_quote(self):
        body = {
            "billNo": "CB-20250114-007",
            "billDate": "2025-01-14",
            "items": [
                {"productId": 1, "productName": "Saffron", "quantity": "2", "unit": "g", "rate": "500"},
                {"productName": "", "quantity": "1", "rate": "1"},
            ],
            "paymentOption": "half",
        }
        res = self.client.post(reverse("billing:bill-quote"), body, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(len(res.data["items"]), 1)
        self.assertEqual(res.data["items"][0]["amount"], "1.00")
        self.assertEqual(res.data["items"][0]["gstAmount"], "0.05")
        self.assertEqual(res.data["totals"]["grandTotal"], "1.05")
        self.assertEqual(res.data["amountPaid"], "0.53")
        self.assertEqual(res.data["totals"]["balanceDue"], "0.52")
        self.assertEqual(res.data["status"], "partial")
        self.assertEqual(res.data["dueDate"], "2025-01-29")
        self.assertTrue(res.data["promptReminder"])
        self.assertEqual(res.data["reminderState"], "pending")
        self.assertEqual(res.data["shortfalls"][0]["key"], "1")
        self.assertEqual(res.data["shortfalls"][0]["missingQuantity"], "2.00")

    def test_bad_unit(self):
        body = {"items": [{"productId": 1, "productName": "Cumin", "quantity": "1", "unit": "cup"}]}
        res = self.client.post(reverse("billing:bill-quote"), body, format="json")
        self.assertEqual(res.status_code, 400)

    def test_unknown_payment_method(self):
        res = self.client.post(reverse("billing:bill-quote"), _bill(paymentMethod="barter"), format="json")
        self.assertEqual(res.status_code, 400)
        self.assertIn("paymentMethod", res.data)

    def test_reminder_after_due_date(self):
        body = _bill(
            paymentOption="half",
            reminder={"action": "schedule", "dueDate": "2025-01-20", "reminderDate": "2025-01-25"},
        )
        res = self.client.post(reverse("billing:bill-quote"), body, format="json")
        self.assertEqual(res.status_code, 400)


class MixApiTests(APISimpleTestCase):
    def test_budget_mix_folded(self):
        body = {
            "value": "300",
            "mode": "price",
            "products": [
                {"id": 1, "name": "Cumin", "price": "50", "batchIds": [11], "quantities": ["3"]},
                {"id": 2, "name": "Pepper", "price": "75"},
            ],
            "comboName": "Garam Mix",
        }
        res = self.client.post(reverse("billing:bill-mix"), body, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(
            [p["calculatedQuantity"] for p in res.data["products"]], ["3.00", "2.00"]
        )
        self.assertEqual(res.data["combo"]["productName"], "Garam Mix")
        self.assertEqual(res.data["combo"]["quantity"], "5.00")
        self.assertEqual(res.data["combo"]["rate"], "60.00")
        self.assertEqual(res.data["allocation"]["key"], "Garam Mix")
        self.assertEqual(res.data["allocation"]["batchIds"], [11])

    def test_without_combo_name(self):
        body = {"value": "3", "mode": "quantity", "products": [{"id": 1, "name": "Cumin", "price": "100"}]}
        res = self.client.post(reverse("billing:bill-mix"), body, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertIsNone(res.data["combo"])
        self.assertEqual(res.data["products"][0]["allocatedPrice"], "300.00")

    def test_selected_batches_are_billed_as_given(self):
        body = {
            "value": "300",
            "products": [
                {"id": 1, "name": "Cumin", "price": "50", "batchIds": [11, 12], "quantities": ["2", "2.5"]},
            ],
        }
        res = self.client.post(reverse("billing:bill-mix"), body, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["products"][0]["calculatedQuantity"], "4.50")
        self.assertEqual(res.data["products"][0]["quantities"], ["2.000", "2.500"])

    def test_negative_batch_quantity(self):
        body = {
            "value": "300",
            "products": [{"id": 1, "name": "Cumin", "price": "50", "batchIds": [11], "quantities": ["-1"]}],
        }
        res = self.client.post(reverse("billing:bill-mix"), body, format="json")
        self.assertEqual(res.status_code, 400)

    def test_zero_value(self):
        body = {"value": "0", "products": [{"id": 1, "name": "Cumin", "price": "100"}]}
        res = self.client.post(reverse("billing:bill-mix"), body, format="json")
        self.assertEqual(res.status_code, 400)


@patch(API + "adjust_inventory_quantity")
@patch(API + "create_distribution")
class BillSubmitApiTests(APISimpleTestCase):
    def setUp(self):
        cache.clear()
        self.url = reverse("billing:bill-submit")

    def test_created_then_replayed(self, create, adjust):
        create.return_value = {"id": 41}

        res = self.client.post(self.url, _bill(), format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["billNo"], "CB-20250114-007")
        self.assertEqual(res.data["reconciliation"]["attempted"], 2)
        self.assertFalse(res.data["replayed"])

        res = self.client.post(self.url, _bill(), format="json")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["replayed"])
        self.assertEqual(create.call_count, 1)

    def test_validation_error(self, create, adjust):
        res = self.client.post(self.url, _bill(catererId=None), format="json")

        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["field"], "caterer_id")
        create.assert_not_called()

    def test_shortfall_conflict_then_confirmed(self, create, adjust):
        create.return_value = {"id": 41}
        body = _bill(allocations=[])

        res = self.client.post(self.url, body, format="json")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "batch_shortfall")
        self.assertEqual(res.data["shortfalls"][0]["missingQuantity"], Decimal("10.00"))

        res = self.client.post(self.url, {**body, "confirmShortfall": True}, format="json")
        self.assertEqual(res.status_code, 201)
        adjust.assert_not_called()

    def test_reminder_conflict(self, create, adjust):
        res = self.client.post(self.url, _bill(paymentOption="half"), format="json")

        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "reminder_required")
        self.assertEqual(res.data["balanceDue"], "500.00")
        self.assertEqual(res.data["dueDate"], "2025-01-29")

    @patch(API + "create_payment_reminder")
    def test_scheduled_reminder(self, remind, create, adjust):
        create.return_value = {"id": 41}
        remind.return_value = {"id": 9}
        body = _bill(
            paymentOption="half",
            reminder={"action": "schedule", "reminderDate": "2025-01-22"},
        )

        res = self.client.post(self.url, body, format="json")

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["reminder"], {"id": 9})
        self.assertEqual(remind.call_args.args[0]["reminderDate"], "2025-01-22")

    def test_distribution_failure(self, create, adjust):
        create.side_effect = BackofficeHTTPError("Duplicate bill number", status=422)

        res = self.client.post(self.url, _bill(), format="json")

        self.assertEqual(res.status_code, 502)
        self.assertIn("Duplicate bill number", res.data["detail"])

    def test_dropped_distribution_connection_is_a_bad_gateway(self, create, adjust):
        create.side_effect = real_create_distribution
        with hang_up_server() as base_url:
            backoffice = {**settings.BACKOFFICE_API, "BASE_URL": base_url}
            with override_settings(BACKOFFICE_API=backoffice):
                res = self.client.post(self.url, _bill(), format="json")

        self.assertEqual(res.status_code, 502)
        adjust.assert_not_called()

    @patch(API + "upload_receipt")
    def test_multipart_with_receipt(self, upload, create, adjust):
        create.return_value = {"id": 41}
        upload.return_value = "receipt-41.jpg"
        receipt = SimpleUploadedFile("r.jpg", b"\xff\xd8\xff", content_type="image/jpeg")

        res = self.client.post(
            self.url, {"bill": json.dumps(_bill()), "receipt": receipt}, format="multipart"
        )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["receiptFilename"], "receipt-41.jpg")
        self.assertEqual(upload.call_args.kwargs["content"], b"\xff\xd8\xff")
        self.assertEqual(upload.call_args.kwargs["content_type"], "image/jpeg")

    def test_multipart_with_bad_json(self, create, adjust):
        res = self.client.post(self.url, {"bill": "{nope"}, format="multipart")
        self.assertEqual(res.status_code, 400)


class LookupApiTests(APISimpleTestCase):
    @patch("billing.views.lookups.timezone.localdate", return_value=date(2025, 1, 14))
    def test_bill_number(self, _today):
        res = self.client.get(reverse("billing:bill-number"))

        self.assertEqual(res.status_code, 200)
        self.assertRegex(res.data["billNo"], r"^CB-20250114-\d{3}$")
        self.assertEqual(res.data["dueDate"], "2025-01-29")

    @patch(API + "fetch_average_price", return_value=Decimal("612.5"))
    def test_average_price(self, fetch):
        res = self.client.get(reverse("billing:product-average-price", args=["Black Pepper"]))

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["averagePrice"], "612.50")
        fetch.assert_called_once_with("Black Pepper")

    @patch(API + "fetch_average_price", return_value=None)
    def test_average_price_unknown(self, _fetch):
        res = self.client.get(reverse("billing:product-average-price", args=["Clove"]))
        self.assertEqual(res.status_code, 404)

    @patch(API + "fetch_average_price", side_effect=BackofficeUnavailableError("down"))
    def test_average_price_backoffice_down(self, _fetch):
        res = self.client.get(reverse("billing:product-average-price", args=["Clove"]))
        self.assertEqual(res.status_code, 502)

    @patch(API + "set_next_reminder", return_value={"id": 5, "nextReminderDate": "2025-02-01"})
    def test_next_reminder(self, snooze):
        res = self.client.post(
            reverse("billing:reminder-next", args=[5]),
            {"nextReminderDate": "2025-02-01"},
            format="json",
        )

        self.assertEqual(res.status_code, 200)
        snooze.assert_called_once_with(reminder_id=5, next_reminder_date=date(2025, 2, 1))

    @patch(API + "set_next_reminder", side_effect=BackofficeHTTPError("not found", status=404))
    def test_next_reminder_unknown(self, _snooze):
        res = self.client.post(
            reverse("billing:reminder-next", args=[5]),
            {"nextReminderDate": "2025-02-01"},
            format="json",
        )
        self.assertEqual(res.status_code, 404)
