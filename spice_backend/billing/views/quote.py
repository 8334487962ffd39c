# billing/views/quote.py

"""
BILL QUOTE

POST /api/billing/quote/

Stateless recompute of the bill being typed: the desk posts its current
rows, allocations and payment choice and gets back everything it renders
(line amounts, totals, what each payment option would charge, whether the
reminder step is due, which rows are short on batches).

Nothing is sent to the back office.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.serializers.bill import BillSessionSerializer
from billing.serializers.responses import QuoteResponseSerializer
from billing.services.bill_session import BillSession
from billing.services.exceptions import BillSessionError
from billing.services.line_items import is_combo
from billing.services.payment_options import amounts_by_option
from billing.services.validation import find_batch_shortfalls
from inventory.services.units import UnitConversionError


def shortfall_rows(shortfalls) -> list[dict]:
    return [
        {
            "key": s.allocation_key,
            "productName": s.product_name,
            "requiredQuantity": s.required_quantity,
            "allocatedQuantity": s.allocated_quantity,
            "missingQuantity": s.missing_quantity,
        }
        for s in shortfalls
    ]


def build_quote(session: BillSession) -> dict:
    return {
        "billNo": session.bill_no,
        "billDate": session.bill_date,
        "dueDate": session.due_date,
        "items": [
            {
                "productId": line.product_id,
                "productName": line.product_name,
                "isCombo": is_combo(line),
                "quantity": line.quantity,
                "unit": line.unit,
                "rate": line.rate,
                "gstPercentage": line.gst_percentage,
                "amount": line.amount,
                "gstAmount": line.gst_amount,
                "allocatedQuantity": session.allocation_for(line).total,
            }
            for line in session.items
        ],
        "totals": session.totals.as_dict(),
        "status": session.status,
        "paymentOption": session.payment_option,
        "amountPaid": session.amount_paid,
        "amountsByOption": amounts_by_option(session.totals.grand_total, session.amount_paid),
        "reminderState": session.reminder.state,
        "promptReminder": session.option_prompts_reminder,
        "awaitingReminder": session.awaiting_reminder,
        "shortfalls": shortfall_rows(find_batch_shortfalls(session)),
    }


class BillQuoteView(APIView):
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]

    @extend_schema(
        request=BillSessionSerializer,
        responses={
            200: QuoteResponseSerializer,
            400: OpenApiResponse(description="Bad request / validation error"),
        },
        description="Recompute line amounts, totals and payment/reminder state for a bill in progress.",
        tags=["Billing"],
    )
    def post(self, request):
        s = BillSessionSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            session = s.to_session()
        except (BillSessionError, UnitConversionError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(QuoteResponseSerializer(build_quote(session)).data, status=status.HTTP_200_OK)
