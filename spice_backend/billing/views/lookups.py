# billing/views/lookups.py

"""
BILLING LOOKUPS / PROXIES

- GET  /api/billing/bill-number/                          fresh CB-YYYYMMDD-NNN
- GET  /api/billing/products/<name>/average-price/        rate prefill
- POST /api/billing/reminders/<id>/next-reminder/         snooze a reminder

The last two forward to the back office; its failures surface as 502.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from django.utils import timezone
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from backoffice.services import api_client
from backoffice.services.exceptions import BackofficeError, BackofficeHTTPError
from billing.serializers.responses import (
    AveragePriceResponseSerializer,
    BillNumberResponseSerializer,
    NextReminderRequestSerializer,
)
from billing.services.bill_numbers import generate_bill_number
from billing.services.bill_session import default_due_days

logger = logging.getLogger("billing")


@extend_schema(responses={200: BillNumberResponseSerializer}, tags=["Billing"])
@api_view(["GET"])
@permission_classes([AllowAny])
def bill_number(request):
    today = timezone.localdate()
    payload = {
        "billNo": generate_bill_number(today),
        "billDate": today,
        "dueDate": today + timedelta(days=default_due_days()),
    }
    return Response(BillNumberResponseSerializer(payload).data)


class AveragePriceView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(
        responses={
            200: AveragePriceResponseSerializer,
            404: OpenApiResponse(description="No price data for this product"),
            502: OpenApiResponse(description="Back office unavailable"),
        },
        tags=["Billing"],
    )
    def get(self, request, name: str):
        try:
            price = api_client.fetch_average_price(name)
        except BackofficeError as exc:
            logger.warning("Average price lookup failed", extra={"product_name": name})
            return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)

        if price is None:
            return Response(
                {"detail": f"No price data for {name}"}, status=status.HTTP_404_NOT_FOUND
            )
        return Response(
            AveragePriceResponseSerializer({"productName": name, "averagePrice": price}).data
        )


class NextReminderView(APIView):
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]

    @extend_schema(
        request=NextReminderRequestSerializer,
        responses={
            200: OpenApiResponse(description="Back-office reminder, as returned"),
            404: OpenApiResponse(description="Unknown reminder"),
            502: OpenApiResponse(description="Back office unavailable"),
        },
        tags=["Billing"],
    )
    def post(self, request, reminder_id: int):
        s = NextReminderRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            result = api_client.set_next_reminder(
                reminder_id=reminder_id,
                next_reminder_date=s.validated_data["nextReminderDate"],
            )
        except BackofficeHTTPError as exc:
            code = status.HTTP_404_NOT_FOUND if exc.status == 404 else status.HTTP_502_BAD_GATEWAY
            return Response({"detail": str(exc)}, status=code)
        except BackofficeError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)

        return Response(result, status=status.HTTP_200_OK)
