# billing/views/submit.py

"""
BILL SUBMIT

POST /api/billing/submit/

Body:
- application/json: the bill (same shape as /quote/) plus confirmShortfall
- multipart/form-data: field "bill" holds that JSON as text, field
  "receipt" holds the optional receipt image

Status codes:
- 201 bill created (200 when the bill number was already submitted and the
  stored result is replayed)
- 400 the bill cannot be submitted as entered
- 409 a confirmation is missing (batch shortfall, payment reminder) or the
      same bill is being submitted concurrently
- 502 the back office did not create the distribution
"""

from __future__ import annotations

import json
import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.serializers.bill import BillSubmitSerializer
from billing.serializers.responses import SubmissionResponseSerializer
from billing.services.exceptions import (
    BatchShortfallNotConfirmed,
    BillSessionError,
    BillValidationError,
    DistributionCreationError,
    ReminderRequired,
    SubmissionInProgress,
)
from billing.services.submission import ReceiptFile, SubmissionResult, submit_bill
from billing.views.quote import shortfall_rows
from inventory.services.units import UnitConversionError

logger = logging.getLogger("billing")


def _bill_data(request):
    if request.content_type and request.content_type.startswith("multipart/"):
        raw = request.data.get("bill") or "{}"
        try:
            return json.loads(raw)
        except ValueError:
            return None
    return request.data


def build_submission_payload(result: SubmissionResult) -> dict:
    report = result.reconciliation
    return {
        "billNo": result.bill_no,
        "distribution": result.distribution,
        "receiptFilename": result.receipt_filename,
        "reminder": result.reminder,
        "reconciliation": {
            "attempted": report.attempted,
            "succeeded": len(report.succeeded),
            "failed": [
                {
                    "allocationKey": o.allocation_key,
                    "batchId": o.batch_id,
                    "quantity": o.quantity,
                    "error": o.error,
                }
                for o in report.failed
            ],
        },
        "notices": [
            {"level": n.level, "title": n.title, "message": n.message} for n in result.notices
        ],
        "replayed": result.replayed,
    }


class BillSubmitView(APIView):
    permission_classes = [AllowAny]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    @extend_schema(
        request=BillSubmitSerializer,
        responses={
            201: SubmissionResponseSerializer,
            200: OpenApiResponse(
                response=SubmissionResponseSerializer,
                description="Already submitted; stored result replayed",
            ),
            400: OpenApiResponse(description="Bill cannot be submitted as entered"),
            409: OpenApiResponse(description="Batch shortfall / payment reminder not confirmed"),
            502: OpenApiResponse(description="Back office failed to create the distribution"),
        },
        description=(
            "Create the caterer bill in the back office, then decrement the allocated "
            "inventory batches. Receipt upload, reminder creation and decrements are best-effort."
        ),
        tags=["Billing"],
    )
    def post(self, request):
        data = _bill_data(request)
        if data is None:
            return Response(
                {"detail": "Field 'bill' must be valid JSON."}, status=status.HTTP_400_BAD_REQUEST
            )

        s = BillSubmitSerializer(data=data)
        s.is_valid(raise_exception=True)

        upload = request.FILES.get("receipt") if hasattr(request, "FILES") else None
        receipt = ReceiptFile.from_upload(upload) if upload else None

        try:
            session = s.to_session()
            result = submit_bill(
                session,
                confirm_shortfall=s.validated_data.get("confirmShortfall", False),
                receipt=receipt,
            )
        except BillValidationError as exc:
            return Response(
                {"detail": str(exc), "field": exc.field}, status=status.HTTP_400_BAD_REQUEST
            )
        except (BillSessionError, UnitConversionError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except BatchShortfallNotConfirmed as exc:
            return Response(
                {
                    "detail": str(exc),
                    "code": "batch_shortfall",
                    "shortfalls": shortfall_rows(exc.shortfalls),
                },
                status=status.HTTP_409_CONFLICT,
            )
        except ReminderRequired as exc:
            return Response(
                {
                    "detail": str(exc),
                    "code": "reminder_required",
                    "balanceDue": str(session.totals.balance_due),
                    "dueDate": session.due_date.isoformat(),
                },
                status=status.HTTP_409_CONFLICT,
            )
        except SubmissionInProgress as exc:
            return Response(
                {"detail": str(exc), "code": "in_progress"}, status=status.HTTP_409_CONFLICT
            )
        except DistributionCreationError as exc:
            return Response(
                {"detail": f"Error creating bill: {exc}"}, status=status.HTTP_502_BAD_GATEWAY
            )

        code = status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED
        out = SubmissionResponseSerializer(build_submission_payload(result))
        return Response(out.data, status=code)
