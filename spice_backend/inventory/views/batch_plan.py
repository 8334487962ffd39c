# inventory/views/batch_plan.py

"""
BATCH PLAN (FEFO ALLOCATION PROPOSAL)

POST /api/inventory/batch-plan/

- Candidates come from the back office (productId) or inline (batches).
- Selection steps are replayed in order against a fresh BatchSelection, so
  the endpoint stays stateless: the desk re-posts the whole step list.
- Clamps are reported as warnings, never as errors.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from backoffice.services import api_client
from backoffice.services.exceptions import BackofficeError
from inventory.serializers.batch import (
    BatchPlanRequestSerializer,
    BatchPlanResponseSerializer,
)
from inventory.services.batch_selection import BatchSelection, batches_from_api
from inventory.services.exceptions import BatchDataError, BatchSelectionError

logger = logging.getLogger("inventory")


def _apply_step(selection: BatchSelection, step: dict):
    batch_id = step["batchId"]
    action = step.get("action") or "set"
    value = step.get("value")

    if action == "set":
        return selection.set_quantity(batch_id, value)
    if action == "adjust":
        return selection.adjust_quantity(batch_id, value or 0)
    if action == "select":
        selection.select_remaining(batch_id)
    elif action == "select_all":
        selection.select_all(batch_id)
    elif action == "remove":
        selection.remove(batch_id)
    return None


def build_plan_payload(selection: BatchSelection, warnings) -> dict:
    totals = selection.totals()
    candidates = [
        {
            "id": b.id,
            "batchNumber": b.batch_number,
            "expiryDate": b.expiry_date,
            "quantity": b.quantity,
            "productUnit": b.product_unit,
            "availableInRequiredUnit": selection.available_quantity(b.id),
            "selectedQuantity": selection.selected.get(b.id, 0),
            "suggestedQuantity": selection.suggested_quantity(b.id),
        }
        for b in selection.candidates
    ]
    return {
        "requiredQuantity": selection.required_quantity,
        "requiredUnit": selection.required_unit,
        "candidates": candidates,
        "warnings": [{"batchId": w.batch_id, "message": w.message} for w in warnings],
        "totalSelected": totals.total_selected,
        "remainingNeeded": totals.remaining_needed,
        "totalAvailable": selection.total_available(),
        "status": totals.status,
        "statusMessage": selection.status_message(),
        "progressPercent": selection.progress_percent(),
        "allocation": {
            "batchIds": list(totals.batch_ids),
            "quantities": [str(q) for q in totals.quantities],
        },
    }


class BatchPlanView(APIView):
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]

    @extend_schema(
        request=BatchPlanRequestSerializer,
        responses={
            200: BatchPlanResponseSerializer,
            400: OpenApiResponse(description="Invalid payload or unknown batch"),
            502: OpenApiResponse(description="Back-office inventory unavailable"),
        },
        description=(
            "FEFO batch candidates for one product plus the allocation that results "
            "from replaying the biller's selection steps."
        ),
        tags=["Inventory"],
    )
    def post(self, request):
        s = BatchPlanRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        rows = data.get("batches")
        if rows is None:
            try:
                rows = api_client.fetch_inventory_by_product(data["productId"])
            except BackofficeError as exc:
                logger.warning(
                    "Could not load inventory batches",
                    extra={"product_id": data["productId"]},
                )
                return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)
            bad_status = status.HTTP_502_BAD_GATEWAY
        else:
            rows = [dict(r) for r in rows]
            bad_status = status.HTTP_400_BAD_REQUEST

        try:
            batches = batches_from_api(rows)
        except BatchDataError as exc:
            return Response({"detail": str(exc)}, status=bad_status)

        selection = BatchSelection(
            required_quantity=data["requiredQuantity"],
            required_unit=data["requiredUnit"],
            batches=batches,
        )

        warnings = []
        try:
            for step in data.get("selections") or []:
                warning = _apply_step(selection, step)
                if warning is not None:
                    warnings.append(warning)
        except BatchSelectionError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        out = BatchPlanResponseSerializer(build_plan_payload(selection, warnings))
        return Response(out.data, status=status.HTTP_200_OK)
