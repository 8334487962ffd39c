# billing/views/mix.py

"""
MIX CALCULATOR

POST /api/billing/mix/

- Splits a budget or a weight evenly across the chosen products.
- Products that already carry a batch selection bill what was selected.
  Those selections are taken as given: per-batch caps are not re-checked
  here, so callers resolve each product through /api/inventory/batch-plan/
  first and post the allocation it returned.
- With comboName, also returns the folded combo line and the merged batch
  allocation, ready to be added to the bill.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.parsers import JSONParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.serializers.mix import MixRequestSerializer, MixResponseSerializer
from billing.services.exceptions import MixAllocationError
from billing.services.mix_allocator import (
    COMBO_GST_PERCENTAGE,
    MixComboProduct,
    allocate_mix,
    attach_batches,
    fold_mix,
)
from inventory.services.batch_selection import BatchAllocation


def _allocation_dict(allocation: BatchAllocation) -> dict:
    return {
        "batchIds": list(allocation.batch_ids),
        "quantities": [str(q) for q in allocation.quantities],
    }


class MixCalculatorView(APIView):
    permission_classes = [AllowAny]
    parser_classes = [JSONParser]

    @extend_schema(
        request=MixRequestSerializer,
        responses={
            200: MixResponseSerializer,
            400: OpenApiResponse(description="Empty mix or non-positive value"),
        },
        description="Split a mix budget/weight across products and optionally fold it into one combo line.",
        tags=["Billing"],
    )
    def post(self, request):
        s = MixRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        rows = data["products"]
        products = [MixComboProduct(id=r["id"], name=r["name"], price=r["price"]) for r in rows]

        try:
            products = allocate_mix(data["value"], products, data["mode"])
            for r in rows:
                if r.get("batchIds"):
                    allocation = BatchAllocation(
                        batch_ids=tuple(r["batchIds"]), quantities=tuple(r["quantities"])
                    )
                    products = attach_batches(products, r["id"], allocation)

            combo = merged = None
            if "comboName" in data:
                gst = data.get("gstPercentage")
                combo, merged = fold_mix(
                    data["comboName"],
                    products,
                    COMBO_GST_PERCENTAGE if gst is None else gst,
                )
        except MixAllocationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        payload = {
            "mode": data["mode"],
            "products": [
                {
                    "id": p.id,
                    "name": p.name,
                    "price": p.price,
                    "allocatedPrice": p.allocated_price,
                    "calculatedQuantity": p.calculated_quantity,
                    "batchIds": list(p.selected_batches.batch_ids),
                    "quantities": [str(q) for q in p.selected_batches.quantities],
                }
                for p in products
            ],
            "combo": None,
            "allocation": None,
        }
        if combo is not None:
            payload["combo"] = {
                "productName": combo.name,
                "isCombo": True,
                "quantity": str(combo.quantity),
                "unit": combo.unit,
                "rate": str(combo.rate),
                "gstPercentage": str(combo.gst_percentage),
                "amount": str(combo.amount),
                "gstAmount": str(combo.gst_amount),
                "members": [
                    {
                        "productId": m.product_id,
                        "productName": m.product_name,
                        "quantity": str(m.quantity),
                        "allocatedPrice": str(m.allocated_price),
                    }
                    for m in combo.members
                ],
            }
            payload["allocation"] = {"key": combo.allocation_key, **_allocation_dict(merged)}

        return Response(MixResponseSerializer(payload).data, status=status.HTTP_200_OK)
