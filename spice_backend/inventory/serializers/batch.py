# PATH: inventory/serializers/batch.py

"""
PATH: inventory/serializers/batch.py

BATCH PLAN SERIALIZERS

Transport layer only: request/response shapes for POST /api/inventory/batch-plan/.
Selection rules live in inventory/services/batch_selection.py.

Field names follow the back-office JSON (camelCase) so the desk can forward
rows it already holds without renaming them.
"""

from __future__ import annotations

from rest_framework import serializers

from inventory.services.units import ALL_UNITS

SELECTION_ACTIONS = ["set", "adjust", "select", "select_all", "remove"]


class InventoryBatchRowSerializer(serializers.Serializer):
    """One back-office batch row (inline candidates)."""
    id = serializers.IntegerField()
    productId = serializers.IntegerField(required=False, allow_null=True)
    batchNumber = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    productUnit = serializers.ChoiceField(choices=list(ALL_UNITS), default="kg")
    expiryDate = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    status = serializers.CharField(default="active")
    unitPrice = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )


class BatchSelectionStepSerializer(serializers.Serializer):
    """
    One biller action, replayed in order:
    - set:        type a quantity (value)
    - adjust:     +/- step (value, e.g. 0.5 or -0.5)
    - select:     take min(remaining, available)
    - select_all: take the whole batch
    - remove:     drop the batch
    """
    batchId = serializers.IntegerField()
    action = serializers.ChoiceField(choices=SELECTION_ACTIONS, default="set")
    value = serializers.DecimalField(
        max_digits=14, decimal_places=3, required=False, allow_null=True
    )


class BatchPlanRequestSerializer(serializers.Serializer):
    productId = serializers.IntegerField(required=False, allow_null=True)
    requiredQuantity = serializers.DecimalField(max_digits=14, decimal_places=3, min_value=0)
    requiredUnit = serializers.ChoiceField(choices=list(ALL_UNITS), default="kg")
    batches = InventoryBatchRowSerializer(many=True, required=False)
    selections = BatchSelectionStepSerializer(many=True, required=False)

    def validate(self, attrs):
        if attrs.get("batches") is None and attrs.get("productId") is None:
            raise serializers.ValidationError(
                {"productId": ["Provide productId or inline batches."]}
            )
        return attrs


class BatchCandidateSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    batchNumber = serializers.CharField()
    expiryDate = serializers.DateField(allow_null=True)
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    productUnit = serializers.CharField()
    availableInRequiredUnit = serializers.DecimalField(max_digits=14, decimal_places=3)
    selectedQuantity = serializers.DecimalField(max_digits=14, decimal_places=2)
    suggestedQuantity = serializers.DecimalField(max_digits=14, decimal_places=2)


class SelectionWarningSerializer(serializers.Serializer):
    batchId = serializers.IntegerField()
    message = serializers.CharField()


class BatchPlanResponseSerializer(serializers.Serializer):
    requiredQuantity = serializers.DecimalField(max_digits=14, decimal_places=2)
    requiredUnit = serializers.CharField()
    candidates = BatchCandidateSerializer(many=True)
    warnings = SelectionWarningSerializer(many=True)
    totalSelected = serializers.DecimalField(max_digits=14, decimal_places=2)
    remainingNeeded = serializers.DecimalField(max_digits=14, decimal_places=2)
    totalAvailable = serializers.DecimalField(max_digits=14, decimal_places=3)
    status = serializers.CharField()
    statusMessage = serializers.CharField()
    progressPercent = serializers.DecimalField(max_digits=5, decimal_places=2)
    allocation = serializers.DictField()
