# PATH: billing/serializers/mix.py

"""
PATH: billing/serializers/mix.py

MIX CALCULATOR SERIALIZERS

Transport layer only; splitting rules live in billing/services/mix_allocator.py.
"""

from __future__ import annotations

from rest_framework import serializers

from billing.services.mix_allocator import MIX_MODES


class MixProductInputSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    batchIds = serializers.ListField(child=serializers.IntegerField(), required=False)
    quantities = serializers.ListField(
        child=serializers.DecimalField(max_digits=14, decimal_places=3, min_value=0),
        required=False,
    )

    def validate(self, attrs):
        if len(attrs.get("batchIds") or []) != len(attrs.get("quantities") or []):
            raise serializers.ValidationError(
                {"quantities": ["batchIds and quantities must have the same length."]}
            )
        return attrs


class MixRequestSerializer(serializers.Serializer):
    """
    value: budget (price mode) or total weight in kg (quantity mode).
    comboName: when present (blank allowed), the mix is also folded into a combo line.
    """
    value = serializers.DecimalField(max_digits=14, decimal_places=2)
    mode = serializers.ChoiceField(choices=list(MIX_MODES), default="price")
    products = MixProductInputSerializer(many=True)
    comboName = serializers.CharField(required=False, allow_blank=True)
    gstPercentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True
    )


class MixProductOutputSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    allocatedPrice = serializers.DecimalField(max_digits=14, decimal_places=2)
    calculatedQuantity = serializers.DecimalField(max_digits=14, decimal_places=2)
    batchIds = serializers.ListField(child=serializers.IntegerField())
    quantities = serializers.ListField(child=serializers.CharField())


class MixResponseSerializer(serializers.Serializer):
    mode = serializers.CharField()
    products = MixProductOutputSerializer(many=True)
    combo = serializers.DictField(required=False, allow_null=True)
    allocation = serializers.DictField(required=False, allow_null=True)
