# PATH: billing/serializers/responses.py

"""
PATH: billing/serializers/responses.py

Response shapes for the billing endpoints (schema docs + consistent encoding).
"""

from __future__ import annotations

from rest_framework import serializers


class BillTotalsSerializer(serializers.Serializer):
    totalAmount = serializers.DecimalField(max_digits=14, decimal_places=2)
    totalGstAmount = serializers.DecimalField(max_digits=14, decimal_places=2)
    grandTotal = serializers.DecimalField(max_digits=14, decimal_places=2)
    balanceDue = serializers.DecimalField(max_digits=14, decimal_places=2)


class QuoteLineSerializer(serializers.Serializer):
    productId = serializers.IntegerField(allow_null=True)
    productName = serializers.CharField()
    isCombo = serializers.BooleanField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=2)
    unit = serializers.CharField()
    rate = serializers.DecimalField(max_digits=12, decimal_places=2)
    gstPercentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    gstAmount = serializers.DecimalField(max_digits=14, decimal_places=2)
    allocatedQuantity = serializers.DecimalField(max_digits=14, decimal_places=2)


class ShortfallSerializer(serializers.Serializer):
    key = serializers.CharField()
    productName = serializers.CharField()
    requiredQuantity = serializers.DecimalField(max_digits=14, decimal_places=2)
    allocatedQuantity = serializers.DecimalField(max_digits=14, decimal_places=2)
    missingQuantity = serializers.DecimalField(max_digits=14, decimal_places=2)


class QuoteResponseSerializer(serializers.Serializer):
    billNo = serializers.CharField()
    billDate = serializers.DateField()
    dueDate = serializers.DateField()
    items = QuoteLineSerializer(many=True)
    totals = BillTotalsSerializer()
    status = serializers.CharField()
    paymentOption = serializers.CharField()
    amountPaid = serializers.DecimalField(max_digits=14, decimal_places=2)
    amountsByOption = serializers.DictField(
        child=serializers.DecimalField(max_digits=14, decimal_places=2)
    )
    reminderState = serializers.CharField()
    promptReminder = serializers.BooleanField()
    awaitingReminder = serializers.BooleanField()
    shortfalls = ShortfallSerializer(many=True)


class NoticeSerializer(serializers.Serializer):
    level = serializers.CharField()
    title = serializers.CharField()
    message = serializers.CharField()


class DecrementFailureSerializer(serializers.Serializer):
    allocationKey = serializers.CharField()
    batchId = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    error = serializers.CharField()


class ReconciliationSerializer(serializers.Serializer):
    attempted = serializers.IntegerField()
    succeeded = serializers.IntegerField()
    failed = DecrementFailureSerializer(many=True)


class SubmissionResponseSerializer(serializers.Serializer):
    billNo = serializers.CharField()
    distribution = serializers.DictField()
    receiptFilename = serializers.CharField(allow_null=True)
    reminder = serializers.DictField(allow_null=True)
    reconciliation = ReconciliationSerializer()
    notices = NoticeSerializer(many=True)
    replayed = serializers.BooleanField()


class BillNumberResponseSerializer(serializers.Serializer):
    billNo = serializers.CharField()
    billDate = serializers.DateField()
    dueDate = serializers.DateField()


class AveragePriceResponseSerializer(serializers.Serializer):
    productName = serializers.CharField()
    averagePrice = serializers.DecimalField(max_digits=12, decimal_places=2)


class NextReminderRequestSerializer(serializers.Serializer):
    nextReminderDate = serializers.DateField()
