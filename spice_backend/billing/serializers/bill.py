# PATH: billing/serializers/bill.py

"""
PATH: billing/serializers/bill.py

BILL SERIALIZERS

Purpose:
- Shared request/response shapes for the quote and submit endpoints.
- to_session() rebuilds a BillSession through the session transitions, so
  the HTTP layer never re-implements payment or reminder rules.

Field names are camelCase to match the desk and the back-office JSON.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from rest_framework import serializers

from billing.services import bill_session as bs
from billing.services.line_items import ComboLine, ComboMember, RegularLine
from billing.services.payment_options import OPTION_CUSTOM, PAYMENT_METHODS, PAYMENT_OPTIONS
from inventory.services.batch_selection import BatchAllocation
from inventory.services.units import ALL_UNITS

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


class ComboMemberSerializer(serializers.Serializer):
    productId = serializers.IntegerField()
    productName = serializers.CharField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=2)
    allocatedPrice = serializers.DecimalField(max_digits=14, decimal_places=2)


class BillLineSerializer(serializers.Serializer):
    productId = serializers.IntegerField(required=False, allow_null=True)
    productName = serializers.CharField(allow_blank=True, default="")
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3)
    unit = serializers.ChoiceField(choices=list(ALL_UNITS), default="kg")
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, default=0)
    gstPercentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, allow_null=True
    )
    isCombo = serializers.BooleanField(default=False)
    members = ComboMemberSerializer(many=True, required=False)

    def validate(self, attrs):
        if attrs.get("isCombo") and not (attrs.get("productName") or "").strip():
            raise serializers.ValidationError({"productName": ["A combo needs a name."]})
        return attrs


class BatchAllocationSerializer(serializers.Serializer):
    """key: product id (regular lines) or combo name."""
    key = serializers.CharField()
    batchIds = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
    quantities = serializers.ListField(
        child=serializers.DecimalField(max_digits=14, decimal_places=3), allow_empty=True
    )

    def validate(self, attrs):
        if len(attrs["batchIds"]) != len(attrs["quantities"]):
            raise serializers.ValidationError(
                {"quantities": ["batchIds and quantities must have the same length."]}
            )
        return attrs


class ReminderInputSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=["schedule", "skip"])
    dueDate = serializers.DateField(required=False, allow_null=True)
    reminderDate = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


def line_from_row(row: dict):
    gst = row.get("gstPercentage")
    if gst is None:
        gst = bs.default_gst_percentage()

    if row.get("isCombo"):
        return ComboLine(
            name=row["productName"].strip(),
            members=tuple(
                ComboMember(
                    product_id=m["productId"],
                    product_name=m["productName"],
                    quantity=m["quantity"],
                    allocated_price=m["allocatedPrice"],
                )
                for m in row.get("members") or []
            ),
            quantity=_money(row["quantity"]),
            unit=row.get("unit") or "kg",
            rate=_money(row.get("rate")),
            gst_percentage=_money(gst),
        )

    return RegularLine(
        product_id=row.get("productId"),
        product_name=(row.get("productName") or "").strip(),
        quantity=_money(row["quantity"]),
        unit=row.get("unit") or "kg",
        rate=_money(row.get("rate")),
        gst_percentage=_money(gst),
    )


class BillSessionSerializer(serializers.Serializer):
    billNo = serializers.CharField(required=False, allow_blank=True, default="")
    catererId = serializers.IntegerField(required=False, allow_null=True)
    billDate = serializers.DateField(required=False, allow_null=True)
    dueDate = serializers.DateField(required=False, allow_null=True)
    items = BillLineSerializer(many=True)
    allocations = BatchAllocationSerializer(many=True, required=False)
    paymentOption = serializers.ChoiceField(choices=list(PAYMENT_OPTIONS), default="full")
    paymentMethod = serializers.CharField(required=False, allow_blank=True, default="")
    amountPaid = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True, min_value=0
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    reminder = ReminderInputSerializer(required=False, allow_null=True)

    def validate_paymentMethod(self, value):
        m = (value or "").strip().lower()
        if m and m not in PAYMENT_METHODS:
            raise serializers.ValidationError(f"Unknown payment method: {value}")
        return m

    def to_session(self) -> bs.BillSession:
        """Build the session from validated data; BillSessionError surfaces as 400."""
        data = self.validated_data
        session = bs.new_session(
            bill_no=(data.get("billNo") or "").strip() or None,
            caterer_id=data.get("catererId"),
            bill_date=data.get("billDate"),
            due_date=data.get("dueDate"),
            notes=data.get("notes") or "",
        )

        allocations = {
            a["key"]: BatchAllocation(batch_ids=tuple(a["batchIds"]), quantities=tuple(a["quantities"]))
            for a in data.get("allocations") or []
            if a["batchIds"]
        }
        session = bs.load_lines(session, [line_from_row(r) for r in data["items"]], allocations)

        if data["paymentOption"] == OPTION_CUSTOM:
            session = bs.set_amount_paid(session, data.get("amountPaid") or 0)
        else:
            session = bs.choose_payment_option(session, data["paymentOption"])
        session = bs.set_payment_method(session, data.get("paymentMethod") or "")

        reminder = data.get("reminder")
        if reminder and session.has_balance:
            if reminder["action"] == "skip":
                session = bs.skip_reminder(session)
            else:
                session = bs.schedule_reminder(
                    session,
                    due_date=reminder.get("dueDate"),
                    reminder_date=reminder.get("reminderDate"),
                    notes=reminder.get("notes") or "",
                )
        return session


class BillSubmitSerializer(BillSessionSerializer):
    confirmShortfall = serializers.BooleanField(default=False)

