# billing/services/submission.py

"""
BILL SUBMISSION ORCHESTRATOR (APPLICATION SERVICE)

Purpose:
- Turn a finished BillSession into a back-office distribution, then bring
  inventory in line with what was billed.

Order of operations:
1) gates: items -> caterer -> batch shortfall confirmation -> payment -> reminder
2) idempotency: a bill number that already went through returns the stored
   result and creates nothing
3) receipt upload (optional) under a hard deadline; failure is a notice
4) distribution create; failure aborts the submission (DistributionCreationError)
5) payment reminder (only when scheduled); failure is a notice
6) inventory decrements, concurrently; failures are notices

Hard rules:
- Nothing is decremented unless the distribution exists.
- No step is retried and nothing is rolled back: steps 3, 5 and 6 are
  best-effort by contract.
- Money goes over the wire as 2 dp strings.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field, replace
from decimal import Decimal

from django.conf import settings
from django.core.cache import cache

from backoffice.services import api_client
from backoffice.services.exceptions import BackofficeError
from billing.services.bill_session import REMINDER_SCHEDULED, BillSession
from billing.services.exceptions import (
    DistributionCreationError,
    ReminderRequired,
    SubmissionInProgress,
)
from billing.services.line_items import is_combo
from billing.services.validation import validate_for_submission
from inventory.services.reconciliation import ReconciliationReport, reconcile_inventory

logger = logging.getLogger("billing")

# Back-office sentinel for "this row is a mix combo, not a catalogue product".
COMBO_PRODUCT_ID = 999999

NOTICE_INFO = "info"
NOTICE_ERROR = "error"

RESULT_CACHE_PREFIX = "billing:submission:result:"
LOCK_CACHE_PREFIX = "billing:submission:lock:"


@dataclass(frozen=True)
class Notice:
    level: str
    title: str
    message: str


@dataclass(frozen=True)
class ReceiptFile:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_upload(cls, upload) -> "ReceiptFile":
        """Django UploadedFile (or anything with name/read/content_type)."""
        return cls(
            filename=getattr(upload, "name", "") or "receipt",
            content=upload.read(),
            content_type=getattr(upload, "content_type", "") or "application/octet-stream",
        )


@dataclass(frozen=True)
class SubmissionResult:
    bill_no: str
    distribution: dict
    receipt_filename: str | None = None
    reminder: dict | None = None
    reconciliation: ReconciliationReport = field(default_factory=ReconciliationReport)
    notices: tuple = ()
    replayed: bool = False


def _billing_cfg() -> dict:
    cfg = getattr(settings, "BILLING", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


def _cfg_number(key: str, default):
    try:
        return type(default)(_billing_cfg().get(key) or default)
    except (TypeError, ValueError):
        return default


def _s(v: Decimal) -> str:
    return str(v)


# ============================================================
# WIRE PAYLOADS
# ============================================================

def _line_payload(line) -> dict:
    return {
        "productId": COMBO_PRODUCT_ID if is_combo(line) else line.product_id,
        "itemName": line.product_name or "",
        "quantity": _s(line.quantity),
        "unit": line.unit,
        "rate": _s(line.rate),
        "gstPercentage": _s(line.gst_percentage),
        "gstAmount": _s(line.gst_amount),
        "amount": _s(line.amount),
    }


def _reminder_dates(session: BillSession) -> tuple:
    if not session.has_balance:
        return None, None
    plan = session.reminder
    if plan.state == REMINDER_SCHEDULED:
        return plan.due_date, plan.reminder_date
    return session.due_date, None


def build_distribution_payload(session: BillSession, *, receipt_filename: str | None = None) -> dict:
    totals = session.totals
    next_payment, reminder_date = _reminder_dates(session)
    return {
        "billNo": session.bill_no,
        "catererId": session.caterer_id,
        "distributionDate": session.bill_date.isoformat(),
        "totalAmount": _s(totals.total_amount),
        "totalGstAmount": _s(totals.total_gst_amount),
        "grandTotal": _s(totals.grand_total),
        "amountPaid": _s(session.amount_paid),
        "balanceDue": _s(totals.balance_due),
        "paymentMode": session.payment_method,
        "status": session.status,
        "notes": session.notes or "",
        "receiptImage": receipt_filename,
        "items": [_line_payload(line) for line in session.items],
        "nextPaymentDate": next_payment.isoformat() if next_payment else None,
        "reminderDate": reminder_date.isoformat() if reminder_date else None,
    }


def build_reminder_payload(session: BillSession, *, distribution_id) -> dict:
    plan = session.reminder
    return {
        "catererId": session.caterer_id,
        "distributionId": distribution_id,
        "amount": _s(session.totals.balance_due),
        "originalDueDate": plan.due_date.isoformat() if plan.due_date else None,
        "reminderDate": plan.reminder_date.isoformat() if plan.reminder_date else None,
        "notes": plan.notes or f"Balance due for bill {session.bill_no}",
    }


# ============================================================
# BEST-EFFORT STEPS
# ============================================================

def _upload_receipt_with_deadline(receipt: ReceiptFile, notices: list) -> str | None:
    deadline = _cfg_number("RECEIPT_UPLOAD_TIMEOUT", 30)

    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="receipt-upload")
    future = pool.submit(
        api_client.upload_receipt,
        filename=receipt.filename,
        content=receipt.content,
        content_type=receipt.content_type,
        timeout=deadline,
    )
    try:
        filename = future.result(timeout=deadline)
    except FuturesTimeoutError:
        logger.warning("Receipt upload timed out", extra={"deadline_s": deadline})
        filename = None
    except BackofficeError:
        logger.warning("Receipt upload failed", exc_info=True)
        filename = None
    finally:
        # never wait on a hung upload
        pool.shutdown(wait=False, cancel_futures=True)

    if filename is None:
        notices.append(
            Notice(
                NOTICE_ERROR,
                "Receipt Upload Failed",
                "Failed to upload receipt image. The bill will be saved without the receipt.",
            )
        )
        return None

    notices.append(Notice(NOTICE_INFO, "Receipt Uploaded", "Receipt image has been attached to the bill."))
    return filename


def _create_reminder(session: BillSession, distribution: dict, notices: list) -> dict | None:
    payload = build_reminder_payload(session, distribution_id=distribution.get("id"))
    try:
        reminder = api_client.create_payment_reminder(payload)
    except BackofficeError:
        logger.warning(
            "Payment reminder could not be created",
            extra={"bill_no": session.bill_no},
            exc_info=True,
        )
        notices.append(
            Notice(
                NOTICE_ERROR,
                "Reminder Not Saved",
                "The bill was saved but the payment reminder could not be created.",
            )
        )
        return None

    plan = session.reminder
    notices.append(
        Notice(
            NOTICE_INFO,
            "Reminder Set",
            f"Payment due on {plan.due_date:%d %b %Y}. Reminder set for "
            f"{plan.reminder_date:%d %b %Y} for remaining balance of "
            f"₹{session.totals.balance_due}",
        )
    )
    return reminder


def _reconcile(session: BillSession, notices: list) -> ReconciliationReport:
    report = reconcile_inventory(
        session.items,
        session.allocations,
        max_workers=_cfg_number("INVENTORY_DECREMENT_WORKERS", 8),
    )
    if report.failed:
        notices.append(
            Notice(
                NOTICE_ERROR,
                "Inventory Not Fully Updated",
                f"{len(report.failed)} of {report.attempted} batch updates failed. "
                "Please adjust those batches manually.",
            )
        )
    elif report.attempted:
        notices.append(
            Notice(NOTICE_INFO, "Inventory Updated", "Inventory quantities have been updated successfully.")
        )
    return report


# ============================================================
# ENTRY POINT
# ============================================================

def submit_bill(
    session: BillSession,
    *,
    confirm_shortfall: bool = False,
    receipt: ReceiptFile | None = None,
) -> SubmissionResult:
    validate_for_submission(session, confirm_shortfall=confirm_shortfall)

    if session.awaiting_reminder:
        raise ReminderRequired(
            f"A balance of {session.totals.balance_due} is due. "
            "Schedule a payment reminder or skip it before saving the bill."
        )

    result_key = f"{RESULT_CACHE_PREFIX}{session.bill_no}"
    cached = cache.get(result_key)
    if cached is not None:
        logger.info("Bill already submitted; replaying result", extra={"bill_no": session.bill_no})
        return replace(cached, replayed=True)

    lock_key = f"{LOCK_CACHE_PREFIX}{session.bill_no}"
    if not cache.add(lock_key, True, timeout=_cfg_number("RECEIPT_UPLOAD_TIMEOUT", 30) * 4):
        raise SubmissionInProgress(f"Bill {session.bill_no} is already being submitted.")

    try:
        notices: list[Notice] = []

        receipt_filename = None
        if receipt is not None:
            receipt_filename = _upload_receipt_with_deadline(receipt, notices)

        payload = build_distribution_payload(session, receipt_filename=receipt_filename)
        try:
            distribution = api_client.create_distribution(payload)
        except BackofficeError as exc:
            logger.error(
                "Distribution create failed",
                extra={"bill_no": session.bill_no, "caterer_id": session.caterer_id},
            )
            raise DistributionCreationError(str(exc)) from exc

        logger.info(
            "Distribution created",
            extra={
                "bill_no": session.bill_no,
                "distribution_id": distribution.get("id"),
                "grand_total": str(session.totals.grand_total),
                "status": session.status,
            },
        )

        reminder = None
        if session.has_balance and session.reminder.state == REMINDER_SCHEDULED:
            reminder = _create_reminder(session, distribution, notices)

        report = _reconcile(session, notices)

        notices.append(
            Notice(
                NOTICE_INFO,
                "Bill Saved Successfully",
                f"Bill {session.bill_no} has been created successfully.",
            )
        )

        result = SubmissionResult(
            bill_no=session.bill_no,
            distribution=distribution,
            receipt_filename=receipt_filename,
            reminder=reminder,
            reconciliation=report,
            notices=tuple(notices),
        )
        cache.set(result_key, result, timeout=_cfg_number("SUBMISSION_IDEMPOTENCY_TTL", 86400))
        return result
    finally:
        cache.delete(lock_key)
