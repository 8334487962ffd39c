# backoffice/services/api_client.py

"""
BACK-OFFICE REST CLIENT

Purpose:
- Single choke-point for every HTTP call this service makes to the back-office API.
- JSON in / JSON out (Decimal + date aware), plus one multipart upload (receipts).

Contracts consumed:
- GET  /api/inventory/by-product/:productId
- POST /api/inventory/:id/quantity              {id, quantity, isAddition}
- POST /api/distributions
- POST /api/receipts/upload                     multipart "receipt" -> {filename}
- POST /api/payment-reminders
- POST /api/payment-reminders/:id/next-reminder {nextReminderDate}
- GET  /api/products/:name/average-price

Rules:
- No retries. A failed call raises and the caller decides whether it is fatal.
- Errors are always BackofficeError subclasses (never raw urllib errors).
"""

from __future__ import annotations

import http.client
import json
import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder

from backoffice.services.exceptions import (
    BackofficeConfigurationError,
    BackofficeError,
    BackofficeHTTPError,
    BackofficeResponseError,
    BackofficeUnavailableError,
)

logger = logging.getLogger("backoffice")

USER_AGENT = "SpiceBillingDesk/1.0 (+backoffice-client) Python-urllib"


def _api_cfg() -> dict:
    cfg = getattr(settings, "BACKOFFICE_API", {}) or {}
    return cfg if isinstance(cfg, dict) else {}


def _base_url() -> str:
    base = (_api_cfg().get("BASE_URL") or "").strip().rstrip("/")
    if not base:
        raise BackofficeConfigurationError(
            "BACKOFFICE_API['BASE_URL'] is not configured. "
            "Set BACKOFFICE_API_BASE_URL in the environment."
        )
    return base


def _default_timeout() -> int:
    try:
        return int(_api_cfg().get("TIMEOUT") or 25)
    except (TypeError, ValueError):
        return 25


def _auth_headers() -> dict[str, str]:
    token = (_api_cfg().get("TOKEN") or "").strip()
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def _safe_preview(text: str, limit: int = 800) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _parse_json_or_text(raw: str) -> dict[str, Any]:
    raw = raw or ""
    try:
        return {"kind": "json", "json": json.loads(raw), "raw": raw}
    except ValueError:
        return {"kind": "text", "raw": raw}


def _send(
    method: str,
    path: str,
    *,
    data: bytes | None = None,
    content_type: str | None = None,
    timeout: int | float | None = None,
):
    url = f"{_base_url()}{path}"
    headers = {
        "Accept": "application/json",
        "User-Agent": USER_AGENT,
        **_auth_headers(),
    }
    if content_type:
        headers["Content-Type"] = content_type

    req = Request(url, data=data, headers=headers, method=method)
    effective_timeout = timeout if timeout is not None else _default_timeout()

    try:
        with urlopen(req, timeout=effective_timeout) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
    except HTTPError as e:
        raw = ""
        try:
            raw = e.read().decode("utf-8", errors="replace")
        except OSError:
            raw = ""
        parsed = _parse_json_or_text(raw)

        if parsed.get("kind") == "json" and isinstance(parsed.get("json"), dict):
            j = parsed["json"]
            msg = j.get("message") or j.get("error") or "Back-office rejected request"
        else:
            msg = _safe_preview(parsed.get("raw") or str(e))

        logger.warning(
            "Back-office HTTP error",
            extra={"method": method, "path": path, "status": e.code},
        )
        raise BackofficeHTTPError(
            f"{method} {path} failed: {e.code} {msg}",
            status=e.code,
            payload=parsed.get("json"),
        ) from e
    except URLError as e:
        logger.warning(
            "Back-office unreachable",
            extra={"method": method, "path": path, "reason": str(e.reason)},
        )
        raise BackofficeUnavailableError(f"{method} {path} failed: {e.reason}") from e
    except TimeoutError as e:
        raise BackofficeUnavailableError(f"{method} {path} timed out") from e
    except (OSError, http.client.HTTPException) as e:
        # dropped or reset connections surface from getresponse() and read() unwrapped
        logger.warning(
            "Back-office connection failed",
            extra={"method": method, "path": path, "reason": repr(e)},
        )
        raise BackofficeUnavailableError(f"{method} {path} failed: {e!r}") from e

    if not raw.strip():
        return None

    parsed = _parse_json_or_text(raw)
    if parsed.get("kind") != "json":
        raise BackofficeResponseError(
            f"{method} {path} returned non-JSON: {_safe_preview(parsed.get('raw') or '')}"
        )
    return parsed.get("json")


def _request_json(
    method: str, path: str, *, body: dict | None = None, timeout: int | float | None = None
):
    data = None
    content_type = None
    if body is not None:
        data = json.dumps(body, cls=DjangoJSONEncoder, ensure_ascii=False).encode("utf-8")
        content_type = "application/json"
    return _send(method, path, data=data, content_type=content_type, timeout=timeout)


def _encode_multipart(*, field: str, filename: str, content: bytes, content_type: str):
    boundary = f"----spice-{uuid.uuid4().hex}"
    safe_name = (filename or "receipt").replace('"', "")
    head = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="{field}"; filename="{safe_name}"\r\n'
        f"Content-Type: {content_type or 'application/octet-stream'}\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return head + (content or b"") + tail, f"multipart/form-data; boundary={boundary}"


# ============================================================
# INVENTORY
# ============================================================

def fetch_inventory_by_product(product_id) -> list[dict]:
    """Raw batch rows for one product: {id, quantity, productUnit, expiryDate, status, ...}."""
    rows = _request_json("GET", f"/api/inventory/by-product/{quote(str(product_id), safe='')}")
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise BackofficeResponseError("inventory by-product must return a JSON list")
    return [r for r in rows if isinstance(r, dict)]


def adjust_inventory_quantity(*, batch_id, quantity, is_addition: bool = False):
    """isAddition=false decrements the batch by `quantity` (sent as a JSON number)."""
    body = {
        "id": batch_id,
        "quantity": float(quantity),
        "isAddition": bool(is_addition),
    }
    return _request_json("POST", f"/api/inventory/{quote(str(batch_id), safe='')}/quantity", body=body)


# ============================================================
# DISTRIBUTIONS (CATERER BILLS)
# ============================================================

def create_distribution(payload: dict) -> dict:
    result = _request_json("POST", "/api/distributions", body=payload)
    if not isinstance(result, dict):
        raise BackofficeResponseError("distribution create must return a JSON object")
    return result


# ============================================================
# RECEIPTS
# ============================================================

def upload_receipt(
    *, filename: str, content: bytes, content_type: str, timeout: int | float | None = None
) -> str:
    data, multipart_type = _encode_multipart(
        field="receipt",
        filename=filename,
        content=content,
        content_type=content_type,
    )
    result = _send(
        "POST",
        "/api/receipts/upload",
        data=data,
        content_type=multipart_type,
        timeout=timeout,
    )
    stored = (result or {}).get("filename") if isinstance(result, dict) else None
    if not stored:
        raise BackofficeResponseError("receipt upload response has no filename")
    return str(stored)


# ============================================================
# PAYMENT REMINDERS
# ============================================================

def create_payment_reminder(payload: dict) -> dict:
    result = _request_json("POST", "/api/payment-reminders", body=payload)
    return result if isinstance(result, dict) else {}


def set_next_reminder(*, reminder_id, next_reminder_date) -> dict:
    result = _request_json(
        "POST",
        f"/api/payment-reminders/{quote(str(reminder_id), safe='')}/next-reminder",
        body={"nextReminderDate": next_reminder_date},
    )
    return result if isinstance(result, dict) else {}


# ============================================================
# PRODUCTS
# ============================================================

def fetch_average_price(product_name: str) -> Decimal | None:
    """Average purchase price per kg, or None when the back office has no price data."""
    name = (product_name or "").strip()
    if not name:
        return None

    try:
        result = _request_json("GET", f"/api/products/{quote(name, safe='')}/average-price")
    except BackofficeHTTPError as exc:
        if exc.status == 404:
            return None
        raise

    raw = (result or {}).get("averagePrice") if isinstance(result, dict) else None
    if raw in (None, ""):
        return None
    try:
        return Decimal(str(raw))
    except InvalidOperation as exc:
        raise BackofficeResponseError(f"averagePrice is not numeric: {raw!r}") from exc


__all__ = [
    "BackofficeError",
    "adjust_inventory_quantity",
    "create_distribution",
    "create_payment_reminder",
    "fetch_average_price",
    "fetch_inventory_by_product",
    "set_next_reminder",
    "upload_receipt",
]
