# inventory/services/reconciliation.py

"""
INVENTORY RECONCILIATION (POST-BILL DECREMENTS)

Purpose:
- After a bill (distribution) exists, decrement every allocated batch by the
  quantity billed from it.

Semantics (best-effort, NOT a transaction):
- One decrement request per (allocation, batch) with quantity > 0.
- Requests fan out concurrently and are all awaited; no relative ordering.
- No retries, no rollback. A failed decrement is logged and reported; it never
  reverses or blocks the bill that was already created.
- Must only be called once the distribution create call has succeeded.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal

from django.conf import settings

from backoffice.services import api_client
from backoffice.services.exceptions import BackofficeError
from inventory.services.batch_selection import BatchAllocation

logger = logging.getLogger("inventory")

ZERO = Decimal("0")


@dataclass(frozen=True)
class DecrementOutcome:
    allocation_key: str
    batch_id: int
    quantity: Decimal
    ok: bool
    error: str = ""


@dataclass(frozen=True)
class ReconciliationReport:
    outcomes: tuple = field(default_factory=tuple)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> list[DecrementOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[DecrementOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def is_consistent(self) -> bool:
        return not self.failed


def _default_workers() -> int:
    billing_cfg = getattr(settings, "BILLING", {}) or {}
    try:
        return max(1, int(billing_cfg.get("INVENTORY_DECREMENT_WORKERS") or 8))
    except (TypeError, ValueError):
        return 8


def build_decrement_plan(items, allocations) -> list[tuple[str, int, Decimal]]:
    """
    items: bill lines (anything with `allocation_key`) or raw allocation keys.
    allocations: mapping of allocation_key -> BatchAllocation.

    Returns [(allocation_key, batch_id, quantity)] for quantities > 0, one
    entry per batch. Lines sharing an allocation key are planned once.
    """
    plan = []
    seen = set()
    for item in items or ():
        key = str(getattr(item, "allocation_key", item))
        if key in seen:
            continue
        seen.add(key)
        allocation = (allocations or {}).get(key)
        if not isinstance(allocation, BatchAllocation) or allocation.is_empty:
            continue
        for batch_id, qty in allocation.as_pairs():
            qty = Decimal(qty)
            if qty > ZERO:
                plan.append((key, batch_id, qty))
    return plan


def _decrement_one(key: str, batch_id, quantity: Decimal) -> DecrementOutcome:
    try:
        api_client.adjust_inventory_quantity(
            batch_id=batch_id,
            quantity=quantity,
            is_addition=False,
        )
    except BackofficeError as exc:
        logger.error(
            "Inventory decrement failed",
            extra={"allocation_key": key, "batch_id": batch_id, "quantity": str(quantity)},
        )
        return DecrementOutcome(key, batch_id, quantity, ok=False, error=str(exc))
    except Exception as exc:
        logger.exception(
            "Unexpected failure during inventory decrement",
            extra={"allocation_key": key, "batch_id": batch_id},
        )
        return DecrementOutcome(key, batch_id, quantity, ok=False, error=str(exc))

    return DecrementOutcome(key, batch_id, quantity, ok=True)


def reconcile_inventory(items, allocations, *, max_workers: int | None = None) -> ReconciliationReport:
    """
    Fire every decrement concurrently and wait for all of them.

    Never raises for per-batch failures; inspect the returned report.
    """
    plan = build_decrement_plan(items, allocations)
    if not plan:
        logger.info("No inventory batches allocated; skipping decrements")
        return ReconciliationReport()

    workers = min(max_workers or _default_workers(), len(plan))
    logger.info(
        "Decrementing inventory batches",
        extra={"requests": len(plan), "workers": workers},
    )

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="inventory-decrement") as pool:
        futures = [pool.submit(_decrement_one, key, batch_id, qty) for key, batch_id, qty in plan]
        outcomes = tuple(f.result() for f in futures)

    report = ReconciliationReport(outcomes=outcomes)
    if report.failed:
        logger.warning(
            "Inventory left inconsistent with bill",
            extra={"failed": len(report.failed), "attempted": report.attempted},
        )
    return report
