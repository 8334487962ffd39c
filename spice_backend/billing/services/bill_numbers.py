# billing/services/bill_numbers.py

"""
BILL NUMBERS

Format: <PREFIX>-YYYYMMDD-NNN  (e.g. CB-20250114-042)
- PREFIX from settings.BILLING["BILL_NUMBER_PREFIX"] (default "CB", caterer bill)
- NNN is random and zero padded; uniqueness is not checked here, the back
  office rejects a duplicate billNo on create.
"""

from __future__ import annotations

import random
import re
from datetime import date

from django.conf import settings
from django.utils import timezone

DEFAULT_PREFIX = "CB"


def _prefix() -> str:
    cfg = getattr(settings, "BILLING", {}) or {}
    return (cfg.get("BILL_NUMBER_PREFIX") or DEFAULT_PREFIX).strip() or DEFAULT_PREFIX


def generate_bill_number(today: date | None = None) -> str:
    day = today or timezone.localdate()
    return f"{_prefix()}-{day:%Y%m%d}-{random.randint(0, 999):03d}"


def is_bill_number(value: str) -> bool:
    pattern = rf"^{re.escape(_prefix())}-\d{{8}}-\d{{3}}$"
    return bool(re.match(pattern, value or ""))
