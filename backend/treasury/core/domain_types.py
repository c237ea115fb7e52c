"""Domain Types - identifiers, enums and fixed policy constants.

Invariants:
    - UnlockStatus values are the persisted strings (no raw string matching elsewhere)
    - MonthKey is always "YYYY-MM"
    - CENT is the rounding quantum for every share and balance shown to humans

Design Decisions:
    - NewType over wrappers: zero runtime cost, type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ModuleId = NewType("ModuleId", str)
MonthKey = NewType("MonthKey", str)    # "YYYY-MM"


# ─── Policy Constants ────────────────────────────────────────────

CENT = Decimal("0.01")
ZERO = Decimal("0")
HISTORY_LIMIT = 365
AUTO_UNLOCK_DELAY = timedelta(hours=48)
AFFORDABILITY_MONTHS = 3


# ─── Enums ───────────────────────────────────────────────────────

class UnlockStatus(str, Enum):
    """Module unlock lifecycle states - persisted as `status`."""
    LOCKED = "locked"
    PENDING_APPROVAL = "pending_approval"
    ACTIVE = "active"
    SUSPENDED = "suspended_insufficient_funds"


class AuditAction(str, Enum):
    """Financial audit trail event names."""
    REVENUE_SPLIT = "REVENUE_SPLIT"
    MONTHLY_RESET = "MONTHLY_RESET"
    OPERATING_COST_PAID = "OPERATING_COST_PAID"
    MODULE_SUSPENDED = "MODULE_SUSPENDED"
    UNLOCK_INITIATED = "UNLOCK_INITIATED"
    MODULE_AUTO_UNLOCKED = "MODULE_AUTO_UNLOCKED"
    UNLOCK_APPROVED = "UNLOCK_APPROVED"
    UNLOCK_REJECTED = "UNLOCK_REJECTED"


def month_key(moment: datetime) -> MonthKey:
    """Calendar month of `moment` in its own timezone."""
    return MonthKey(f"{moment.year:04d}-{moment.month:02d}")
