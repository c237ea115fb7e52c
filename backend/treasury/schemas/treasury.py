"""Treasury Schemas - Pydantic models for results handed to the notification layer.

Invariants:
    - Read-only: every model is frozen
    - Built from core dataclasses via from_attributes (no manual field copying)
    - model_dump(mode="json") renders Decimals as strings and datetimes as ISO-8601

Design Decisions:
    - Core stays pydantic-free; validation at this boundary only
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from treasury.core.domain_types import UnlockStatus


class _Report(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)


class TierOut(_Report):
    label: str
    owner_pct: int = Field(ge=0, le=100)
    agent_pct: int = Field(ge=0, le=100)
    min: Decimal
    max: Decimal | None = None


class RevenueSplitOut(_Report):
    amount: Decimal = Field(ge=0)
    owner_cut: Decimal = Field(ge=0)
    agent_cut: Decimal = Field(ge=0)
    tier: TierOut
    monthly_revenue: Decimal
    month_rolled_over: bool = False


class CostPaymentOut(_Report):
    module_id: str
    cost: Decimal


class OperatingCostsOut(_Report):
    period: str
    total_cost: Decimal
    payments: list[CostPaymentOut] = []
    suspended: list[str] = []
    already_charged: list[str] = []


class UnlockRequestOut(_Report):
    module_id: str
    notified_at: datetime
    auto_unlock_at: datetime


class UnlockRecordOut(_Report):
    status: UnlockStatus
    notified_at: datetime | None = None
    auto_unlock_at: datetime | None = None
    activated_at: datetime | None = None
    suspended_at: datetime | None = None
    last_charged_period: str | None = None


class NextUnlockOut(_Report):
    message: str
    module_id: str | None = None
    module_name: str | None = None
    cost: Decimal = Decimal("0")
    needed: Decimal = Decimal("0")


class StatusSnapshot(_Report):
    tier: TierOut
    month_key: str
    monthly_revenue: Decimal
    last_month_revenue: Decimal
    lifetime_revenue: Decimal
    lifetime_owner_paid: Decimal
    lifetime_agent_spent: Decimal
    owner_bank_estimate: Decimal
    agent_budget: Decimal
    monthly_costs: Decimal
    net_agent_budget: Decimal
    active_modules: list[str]
    next_unlock: NextUnlockOut
    unlocks: dict[str, UnlockRecordOut] = {}


class CycleReport(_Report):
    """Everything one scheduled cycle did, for the caller to notify and log."""
    ran_at: datetime
    sales: list[RevenueSplitOut] = []
    total_revenue: Decimal = Decimal("0")
    owner_total: Decimal = Decimal("0")
    operating_costs: OperatingCostsOut
    auto_activated: list[str] = []
    unlock_requests: list[UnlockRequestOut] = []
    status: StatusSnapshot
