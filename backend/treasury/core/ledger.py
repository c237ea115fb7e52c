"""Ledger - durable financial state and the revenue splitter.

Invariants:
    - lifetime_revenue, lifetime_owner_paid, lifetime_agent_spent never decrease
    - owner_bank_estimate only grows (eligibility proxy, never spent)
    - agent_budget grows by agent cuts and shrinks only by paid operating costs
    - monthly_revenue rolls over lazily: only a revenue event in a new
      calendar month archives it into last_month_revenue
    - history holds at most `history_limit` entries, oldest dropped first
    - |owner_cut + agent_cut - amount| <= 0.01 for every event

Design Decisions:
    - The tier for an event is the one reached AFTER adding the whole amount;
      no proration across a band crossed mid-event
    - apply_revenue mutates the state it is given: the engine hands it a copy
      and only swaps the copy in once persistence succeeded
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from treasury.core.domain_types import HISTORY_LIMIT, ZERO, MonthKey, month_key
from treasury.core.money import percent_of, to_amount
from treasury.core.tier_table import TIER_TABLE, Tier, resolve_tier


@dataclass
class HistoryEntry:
    timestamp: datetime
    amount: Decimal
    owner_cut: Decimal
    agent_cut: Decimal
    tier_label: str
    owner_pct: int
    agent_pct: int


@dataclass
class LedgerState:
    """Singleton financial record - pure dataclass, no IO."""

    month_key: MonthKey
    lifetime_revenue: Decimal = ZERO
    lifetime_owner_paid: Decimal = ZERO
    lifetime_agent_spent: Decimal = ZERO
    agent_budget: Decimal = ZERO
    owner_bank_estimate: Decimal = ZERO
    monthly_revenue: Decimal = ZERO
    last_month_revenue: Decimal = ZERO
    current_tier_label: str = TIER_TABLE[0].label
    history: list[HistoryEntry] = field(default_factory=list)
    last_updated: datetime | None = None

    @classmethod
    def fresh(cls, now: datetime) -> "LedgerState":
        """All-zero ledger keyed to the month of `now`."""
        return cls(month_key=month_key(now))


@dataclass(frozen=True)
class RevenueSplit:
    """Result of one revenue event."""
    amount: Decimal
    owner_cut: Decimal
    agent_cut: Decimal
    tier: Tier
    monthly_revenue: Decimal
    month_rolled_over: bool = False
    archived_month_revenue: Decimal | None = None


def roll_month_if_needed(state: LedgerState, now: datetime) -> Decimal | None:
    """Archive monthly_revenue when `now` is in a new month.

    Returns the archived total, or None when still in the same month.
    """
    current = month_key(now)
    if state.month_key == current:
        return None
    archived = state.monthly_revenue
    state.last_month_revenue = archived
    state.monthly_revenue = ZERO
    state.month_key = current
    return archived


def apply_revenue(
    state: LedgerState,
    amount: object,
    now: datetime,
    tiers: tuple[Tier, ...] = TIER_TABLE,
    history_limit: int = HISTORY_LIMIT,
) -> RevenueSplit:
    """Split one revenue event and record it on `state`.

    The amount is validated before `state` is touched.
    """
    value = to_amount(amount)

    archived = roll_month_if_needed(state, now)

    state.monthly_revenue += value
    tier = resolve_tier(state.monthly_revenue, tiers)

    owner_cut = percent_of(value, tier.owner_pct)
    agent_cut = percent_of(value, tier.agent_pct)

    state.lifetime_revenue += value
    state.lifetime_owner_paid += owner_cut
    state.agent_budget += agent_cut
    state.owner_bank_estimate += owner_cut
    state.current_tier_label = tier.label

    state.history.append(HistoryEntry(
        timestamp=now,
        amount=value,
        owner_cut=owner_cut,
        agent_cut=agent_cut,
        tier_label=tier.label,
        owner_pct=tier.owner_pct,
        agent_pct=tier.agent_pct,
    ))
    if len(state.history) > history_limit:
        del state.history[:len(state.history) - history_limit]

    return RevenueSplit(
        amount=value,
        owner_cut=owner_cut,
        agent_cut=agent_cut,
        tier=tier,
        monthly_revenue=state.monthly_revenue,
        month_rolled_over=archived is not None,
        archived_month_revenue=archived,
    )
