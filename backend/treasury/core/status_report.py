"""Status Report - aggregate snapshot of the ledger and unlock state.

Invariants:
    - Pure: builds a new object, never mutates ledger or records
    - net_agent_budget = agent_budget - sum(monthly_cost of active modules)
    - next_unlock is the lowest-priority-number module still locked;
      needed = max(0, owner_bank_min - owner_bank_estimate)

Design Decisions:
    - The tier is resolved from the stored monthly_revenue as-is, so a month
      without sales still reports the previous month's tier (lazy rollover)
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal

from treasury.core.domain_types import ZERO, ModuleId, MonthKey, UnlockStatus
from treasury.core.ledger import LedgerState
from treasury.core.module_catalog import MODULE_CATALOG, ModuleDefinition, by_priority
from treasury.core.money import round_cents, round_dollars
from treasury.core.tier_table import TIER_TABLE, Tier, resolve_tier
from treasury.core.unlock_state import UnlockRecord, UnlockRecords

ALL_UNLOCKED_MESSAGE = "All modules unlocked!"


@dataclass(frozen=True)
class NextUnlock:
    message: str
    module_id: ModuleId | None = None
    module_name: str | None = None
    cost: Decimal = ZERO
    needed: Decimal = ZERO


@dataclass
class TreasuryStatus:
    tier: Tier
    month_key: MonthKey
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
    next_unlock: NextUnlock
    unlocks: dict[ModuleId, UnlockRecord] = field(default_factory=dict)


def next_unlock(
    ledger: LedgerState,
    records: UnlockRecords,
    catalog: dict[ModuleId, ModuleDefinition] = MODULE_CATALOG,
) -> NextUnlock:
    for module in by_priority(catalog):
        record = records.get(module.id)
        if record is None or record.status != UnlockStatus.LOCKED:
            continue
        shortfall = module.owner_bank_min - ledger.owner_bank_estimate
        needed = max(ZERO, round_cents(shortfall))
        if needed <= 0:
            message = f"{module.name} ready to unlock!"
        else:
            message = f"${round_dollars(needed)} more to your bank unlocks {module.name}"
        return NextUnlock(
            message=message,
            module_id=module.id,
            module_name=module.name,
            cost=module.monthly_cost,
            needed=needed,
        )
    return NextUnlock(message=ALL_UNLOCKED_MESSAGE)


def build_status(
    ledger: LedgerState,
    records: UnlockRecords,
    catalog: dict[ModuleId, ModuleDefinition] = MODULE_CATALOG,
    tiers: tuple[Tier, ...] = TIER_TABLE,
) -> TreasuryStatus:
    active = [
        catalog[module_id]
        for module_id, record in records.items()
        if record.status == UnlockStatus.ACTIVE and module_id in catalog
    ]
    monthly_costs = sum((module.monthly_cost for module in active), ZERO)

    return TreasuryStatus(
        tier=resolve_tier(ledger.monthly_revenue, tiers),
        month_key=ledger.month_key,
        monthly_revenue=ledger.monthly_revenue,
        last_month_revenue=ledger.last_month_revenue,
        lifetime_revenue=ledger.lifetime_revenue,
        lifetime_owner_paid=ledger.lifetime_owner_paid,
        lifetime_agent_spent=ledger.lifetime_agent_spent,
        owner_bank_estimate=ledger.owner_bank_estimate,
        agent_budget=round_cents(ledger.agent_budget),
        monthly_costs=monthly_costs,
        net_agent_budget=round_cents(ledger.agent_budget - monthly_costs),
        active_modules=[module.name for module in active],
        next_unlock=next_unlock(ledger, records, catalog),
        unlocks={module_id: replace(record) for module_id, record in records.items()},
    )
