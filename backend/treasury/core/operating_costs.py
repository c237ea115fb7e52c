"""Operating Cost Payer - charges active modules' monthly costs to the agent budget.

Invariants:
    - Costs come from agent_budget ONLY; owner figures are never read or written
    - A module is charged at most once per billing period (calendar month)
    - Unaffordable modules move to suspended_insufficient_funds and cost nothing
    - agent_budget never goes negative

Design Decisions:
    - last_charged_period per module makes a retried or doubled cycle a no-op
    - Modules are charged in priority order, so when the budget runs short the
      higher-priority module keeps running
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from treasury.core.domain_types import ZERO, ModuleId, MonthKey, UnlockStatus, month_key
from treasury.core.ledger import LedgerState
from treasury.core.module_catalog import MODULE_CATALOG, ModuleDefinition, by_priority
from treasury.core.unlock_state import UnlockRecords


@dataclass(frozen=True)
class CostPayment:
    module_id: ModuleId
    cost: Decimal


@dataclass
class CostPaymentResult:
    period: MonthKey
    total_cost: Decimal = ZERO
    payments: list[CostPayment] = field(default_factory=list)
    suspended: list[ModuleId] = field(default_factory=list)
    already_charged: list[ModuleId] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.payments or self.suspended)


def pay_operating_costs(
    ledger: LedgerState,
    records: UnlockRecords,
    now: datetime,
    catalog: dict[ModuleId, ModuleDefinition] = MODULE_CATALOG,
) -> CostPaymentResult:
    """Charge every active paid module for the billing period containing `now`."""
    period = month_key(now)
    result = CostPaymentResult(period=period)

    for module in by_priority(catalog):
        record = records.get(module.id)
        if record is None or record.status != UnlockStatus.ACTIVE:
            continue
        if module.monthly_cost <= 0:
            continue
        if record.last_charged_period == period:
            result.already_charged.append(module.id)
            continue

        if ledger.agent_budget >= module.monthly_cost:
            ledger.agent_budget -= module.monthly_cost
            ledger.lifetime_agent_spent += module.monthly_cost
            record.last_charged_period = period
            result.total_cost += module.monthly_cost
            result.payments.append(CostPayment(module.id, module.monthly_cost))
        else:
            record.status = UnlockStatus.SUSPENDED
            record.suspended_at = now
            result.suspended.append(module.id)

    return result
