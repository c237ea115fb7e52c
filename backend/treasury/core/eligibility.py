"""Unlock Eligibility - which locked modules the owner can be asked about.

A module is eligible when it is locked, the owner bank estimate has reached
its owner_bank_min, and (for paid modules) the agent budget covers
`affordability_months` months of its cost.
"""

from decimal import Decimal

from treasury.core.domain_types import AFFORDABILITY_MONTHS, ModuleId, UnlockStatus
from treasury.core.ledger import LedgerState
from treasury.core.module_catalog import MODULE_CATALOG, ModuleDefinition, by_priority
from treasury.core.unlock_state import UnlockRecords


def meets_budget(
    module: ModuleDefinition, agent_budget: Decimal, months: int = AFFORDABILITY_MONTHS,
) -> bool:
    if not module.paid:
        return True
    return agent_budget >= module.monthly_cost * months


def check_eligibility(
    ledger: LedgerState,
    records: UnlockRecords,
    catalog: dict[ModuleId, ModuleDefinition] = MODULE_CATALOG,
    affordability_months: int = AFFORDABILITY_MONTHS,
) -> list[ModuleDefinition]:
    """Eligible modules in priority order. Pure."""
    eligible = []
    for module in by_priority(catalog):
        record = records.get(module.id)
        if record is None or record.status != UnlockStatus.LOCKED:
            continue
        if ledger.owner_bank_estimate < module.owner_bank_min:
            continue
        if not meets_budget(module, ledger.agent_budget, affordability_months):
            continue
        eligible.append(module)
    return eligible
