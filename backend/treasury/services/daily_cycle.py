"""Daily Cycle - the scheduler's fixed sequence of treasury calls.

Invariants:
    - Order: reload -> process_revenue per sale -> pay_operating_costs ->
      process_unlock_queue -> eligibility + initiate_unlock -> get_status
    - All sale amounts are validated before the first one is recorded
    - Each sale commits on its own. If sale k fails, sales before k stay
      recorded: the error carries debug_info["recorded_sales"] = k - 1, and a
      retry must pass only the sales from k on (retrying the whole batch
      would record the first k - 1 twice)
    - Errors after the sales (costs, unlocks, status) leave every sale
      recorded; a retry passes no sales

Design Decisions:
    - One process_revenue call per sale (not one per cycle): each sale is its
      own history entry and resolves its own tier
    - Returns a CycleReport instead of notifying: delivery is the caller's job
"""

import logging
from decimal import Decimal
from typing import Iterable

from treasury.core.errors import TreasuryError
from treasury.core.money import to_amount
from treasury.schemas.treasury import (
    CycleReport, OperatingCostsOut, RevenueSplitOut, StatusSnapshot, UnlockRequestOut,
)
from treasury.services.treasury_engine import TreasuryEngine

logger = logging.getLogger(__name__)


def run_daily_cycle(engine: TreasuryEngine, sale_amounts: Iterable[object] = ()) -> CycleReport:
    """Run one scheduled treasury cycle over already-deduplicated sale amounts."""
    amounts = [to_amount(amount) for amount in sale_amounts]
    engine.reload()
    ran_at = engine.now()

    splits = []
    for index, amount in enumerate(amounts):
        try:
            splits.append(engine.process_revenue(amount))
        except TreasuryError as e:
            e.context.debug_info = {**(e.context.debug_info or {}), "recorded_sales": index}
            logger.error(
                f"Cycle stopped at sale {index + 1} of {len(amounts)}: "
                f"{index} earlier sale(s) already recorded",
                extra={"amount": str(amount), "error_code": e.code},
            )
            raise
    if not splits:
        logger.info("No new sales this cycle")

    costs = engine.pay_operating_costs()
    activated = engine.process_unlock_queue()

    requests = []
    for module in engine.check_eligibility():
        requests.append(engine.initiate_unlock(module.id))
        logger.info(
            f"Module ready: {module.name}, auto-activates in "
            f"{engine.auto_unlock_delay}",
            extra={"module_id": module.id},
        )

    status = engine.get_status()
    report = CycleReport(
        ran_at=ran_at,
        sales=[RevenueSplitOut.model_validate(split) for split in splits],
        total_revenue=sum((split.amount for split in splits), Decimal("0")),
        owner_total=sum((split.owner_cut for split in splits), Decimal("0")),
        operating_costs=OperatingCostsOut.model_validate(costs),
        auto_activated=list(activated),
        unlock_requests=[UnlockRequestOut.model_validate(r) for r in requests],
        status=StatusSnapshot.model_validate(status),
    )
    logger.info(
        f"Cycle done: {len(splits)} sale(s), {report.total_revenue} gross, "
        f"{costs.total_cost} operating costs, tier {status.tier.label}",
    )
    return report
