"""Operating Cost Payer - agent-budget-only charging, once per billing month.

Tests cover:
    - Affordable modules charged, unaffordable suspended (budget untouched)
    - Second run in the same month is a no-op (last_charged_period)
    - Priority order when the budget covers only some modules
    - Free, locked and pending modules never charged
    - Owner figures never touched
"""

from datetime import datetime, timezone
from decimal import Decimal

from treasury.core.domain_types import UnlockStatus
from treasury.core.ledger import LedgerState
from treasury.core.operating_costs import pay_operating_costs
from treasury.core.unlock_state import initial_unlock_records

NOW = datetime(2024, 1, 20, tzinfo=timezone.utc)
NEXT_MONTH = datetime(2024, 2, 1, tzinfo=timezone.utc)


def _setup(budget: str, *active: str):
    ledger = LedgerState.fresh(NOW)
    ledger.agent_budget = Decimal(budget)
    records = initial_unlock_records(NOW)
    for module_id in active:
        records[module_id].status = UnlockStatus.ACTIVE
    return ledger, records


# --- Charging -----------------------------------------------------------------

def test_active_paid_module_charged_from_agent_budget():
    ledger, records = _setup("100", "ai_video")
    result = pay_operating_costs(ledger, records, NOW)
    assert ledger.agent_budget == Decimal("85")
    assert ledger.lifetime_agent_spent == Decimal("15")
    assert result.total_cost == Decimal("15")
    assert [(p.module_id, p.cost) for p in result.payments] == [("ai_video", Decimal("15"))]
    assert records["ai_video"].last_charged_period == "2024-01"
    assert result.period == "2024-01"


def test_unaffordable_module_suspended_and_budget_unchanged():
    ledger, records = _setup("10", "ai_video")
    result = pay_operating_costs(ledger, records, NOW)
    assert records["ai_video"].status == UnlockStatus.SUSPENDED
    assert records["ai_video"].suspended_at == NOW
    assert ledger.agent_budget == Decimal("10")
    assert result.total_cost == 0
    assert result.payments == []
    assert result.suspended == ["ai_video"]


def test_exact_budget_is_affordable():
    ledger, records = _setup("15", "ai_video")
    pay_operating_costs(ledger, records, NOW)
    assert ledger.agent_budget == 0
    assert records["ai_video"].status == UnlockStatus.ACTIVE


def test_higher_priority_module_paid_first_when_budget_is_short():
    ledger, records = _setup("20", "ai_images", "ai_video")
    result = pay_operating_costs(ledger, records, NOW)
    assert [p.module_id for p in result.payments] == ["ai_video"]
    assert result.suspended == ["ai_images"]
    assert ledger.agent_budget == Decimal("5")


# --- Once per period ----------------------------------------------------------

def test_second_run_in_same_month_charges_nothing():
    ledger, records = _setup("100", "ai_video")
    pay_operating_costs(ledger, records, NOW)
    again = pay_operating_costs(ledger, records, NOW)
    assert again.total_cost == 0
    assert again.payments == []
    assert again.already_charged == ["ai_video"]
    assert not again.changed
    assert ledger.agent_budget == Decimal("85")


def test_new_month_charges_again():
    ledger, records = _setup("100", "ai_video")
    pay_operating_costs(ledger, records, NOW)
    result = pay_operating_costs(ledger, records, NEXT_MONTH)
    assert result.total_cost == Decimal("15")
    assert ledger.agent_budget == Decimal("70")
    assert records["ai_video"].last_charged_period == "2024-02"


# --- Never charged ------------------------------------------------------------

def test_free_active_modules_cost_nothing():
    ledger, records = _setup("100", "printify")
    result = pay_operating_costs(ledger, records, NOW)
    assert result.total_cost == 0
    assert result.payments == []
    assert not result.changed


def test_locked_pending_and_suspended_modules_not_charged():
    ledger, records = _setup("100")
    records["ai_video"].status = UnlockStatus.PENDING_APPROVAL
    records["ai_images"].status = UnlockStatus.SUSPENDED
    result = pay_operating_costs(ledger, records, NOW)
    assert result.payments == []
    assert result.suspended == []
    assert ledger.agent_budget == Decimal("100")


def test_owner_figures_never_touched():
    ledger, records = _setup("10", "ai_video", "ai_images")
    ledger.owner_bank_estimate = Decimal("5000")
    ledger.lifetime_owner_paid = Decimal("5000")
    pay_operating_costs(ledger, records, NOW)
    assert ledger.owner_bank_estimate == Decimal("5000")
    assert ledger.lifetime_owner_paid == Decimal("5000")


def test_suspended_module_stays_suspended_when_budget_recovers():
    ledger, records = _setup("10", "ai_video")
    pay_operating_costs(ledger, records, NOW)
    ledger.agent_budget = Decimal("1000")
    result = pay_operating_costs(ledger, records, NEXT_MONTH)
    assert records["ai_video"].status == UnlockStatus.SUSPENDED
    assert result.payments == []
