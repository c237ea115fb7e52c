"""Treasury Engine - persistence, atomicity and audit around the core functions.

Tests cover:
    - Revenue split persisted and tier resolved after the addition
    - Invalid amounts and failed saves leave memory and store untouched
    - Operating costs charged once per month; suspension persisted
    - Unlock lifecycle: initiate, 48h timer, approve, reject
    - Load: reconcile with catalog, malformed state -> PersistenceError
    - Audit events emitted only after a successful commit
"""

import logging
import os
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from tests.fakes import InMemoryTreasuryStore
from treasury.core.domain_types import UnlockStatus
from treasury.core.errors import (
    InvalidAmountError, InvalidTierTableError, InvalidTransitionError,
    PersistenceError, UnknownModuleError,
)
from treasury.core.ledger import LedgerState
from treasury.core.treasury_snapshot import ledger_to_snapshot, unlocks_to_snapshot
from treasury.core.unlock_state import initial_unlock_records
from treasury.infrastructure.json_store import JsonFileTreasuryStore
from treasury.infrastructure.observability import AUDIT_LOGGER_NAME
from treasury.services.treasury_engine import TreasuryEngine

START = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def _audit_actions(caplog) -> list[str]:
    return [r.action for r in caplog.records if r.name == AUDIT_LOGGER_NAME]


@pytest.fixture
def audit_log(caplog):
    caplog.set_level(logging.INFO, logger=AUDIT_LOGGER_NAME)
    return caplog


def _seeded_engine(clock, budget="0", bank="0", active=()):
    ledger = LedgerState.fresh(START)
    ledger.agent_budget = Decimal(budget)
    ledger.owner_bank_estimate = Decimal(bank)
    records = initial_unlock_records(START)
    for module_id in active:
        records[module_id].status = UnlockStatus.ACTIVE
    store = InMemoryTreasuryStore.seeded(ledger, records)
    return TreasuryEngine(store, clock=clock), store


# --- Revenue ------------------------------------------------------------------

def test_revenue_split_is_persisted(engine, store):
    split = engine.process_revenue(Decimal("100"))
    assert split.owner_cut == Decimal("60.00")
    assert split.agent_cut == Decimal("40.00")
    assert store.ledger["agent_budget"] == "40.00"
    assert store.ledger["owner_bank_estimate"] == "60.00"
    assert store.saves == [{"ledger": True, "unlocks": False}]


def test_tier_applies_after_addition(engine):
    first = engine.process_revenue(2000)
    second = engine.process_revenue(2000)
    assert (first.owner_cut, first.agent_cut) == (Decimal("1200.00"), Decimal("800.00"))
    assert second.tier.label == "Growing"
    assert (second.owner_cut, second.agent_cut) == (Decimal("1300.00"), Decimal("700.00"))
    assert engine.ledger.agent_budget == Decimal("1500.00")


def test_invalid_amount_changes_nothing(engine, store):
    with pytest.raises(InvalidAmountError):
        engine.process_revenue(-5)
    assert store.saves == []
    assert engine.ledger.lifetime_revenue == 0


def test_failed_save_keeps_old_state(engine, store):
    engine.process_revenue(100)
    store.fail_next_save = True
    with pytest.raises(PersistenceError):
        engine.process_revenue(100)
    assert engine.ledger.lifetime_revenue == Decimal("100")
    assert store.ledger["lifetime_revenue"] == "100"
    assert len(engine.ledger.history) == 1


def test_no_audit_event_for_rolled_back_split(engine, store, audit_log):
    store.fail_next_save = True
    with pytest.raises(PersistenceError):
        engine.process_revenue(100)
    assert _audit_actions(audit_log) == []


def test_revenue_split_audited(engine, audit_log):
    engine.process_revenue("50")
    records = [r for r in audit_log.records if r.name == AUDIT_LOGGER_NAME]
    assert [r.action for r in records] == ["REVENUE_SPLIT"]
    assert records[0].severity == "financial"
    assert records[0].details["owner_cut"] == "30.00"
    assert records[0].details["tier"] == "Starter"


def test_month_rollover_audited(engine, clock, audit_log):
    engine.process_revenue(500)
    clock.set(datetime(2024, 2, 1, 0, 5, tzinfo=timezone.utc))
    split = engine.process_revenue(100)
    assert split.month_rolled_over
    assert engine.ledger.last_month_revenue == Decimal("500")
    assert engine.ledger.monthly_revenue == Decimal("100")
    assert _audit_actions(audit_log) == ["REVENUE_SPLIT", "MONTHLY_RESET", "REVENUE_SPLIT"]


def test_ledger_property_returns_copy(engine):
    engine.process_revenue(100)
    copy = engine.ledger
    copy.agent_budget = Decimal("999999")
    assert engine.ledger.agent_budget == Decimal("40.00")


# --- Operating costs ----------------------------------------------------------

def test_costs_charged_once_per_month(clock, audit_log):
    engine, store = _seeded_engine(clock, budget="100", active=("ai_video",))
    first = engine.pay_operating_costs()
    second = engine.pay_operating_costs()
    assert first.total_cost == Decimal("15")
    assert second.total_cost == 0
    assert second.already_charged == ["ai_video"]
    assert engine.ledger.agent_budget == Decimal("85")
    assert store.saves == [{"ledger": True, "unlocks": True}]
    assert _audit_actions(audit_log) == ["OPERATING_COST_PAID"]


def test_charge_survives_restart(clock):
    engine, store = _seeded_engine(clock, budget="100", active=("ai_video",))
    engine.pay_operating_costs()
    restarted = TreasuryEngine(store, clock=clock)
    assert restarted.pay_operating_costs().total_cost == 0
    assert restarted.ledger.agent_budget == Decimal("85")


def test_insufficient_budget_suspends(clock, audit_log):
    engine, store = _seeded_engine(clock, budget="10", active=("ai_video",))
    result = engine.pay_operating_costs()
    assert result.suspended == ["ai_video"]
    assert not engine.is_active("ai_video")
    assert store.unlocks["ai_video"]["status"] == "suspended_insufficient_funds"
    assert store.saves == [{"ledger": False, "unlocks": True}]
    assert _audit_actions(audit_log) == ["MODULE_SUSPENDED"]
    assert any(
        r.levelno == logging.WARNING and "suspended" in r.getMessage()
        for r in audit_log.records
    )


def _json_engine(tmp_path, clock, budget):
    ledger = LedgerState.fresh(START)
    ledger.agent_budget = Decimal(budget)
    records = initial_unlock_records(START)
    records["ai_video"].status = UnlockStatus.ACTIVE
    store = JsonFileTreasuryStore(tmp_path)
    store.save(ledger=ledger_to_snapshot(ledger), unlocks=unlocks_to_snapshot(records))
    return TreasuryEngine(store, clock=clock), store


@pytest.mark.parametrize("failing_file", ["unlocks.json", "treasury.json"])
def test_interrupted_cost_save_never_charges_twice(tmp_path, clock, monkeypatch, failing_file):
    engine, _ = _json_engine(tmp_path, clock, "100")
    real_replace = os.replace

    def replace(src, dst):
        if os.path.basename(dst) == failing_file:
            raise OSError("disk full")
        real_replace(src, dst)

    monkeypatch.setattr(os, "replace", replace)
    with pytest.raises(PersistenceError):
        engine.pay_operating_costs()
    monkeypatch.setattr(os, "replace", real_replace)

    engine.reload()
    engine.pay_operating_costs()
    engine.reload()
    assert engine.ledger.agent_budget >= Decimal("85")
    assert engine.pay_operating_costs().total_cost == 0


def test_cost_save_retried_after_failure_charges_once(tmp_path, clock, monkeypatch):
    engine, _ = _json_engine(tmp_path, clock, "100")
    real_replace = os.replace

    def replace(src, dst):
        if os.path.basename(dst) == "unlocks.json":
            raise OSError("disk full")
        real_replace(src, dst)

    monkeypatch.setattr(os, "replace", replace)
    with pytest.raises(PersistenceError):
        engine.pay_operating_costs()
    monkeypatch.setattr(os, "replace", real_replace)

    engine.reload()
    assert engine.pay_operating_costs().total_cost == Decimal("15")
    assert JsonFileTreasuryStore(tmp_path).load_ledger()["agent_budget"] == "85"


def test_nothing_to_charge_writes_nothing(engine, store):
    result = engine.pay_operating_costs()
    assert result.total_cost == 0
    assert store.saves == []


# --- Unlocks ------------------------------------------------------------------

def test_unlock_lifecycle_with_timer(engine, clock, store, audit_log):
    request = engine.initiate_unlock("printify")
    assert request.auto_unlock_at == START.replace(day=17)
    assert store.unlocks["printify"]["status"] == "pending_approval"

    clock.advance(hours=47, minutes=59)
    assert engine.process_unlock_queue() == []
    assert not engine.is_active("printify")

    clock.advance(minutes=1)
    assert engine.process_unlock_queue() == ["printify"]
    assert engine.is_active("printify")
    assert store.unlocks["printify"]["auto_unlock_at"] is None
    assert _audit_actions(audit_log) == ["UNLOCK_INITIATED", "MODULE_AUTO_UNLOCKED"]


def test_pending_unlock_survives_restart(engine, clock, store):
    engine.initiate_unlock("printify")
    restarted = TreasuryEngine(store, clock=clock)
    clock.advance(hours=48)
    assert restarted.process_unlock_queue() == ["printify"]


def test_approve_activates_now(engine, clock):
    engine.initiate_unlock("ai_video")
    clock.advance(hours=1)
    record = engine.approve_unlock("ai_video")
    assert record.status == UnlockStatus.ACTIVE
    assert record.activated_at == clock.now
    assert engine.is_active("ai_video")


def test_reject_relocks(engine, store):
    engine.initiate_unlock("ai_video")
    record = engine.reject_unlock("ai_video")
    assert record.status == UnlockStatus.LOCKED
    assert store.unlocks["ai_video"]["notified_at"] is None


def test_invalid_transition_writes_nothing(engine, store):
    with pytest.raises(InvalidTransitionError):
        engine.approve_unlock("printify")
    with pytest.raises(InvalidTransitionError):
        engine.initiate_unlock("youtube")
    assert store.saves == []


def test_unknown_module_rejected(engine):
    with pytest.raises(UnknownModuleError):
        engine.initiate_unlock("tiktok")
    with pytest.raises(UnknownModuleError):
        engine.is_active("tiktok")


def test_eligibility_from_engine_state(clock):
    engine, _ = _seeded_engine(clock, budget="45", bank="1000")
    assert [m.id for m in engine.check_eligibility()] == ["printify", "ai_video"]


# --- Status -------------------------------------------------------------------

def test_status_reflects_engine_state(engine):
    engine.process_revenue(1000)
    status = engine.get_status()
    assert status.owner_bank_estimate == Decimal("600.00")
    assert status.agent_budget == Decimal("400.00")
    assert status.next_unlock.module_id == "printify"
    assert status.next_unlock.needed == 0


# --- Loading ------------------------------------------------------------------

def test_reload_picks_up_external_writes(engine, store):
    engine.process_revenue(100)
    store.ledger["agent_budget"] = "1.00"
    engine.reload()
    assert engine.ledger.agent_budget == Decimal("1.00")


def test_unknown_stored_module_dropped_with_warning(clock, caplog):
    store = InMemoryTreasuryStore(unlocks={
        "youtube": {"status": "active"},
        "tiktok": {"status": "active"},
    })
    with caplog.at_level(logging.WARNING):
        engine = TreasuryEngine(store, clock=clock)
    assert "tiktok" not in engine.unlocks
    assert engine.unlocks["printify"].status == UnlockStatus.LOCKED
    assert any("tiktok" in r.getMessage() for r in caplog.records)


def test_malformed_state_raises_persistence_error(clock):
    store = InMemoryTreasuryStore(ledger={"agent_budget": "lots"})
    with pytest.raises(PersistenceError):
        TreasuryEngine(store, clock=clock)


@pytest.mark.parametrize("field, raw", [
    ("agent_budget", "NaN"),
    ("owner_bank_estimate", "-100"),
])
def test_impossible_stored_money_raises_persistence_error(clock, field, raw):
    ledger = LedgerState.fresh(START)
    records = initial_unlock_records(START)
    records["ai_video"].status = UnlockStatus.ACTIVE
    store = InMemoryTreasuryStore.seeded(ledger, records)
    store.ledger[field] = raw
    with pytest.raises(PersistenceError) as exc:
        TreasuryEngine(store, clock=clock)
    assert exc.value.operation == "load"


def test_invalid_tier_table_rejected_at_construction(store, clock):
    with pytest.raises(InvalidTierTableError):
        TreasuryEngine(store, clock=clock, tiers=())
