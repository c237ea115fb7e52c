"""Treasury Engine - the facade callers use to split revenue, pay costs and run unlocks.

Invariants:
    - The engine exclusively owns LedgerState and UnlockRecords; callers only
      ever receive copies
    - Every mutation is copy -> apply core function -> serialize -> persist ->
      swap: on any error, in-memory state and the store keep the old values
    - Validation errors are raised before anything is copied or written
    - One writer per store: concurrent processes on the same JSON files lose
      updates (the SQL store detects it and raises ConcurrencyError)

Design Decisions:
    - Explicit state handle on the engine instead of module-level globals
    - Clock injected as a callable: timers and month keys are testable
    - Audit events emitted only after a successful commit, so the trail never
      records a split that was rolled back
"""

import copy
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from treasury.core.domain_types import (
    AFFORDABILITY_MONTHS, AUTO_UNLOCK_DELAY, HISTORY_LIMIT,
    AuditAction, ModuleId, UnlockStatus,
)
from treasury.core.eligibility import check_eligibility
from treasury.core.errors import PersistenceError
from treasury.core.ledger import LedgerState, RevenueSplit, apply_revenue
from treasury.core.module_catalog import MODULE_CATALOG, ModuleDefinition, get_module
from treasury.core.money import to_amount
from treasury.core.operating_costs import CostPaymentResult, pay_operating_costs
from treasury.core.repository_protocols import TreasuryStore
from treasury.core.status_report import TreasuryStatus, build_status
from treasury.core.tier_table import TIER_TABLE, Tier, validate_tier_table
from treasury.core.treasury_snapshot import (
    ledger_from_snapshot, ledger_to_snapshot,
    unlocks_from_snapshot, unlocks_to_snapshot,
)
from treasury.core.unlock_state import (
    UnlockRecord, UnlockRecords, UnlockRequest,
    approve_unlock, initial_unlock_records, initiate_unlock,
    process_unlock_queue, reconcile_unlock_records, reject_unlock,
)
from treasury.infrastructure.observability import audit

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _State:
    ledger: LedgerState
    unlocks: UnlockRecords


class TreasuryEngine:
    """Deterministic revenue splitter, ledger and unlock state machine."""

    def __init__(
        self,
        store: TreasuryStore,
        *,
        clock: Clock = utc_now,
        tiers: tuple[Tier, ...] = TIER_TABLE,
        catalog: dict[ModuleId, ModuleDefinition] = MODULE_CATALOG,
        auto_unlock_delay: timedelta = AUTO_UNLOCK_DELAY,
        history_limit: int = HISTORY_LIMIT,
        affordability_months: int = AFFORDABILITY_MONTHS,
    ):
        self._store = store
        self._clock = clock
        self._tiers = validate_tier_table(tiers)
        self._catalog = catalog
        self._auto_unlock_delay = auto_unlock_delay
        self._history_limit = history_limit
        self._affordability_months = affordability_months
        self._state = self._load()

    # ─── State handle ───────────────────────────────────────────

    @property
    def ledger(self) -> LedgerState:
        return copy.deepcopy(self._state.ledger)

    @property
    def unlocks(self) -> UnlockRecords:
        return copy.deepcopy(self._state.unlocks)

    @property
    def catalog(self) -> dict[ModuleId, ModuleDefinition]:
        return self._catalog

    @property
    def auto_unlock_delay(self) -> timedelta:
        return self._auto_unlock_delay

    def now(self) -> datetime:
        return self._clock()

    def reload(self) -> None:
        """Re-read durable state (start of a scheduled cycle)."""
        self._state = self._load()

    def is_active(self, module_id: str) -> bool:
        """Whether a channel module may run this cycle."""
        get_module(module_id, self._catalog)
        return self._state.unlocks[ModuleId(module_id)].status == UnlockStatus.ACTIVE

    # ─── Revenue ────────────────────────────────────────────────

    def process_revenue(self, amount: object) -> RevenueSplit:
        """Split one sale by the tier reached after adding it; persist the ledger."""
        value = to_amount(amount)
        now = self._clock()
        candidate = self._copy()
        split = apply_revenue(
            candidate.ledger, value, now, self._tiers, self._history_limit,
        )
        self._commit(candidate, ledger=True, unlocks=False)

        if split.month_rolled_over:
            audit(
                AuditAction.MONTHLY_RESET.value,
                last_month=split.archived_month_revenue,
                month_key=candidate.ledger.month_key,
            )
        audit(
            AuditAction.REVENUE_SPLIT.value,
            amount=split.amount, owner_cut=split.owner_cut, agent_cut=split.agent_cut,
            tier=split.tier.label, monthly_total=split.monthly_revenue,
        )
        logger.info(
            f"Revenue {split.amount} split {split.owner_cut}/{split.agent_cut} "
            f"({split.tier.label})",
            extra={"amount": str(split.amount)},
        )
        return split

    # ─── Operating costs ────────────────────────────────────────

    def pay_operating_costs(self) -> CostPaymentResult:
        """Charge active paid modules once per billing month from the agent budget."""
        now = self._clock()
        candidate = self._copy()
        result = pay_operating_costs(candidate.ledger, candidate.unlocks, now, self._catalog)
        if result.changed:
            self._commit(candidate, ledger=bool(result.payments), unlocks=True)

        for payment in result.payments:
            audit(
                AuditAction.OPERATING_COST_PAID.value,
                module=payment.module_id, cost=payment.cost, source="agent_budget",
            )
        for module_id in result.suspended:
            audit(
                AuditAction.MODULE_SUSPENDED.value,
                module=module_id, reason="insufficient agent budget",
            )
            logger.warning(
                f"Module {module_id} suspended: insufficient agent budget",
                extra={"module_id": module_id},
            )
        return result

    # ─── Unlocks ────────────────────────────────────────────────

    def check_eligibility(self) -> list[ModuleDefinition]:
        """Locked modules whose owner-bank and budget thresholds are met."""
        return check_eligibility(
            self._state.ledger, self._state.unlocks,
            self._catalog, self._affordability_months,
        )

    def initiate_unlock(self, module_id: str) -> UnlockRequest:
        """locked -> pending_approval; auto-activates after the unlock delay."""
        get_module(module_id, self._catalog)
        now = self._clock()
        candidate = self._copy()
        request = initiate_unlock(candidate.unlocks, module_id, now, self._auto_unlock_delay)
        self._commit(candidate, ledger=False, unlocks=True)
        audit(
            AuditAction.UNLOCK_INITIATED.value,
            module=module_id, auto_unlock_at=request.auto_unlock_at.isoformat(),
        )
        return request

    def process_unlock_queue(self) -> list[ModuleId]:
        """Activate pending modules whose timer expired. Returns their ids."""
        now = self._clock()
        candidate = self._copy()
        activated = process_unlock_queue(candidate.unlocks, now)
        if activated:
            self._commit(candidate, ledger=False, unlocks=True)
        for module_id in activated:
            audit(AuditAction.MODULE_AUTO_UNLOCKED.value, module=module_id, reason="timer expired")
        return activated

    def approve_unlock(self, module_id: str) -> UnlockRecord:
        get_module(module_id, self._catalog)
        candidate = self._copy()
        record = approve_unlock(candidate.unlocks, module_id, self._clock())
        self._commit(candidate, ledger=False, unlocks=True)
        audit(AuditAction.UNLOCK_APPROVED.value, module=module_id)
        return record

    def reject_unlock(self, module_id: str) -> UnlockRecord:
        get_module(module_id, self._catalog)
        candidate = self._copy()
        record = reject_unlock(candidate.unlocks, module_id)
        self._commit(candidate, ledger=False, unlocks=True)
        audit(AuditAction.UNLOCK_REJECTED.value, module=module_id)
        return record

    # ─── Reporting ──────────────────────────────────────────────

    def get_status(self) -> TreasuryStatus:
        return build_status(
            self._state.ledger, self._state.unlocks, self._catalog, self._tiers,
        )

    # ─── Internals ──────────────────────────────────────────────

    def _copy(self) -> _State:
        return copy.deepcopy(self._state)

    def _load(self) -> _State:
        now = self._clock()
        ledger_data = self._store.load_ledger()
        unlock_data = self._store.load_unlocks()
        try:
            ledger = ledger_from_snapshot(ledger_data or {}, now)
            if unlock_data:
                stored = unlocks_from_snapshot(unlock_data)
            else:
                stored = initial_unlock_records(now, self._catalog)
        except ValueError as e:
            logger.error(f"Stored treasury state is malformed: {e}")
            raise PersistenceError(str(e), "load")

        unlocks, dropped = reconcile_unlock_records(stored, now, self._catalog)
        for module_id in dropped:
            logger.warning(
                f"Dropping unlock record for unknown module {module_id}",
                extra={"module_id": module_id},
            )
        return _State(ledger=ledger, unlocks=unlocks)

    def _commit(self, candidate: _State, *, ledger: bool, unlocks: bool) -> None:
        """Persist `candidate`, then make it the engine's state."""
        if ledger:
            candidate.ledger.last_updated = self._clock()
        try:
            ledger_snapshot = ledger_to_snapshot(candidate.ledger) if ledger else None
            unlock_snapshot = unlocks_to_snapshot(candidate.unlocks) if unlocks else None
        except (TypeError, ValueError, AttributeError) as e:
            raise PersistenceError(f"cannot serialize treasury state: {e!r}", "serialize")
        self._store.save(ledger=ledger_snapshot, unlocks=unlock_snapshot)
        self._state = candidate

