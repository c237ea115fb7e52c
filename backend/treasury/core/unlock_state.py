"""Unlock State Machine - per-module unlock records and their transitions.

Invariants:
    - Exactly one UnlockRecord per catalog module
    - notified_at / auto_unlock_at are set only while pending_approval
    - Transitions:
        locked -> pending_approval            (initiate_unlock)
        pending_approval -> active            (approve_unlock, timer expiry)
        pending_approval -> locked            (reject_unlock)
        active -> suspended_insufficient_funds (operating_costs only)
    - Nothing leads back to active from suspended_insufficient_funds

Design Decisions:
    - Transition guards raise InvalidTransitionError: unlock operations are
      owner-facing commands, a silent no-op would hide a stale dashboard
    - process_unlock_queue is idempotent: activated records leave the queue
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from treasury.core.domain_types import AUTO_UNLOCK_DELAY, ModuleId, MonthKey, UnlockStatus
from treasury.core.errors import InvalidTransitionError, UnknownModuleError
from treasury.core.module_catalog import MODULE_CATALOG, ModuleDefinition


@dataclass
class UnlockRecord:
    status: UnlockStatus = UnlockStatus.LOCKED
    notified_at: datetime | None = None
    auto_unlock_at: datetime | None = None
    activated_at: datetime | None = None
    suspended_at: datetime | None = None
    last_charged_period: MonthKey | None = None

    def clear_timer(self) -> None:
        self.notified_at = None
        self.auto_unlock_at = None


@dataclass(frozen=True)
class UnlockRequest:
    """Result of initiate_unlock - what the owner gets notified about."""
    module_id: ModuleId
    notified_at: datetime
    auto_unlock_at: datetime


UnlockRecords = dict[ModuleId, UnlockRecord]


def initial_unlock_records(
    now: datetime, catalog: dict[ModuleId, ModuleDefinition] = MODULE_CATALOG,
) -> UnlockRecords:
    """Default-active modules start active, every other module locked."""
    records: UnlockRecords = {}
    for module in catalog.values():
        if module.default_active:
            records[module.id] = UnlockRecord(status=UnlockStatus.ACTIVE, activated_at=now)
        else:
            records[module.id] = UnlockRecord()
    return records


def reconcile_unlock_records(
    records: UnlockRecords,
    now: datetime,
    catalog: dict[ModuleId, ModuleDefinition] = MODULE_CATALOG,
) -> tuple[UnlockRecords, list[str]]:
    """Align stored records with the catalog.

    Returns (records in catalog order, ids dropped because the catalog no
    longer defines them). Missing modules get their default record.
    """
    defaults = initial_unlock_records(now, catalog)
    aligned: UnlockRecords = {
        module_id: records.get(module_id, default)
        for module_id, default in defaults.items()
    }
    dropped = [module_id for module_id in records if module_id not in catalog]
    return aligned, dropped


def _record(records: UnlockRecords, module_id: str) -> UnlockRecord:
    try:
        return records[ModuleId(module_id)]
    except KeyError:
        raise UnknownModuleError(module_id) from None


def _require(record: UnlockRecord, module_id: str, expected: UnlockStatus, operation: str) -> None:
    if record.status != expected:
        raise InvalidTransitionError(module_id, record.status.value, operation)


def initiate_unlock(
    records: UnlockRecords,
    module_id: str,
    now: datetime,
    delay: timedelta = AUTO_UNLOCK_DELAY,
) -> UnlockRequest:
    """locked -> pending_approval with an auto-unlock timer."""
    record = _record(records, module_id)
    _require(record, module_id, UnlockStatus.LOCKED, "initiate_unlock")
    record.status = UnlockStatus.PENDING_APPROVAL
    record.notified_at = now
    record.auto_unlock_at = now + delay
    return UnlockRequest(ModuleId(module_id), record.notified_at, record.auto_unlock_at)


def approve_unlock(records: UnlockRecords, module_id: str, now: datetime) -> UnlockRecord:
    """Manual override: pending_approval -> active immediately."""
    record = _record(records, module_id)
    _require(record, module_id, UnlockStatus.PENDING_APPROVAL, "approve_unlock")
    _activate(record, now)
    return replace(record)


def reject_unlock(records: UnlockRecords, module_id: str) -> UnlockRecord:
    """Manual override: pending_approval -> locked, timer cleared."""
    record = _record(records, module_id)
    _require(record, module_id, UnlockStatus.PENDING_APPROVAL, "reject_unlock")
    record.status = UnlockStatus.LOCKED
    record.clear_timer()
    return replace(record)


def process_unlock_queue(records: UnlockRecords, now: datetime) -> list[ModuleId]:
    """Activate every pending module whose timer has expired (auto_unlock_at <= now)."""
    activated: list[ModuleId] = []
    for module_id, record in records.items():
        if record.status != UnlockStatus.PENDING_APPROVAL or record.auto_unlock_at is None:
            continue
        if record.auto_unlock_at <= now:
            _activate(record, now)
            activated.append(module_id)
    return activated


def _activate(record: UnlockRecord, now: datetime) -> None:
    record.status = UnlockStatus.ACTIVE
    record.activated_at = now
    record.clear_timer()
