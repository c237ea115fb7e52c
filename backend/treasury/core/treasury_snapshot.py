"""Treasury Snapshot - serialization / deserialization for LedgerState and UnlockRecords.

Invariants:
    - *_to_snapshot produce JSON-safe dicts (Decimals as strings, datetimes ISO-8601,
      Enums as their .value)
    - *_from_snapshot accept any snapshot these functions wrote, plus the legacy
      float-valued files (history "date"/"tier" keys, extra "monthly_cost")
    - Missing keys fall back to defaults (forward-compatible)
    - Naive timestamps read back from storage are taken as UTC

Design Decisions:
    - Decimal fields listed once in _MONEY_FIELDS: serialization stays DRY
    - Malformed snapshots raise ValueError; the shell maps it to PersistenceError
"""

from datetime import datetime, timezone
from decimal import InvalidOperation

from treasury.core.domain_types import ModuleId, MonthKey, UnlockStatus
from treasury.core.ledger import HistoryEntry, LedgerState
from treasury.core.money import from_stored
from treasury.core.unlock_state import UnlockRecord, UnlockRecords

_MONEY_FIELDS: tuple[str, ...] = (
    "lifetime_revenue", "lifetime_owner_paid", "lifetime_agent_spent",
    "agent_budget", "owner_bank_estimate", "monthly_revenue",
    "last_month_revenue",
)
_TIMESTAMP_FIELDS: tuple[str, ...] = (
    "notified_at", "auto_unlock_at", "activated_at", "suspended_at",
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_timestamp(value: object) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        # Python < 3.11 fromisoformat rejects a trailing "Z" (legacy files use it)
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# --- Ledger -------------------------------------------------------------------

def ledger_to_snapshot(state: LedgerState) -> dict:
    """Serialize LedgerState to a JSON-safe dict. Pure, no IO."""
    return {
        **{name: str(getattr(state, name)) for name in _MONEY_FIELDS},
        "month_key": state.month_key,
        "current_tier": state.current_tier_label,
        "history": [
            {
                "timestamp": entry.timestamp.isoformat(),
                "amount": str(entry.amount),
                "owner_cut": str(entry.owner_cut),
                "agent_cut": str(entry.agent_cut),
                "tier": entry.tier_label,
                "owner_pct": entry.owner_pct,
                "agent_pct": entry.agent_pct,
            }
            for entry in state.history
        ],
        "last_updated": _iso(state.last_updated),
    }


def ledger_from_snapshot(data: dict, now: datetime) -> LedgerState:
    """Reconstruct LedgerState from a snapshot dict. Pure, no IO.

    An empty snapshot gives a fresh ledger keyed to the month of `now`.
    """
    state = LedgerState.fresh(now)
    if not data:
        return state
    try:
        for name in _MONEY_FIELDS:
            if name in data:
                setattr(state, name, from_stored(data[name]))
        if data.get("month_key"):
            state.month_key = MonthKey(str(data["month_key"]))
        if data.get("current_tier"):
            state.current_tier_label = str(data["current_tier"])
        state.history = [_history_from_snapshot(item) for item in data.get("history") or []]
        state.last_updated = parse_timestamp(data.get("last_updated"))
    except (InvalidOperation, TypeError, KeyError, AttributeError) as e:
        raise ValueError(f"malformed ledger snapshot: {e!r}") from e
    return state


def _history_from_snapshot(item: dict) -> HistoryEntry:
    return HistoryEntry(
        timestamp=parse_timestamp(item.get("timestamp") or item["date"]),
        amount=from_stored(item["amount"]),
        owner_cut=from_stored(item["owner_cut"]),
        agent_cut=from_stored(item["agent_cut"]),
        tier_label=str(item.get("tier") or item.get("tier_label") or ""),
        owner_pct=int(item.get("owner_pct", 0)),
        agent_pct=int(item.get("agent_pct", 0)),
    )


# --- Unlock records -----------------------------------------------------------

def unlocks_to_snapshot(records: UnlockRecords) -> dict:
    """Serialize UnlockRecords keyed by module id. Pure, no IO."""
    return {
        module_id: {
            "status": record.status.value,
            **{name: _iso(getattr(record, name)) for name in _TIMESTAMP_FIELDS},
            "last_charged_period": record.last_charged_period,
        }
        for module_id, record in records.items()
    }


def unlocks_from_snapshot(data: dict) -> UnlockRecords:
    """Reconstruct UnlockRecords. Does not reconcile with the catalog."""
    records: UnlockRecords = {}
    for module_id, item in (data or {}).items():
        try:
            record = UnlockRecord(status=UnlockStatus(item.get("status", "locked")))
            for name in _TIMESTAMP_FIELDS:
                setattr(record, name, parse_timestamp(item.get(name)))
            period = item.get("last_charged_period")
            record.last_charged_period = MonthKey(period) if period else None
        except (TypeError, AttributeError) as e:
            raise ValueError(f"malformed unlock record '{module_id}': {e!r}") from e
        records[ModuleId(module_id)] = record
    return records
