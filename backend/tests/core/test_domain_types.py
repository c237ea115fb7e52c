"""Domain Types - verifies identifiers, policy constants and enum values.

Tests:
    - NewType wrappers are plain strings at runtime
    - UnlockStatus values match the persisted strings
    - month_key follows the timestamp's own timezone
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from treasury.core.domain_types import (
    AFFORDABILITY_MONTHS, AUTO_UNLOCK_DELAY, HISTORY_LIMIT,
    AuditAction, ModuleId, MonthKey, UnlockStatus, month_key,
)


def test_identity_types_wrap_str():
    assert ModuleId("ai_video") == "ai_video"
    assert MonthKey("2024-01") == "2024-01"


def test_policy_constants():
    assert HISTORY_LIMIT == 365
    assert AUTO_UNLOCK_DELAY == timedelta(hours=48)
    assert AFFORDABILITY_MONTHS == 3


def test_unlock_status_has_four_states():
    assert {s.value for s in UnlockStatus} == {
        "locked", "pending_approval", "active", "suspended_insufficient_funds",
    }


def test_unlock_status_compares_to_stored_string():
    assert UnlockStatus("suspended_insufficient_funds") is UnlockStatus.SUSPENDED
    assert UnlockStatus.ACTIVE == "active"


def test_audit_actions_are_their_names():
    for action in AuditAction:
        assert action.value == action.name


def test_month_key_zero_pads():
    assert month_key(datetime(2024, 3, 9, tzinfo=timezone.utc)) == "2024-03"


def test_month_key_uses_local_calendar():
    late_utc = datetime(2024, 1, 31, 23, 30, tzinfo=timezone.utc)
    tokyo = late_utc.astimezone(ZoneInfo("Asia/Tokyo"))
    assert month_key(late_utc) == "2024-01"
    assert month_key(tokyo) == "2024-02"
