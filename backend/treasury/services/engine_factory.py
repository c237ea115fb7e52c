"""Engine Factory - wires settings, store, clock and logging into a TreasuryEngine.

Invariants:
    - The clock is timezone-aware in the configured timezone
    - SQL schema is created if missing (alembic remains the migration path)
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

from treasury.config import Settings, get_settings
from treasury.core.repository_protocols import TreasuryStore
from treasury.infrastructure.database import DatabaseSessionManager, SqlTreasuryStore
from treasury.infrastructure.json_store import JsonFileTreasuryStore
from treasury.infrastructure.observability import setup_audit_log, setup_logging
from treasury.services.treasury_engine import Clock, TreasuryEngine

logger = logging.getLogger(__name__)


def zone_clock(tz_name: str) -> Clock:
    zone = ZoneInfo(tz_name)
    return lambda: datetime.now(zone)


def _ensure_sqlite_dir(database_url: str) -> None:
    if not database_url.startswith("sqlite:///") or database_url.endswith(":memory:"):
        return
    Path(database_url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)


def build_store(settings: Settings) -> TreasuryStore:
    if settings.store_backend == "sql":
        _ensure_sqlite_dir(settings.database_url)
        db = DatabaseSessionManager(settings.database_url)
        db.create_all()
        return SqlTreasuryStore(db)
    return JsonFileTreasuryStore(settings.data_dir)


def build_engine(settings: Settings | None = None, *, configure_logging: bool = True) -> TreasuryEngine:
    """TreasuryEngine for the scheduler process."""
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.log_level, settings.log_format)
        if settings.audit_log_file is not None:
            setup_audit_log(settings.audit_log_file)

    engine = TreasuryEngine(
        build_store(settings),
        clock=zone_clock(settings.timezone),
        auto_unlock_delay=timedelta(hours=settings.auto_unlock_hours),
        history_limit=settings.history_limit,
        affordability_months=settings.affordability_months,
    )
    logger.info(f"Treasury engine ready ({settings.store_backend} store, {settings.timezone})")
    return engine
