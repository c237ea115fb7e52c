"""Database Store - SQLAlchemy-backed TreasuryStore with optimistic versioning.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - Ledger and unlock rows of one save() commit in a single transaction
    - A ledger write succeeds only if the stored version is the one this
      store last loaded or wrote; otherwise ConcurrencyError
    - All SQLAlchemy exceptions mapped to PersistenceError (core/errors.py)

Design Decisions:
    - Synchronous engine: the treasury engine has no suspension points and
      runs once per scheduled cycle
    - Version check lives in the UPDATE's WHERE clause: no row locks needed,
      works the same on SQLite and PostgreSQL
    - Unlock-only writes still bump the version when a ledger row exists,
      so any two overlapping writers conflict
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import create_engine, delete, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from treasury.core.domain_types import UnlockStatus
from treasury.core.errors import ConcurrencyError, PersistenceError, TreasuryError
from treasury.core.treasury_snapshot import parse_timestamp
from treasury.db.base import Base
from treasury.models.treasury_state import ModuleUnlock, TreasuryLedger

logger = logging.getLogger(__name__)

LEDGER_ROW_ID = 1
_TIMESTAMP_COLUMNS: tuple[str, ...] = (
    "notified_at", "auto_unlock_at", "activated_at", "suspended_at",
)


class DatabaseSessionManager:
    """Manages database sessions with pooling, rollback, and health checks."""

    def __init__(self, database_url: str, **engine_kwargs):
        self.engine = create_engine(database_url, pool_pre_ping=True, **engine_kwargs)
        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            session.rollback()
            logger.error(f"DB integrity error: {e}")
            raise PersistenceError("Integrity constraint violated", "commit")
        except OperationalError as e:
            session.rollback()
            logger.error(f"DB operational error: {e}")
            raise PersistenceError("Connection or operational error", "execute")
        except DBAPIError as e:
            session.rollback()
            logger.error(f"DB driver error: {e}")
            raise PersistenceError("Database driver error", "query")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise PersistenceError("Database operation failed", "unknown")
        except TreasuryError:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """Create tables directly (tests, first run without alembic)."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error(f"DB schema creation failed: {e}")
            raise PersistenceError("Schema creation failed", "create_all")

    def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            with self.session() as db:
                db.execute(text("SELECT 1"))
            return True
        except PersistenceError as e:
            logger.error(f"DB health check failed: {e}")
            return False

    def dispose(self) -> None:
        self.engine.dispose()


class SqlTreasuryStore:
    """TreasuryStore backed by the treasury_ledger and module_unlocks tables."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db
        self._ledger_version: int | None = None

    @property
    def ledger_version(self) -> int | None:
        return self._ledger_version

    def load_ledger(self) -> dict | None:
        with self._db.session() as s:
            row = s.get(TreasuryLedger, LEDGER_ROW_ID)
            if row is None:
                self._ledger_version = None
                return None
            self._ledger_version = row.version
            return dict(row.snapshot)

    def load_unlocks(self) -> dict | None:
        with self._db.session() as s:
            rows = s.scalars(select(ModuleUnlock)).all()
            if not rows:
                return None
            return {row.module_id: _unlock_row_to_snapshot(row) for row in rows}

    def save(self, *, ledger: dict | None = None, unlocks: dict | None = None) -> None:
        if ledger is None and unlocks is None:
            return
        with self._db.session() as s:
            new_version = self._write_ledger(s, ledger)
            if unlocks is not None:
                self._write_unlocks(s, unlocks)
            s.commit()
        if new_version is not None:
            self._ledger_version = new_version

    def _write_ledger(self, s: Session, ledger: dict | None) -> int | None:
        now = datetime.now(timezone.utc)
        expected = self._ledger_version
        if expected is None:
            if s.get(TreasuryLedger, LEDGER_ROW_ID) is not None:
                raise ConcurrencyError(0)
            if ledger is None:
                return None
            s.add(TreasuryLedger(id=LEDGER_ROW_ID, version=1, snapshot=ledger, updated_at=now))
            return 1

        values: dict = {"version": expected + 1, "updated_at": now}
        if ledger is not None:
            values["snapshot"] = ledger
        result = s.execute(
            update(TreasuryLedger)
            .where(TreasuryLedger.id == LEDGER_ROW_ID, TreasuryLedger.version == expected)
            .values(**values),
        )
        if result.rowcount != 1:
            logger.warning(
                f"Ledger version {expected} is stale, refusing to overwrite",
                extra={"error_code": "CONCURRENCY_CONFLICT"},
            )
            raise ConcurrencyError(expected)
        return expected + 1

    def _write_unlocks(self, s: Session, unlocks: dict) -> None:
        for module_id, item in unlocks.items():
            status = _checked_status(module_id, item)
            row = s.get(ModuleUnlock, module_id)
            if row is None:
                row = ModuleUnlock(module_id=module_id)
                s.add(row)
            row.status = status
            for name in _TIMESTAMP_COLUMNS:
                setattr(row, name, _as_utc(parse_timestamp(item.get(name))))
            row.last_charged_period = item.get("last_charged_period")
        s.execute(delete(ModuleUnlock).where(ModuleUnlock.module_id.not_in(list(unlocks))))


def _checked_status(module_id: str, item: dict) -> str:
    try:
        return UnlockStatus(item.get("status")).value
    except ValueError:
        raise PersistenceError(
            f"unlock record '{module_id}' has invalid status {item.get('status')!r}", "write",
        ) from None


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite keeps no offset: store UTC wall time, read back as UTC
    return value.astimezone(timezone.utc) if value is not None else None


def _unlock_row_to_snapshot(row: ModuleUnlock) -> dict:
    snapshot: dict = {"status": row.status}
    for name in _TIMESTAMP_COLUMNS:
        value = parse_timestamp(getattr(row, name))
        snapshot[name] = value.isoformat() if value is not None else None
    snapshot["last_charged_period"] = row.last_charged_period
    return snapshot
