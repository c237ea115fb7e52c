"""Treasury State ORM - durable ledger row and per-module unlock rows.

Invariants:
    - treasury_ledger holds exactly one row (id = 1)
    - version increments on every committed write (optimistic concurrency)
    - module_unlocks holds one row per catalog module, keyed by module_id

Design Decisions:
    - JSON column for the ledger snapshot: the history list is written as a
      whole, like the JSON file store
    - Unlock records as real columns: status and timers are queryable
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from treasury.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TreasuryLedger(Base):
    """Singleton ledger snapshot with a version counter."""
    __tablename__ = "treasury_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    snapshot: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )


class ModuleUnlock(Base):
    """Unlock record for one catalog module."""
    __tablename__ = "module_unlocks"

    module_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(40), nullable=False, default="locked")
    notified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    auto_unlock_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    suspended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    last_charged_period: Mapped[str | None] = mapped_column(String(7), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )
