"""ORM Models - SQLAlchemy declarative models for durable treasury state.

Invariants:
    - All models inherit from Base (db/base.py)
    - All models imported here so Base.metadata is complete before create_all
"""

from treasury.models.treasury_state import ModuleUnlock, TreasuryLedger  # noqa: F401
