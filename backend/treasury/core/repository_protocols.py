"""Boundary Protocols - contract between the treasury core and durable storage.

Invariants:
    - Core NEVER imports from shell - dependency arrows point inward only
    - Stores exchange JSON-safe snapshot dicts, never domain objects
    - load_* returns None when nothing has been stored yet
    - save() raises PersistenceError on any failure; None arguments are left as stored

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Synchronous: one writer, one call at a time, no suspension points
    - Single-writer deployment is a precondition; only the SQL store detects
      a concurrent writer (optimistic version check)
"""

from typing import Protocol


class TreasuryStore(Protocol):
    """Contract for ledger + unlock persistence - implemented by shell."""
    def load_ledger(self) -> dict | None: ...
    def load_unlocks(self) -> dict | None: ...
    def save(
        self, *, ledger: dict | None = None, unlocks: dict | None = None,
    ) -> None: ...
