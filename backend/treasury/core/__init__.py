"""Core Layer - pure treasury logic, no IO, no DB.

Invariants:
    - No module in core/ imports from services/, infrastructure/, db/ or models/
    - Functions take `now` explicitly: the clock lives in the shell

Design Decisions:
    - Functional core separated from imperative shell: the engine copies
      state, calls core functions on the copy, persists, then swaps it in
"""
