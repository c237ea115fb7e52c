"""Services Layer - the treasury engine facade and the scheduled cycle.

Invariants:
    - Services own all state mutation; core functions only compute
    - Persistence reached only through the TreasuryStore protocol

Design Decisions:
    - Engine and cycle split: the engine is usable from a dashboard or bot
      without running a whole cycle
"""
