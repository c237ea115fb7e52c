"""Infrastructure Layer - durable stores and cross-cutting concerns.

Invariants:
    - Infrastructure never imports core/ domain logic beyond errors and snapshots
    - All IO failures mapped to PersistenceError

Design Decisions:
    - Two interchangeable stores behind one protocol: JSON files for a single
      scheduled job, SQL when the state should live in a database
"""
