"""Database Infrastructure - SQLAlchemy Base shared by the ORM models.

Invariants:
    - Single engine per process (built by the engine factory)
    - Sessions are synchronous: the treasury runs to completion per call
"""
