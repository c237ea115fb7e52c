"""Pydantic Schemas - report models handed to the notification layer.

Invariants:
    - Schemas validate at the system boundary (results leaving the engine)
    - Domain types from core/ used for enum fields

Design Decisions:
    - Separate from models: schemas are report contracts, models are persistence
"""
