"""Core Layer — pure domain logic: errors, types, typed data, reducers and rules.

Invariants:
    - Core never imports from services/, infrastructure/, api/ or models/
    - No IO: functions take values and return values or raise domain errors
"""
