"""Core Layer — error classification, credential pool, retry policy, error types.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - No IO and no sleeping; the pool is the only mutable state

Design Decisions:
    - Functional core separated from the async shell in services/
"""
