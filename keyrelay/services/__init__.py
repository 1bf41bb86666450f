"""Services Layer — retry executor, tier cascade, inference gateway, features.

Invariants:
    - Only RetryExecutor sleeps or rotates the pool
    - Features build tier lists; they never retry

Design Decisions:
    - Layered composition (executor → cascade → gateway) so each is tested alone
"""
