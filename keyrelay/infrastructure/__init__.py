"""Infrastructure Layer — Anthropic client, database, preference store, logging.

Invariants:
    - Provider calls are built here but never retried here (services/ owns retries)
    - Database errors mapped to DatabaseError before leaving this layer
"""
