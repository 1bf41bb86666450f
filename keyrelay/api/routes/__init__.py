"""Route Modules — one file per resource (health, inference, preferences).

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Routes never retry, rotate or pick credentials
"""
