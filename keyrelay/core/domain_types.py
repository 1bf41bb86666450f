"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Credential wraps str — equality by value, never logged unmasked
    - All valid classifications encoded as Enums — no raw string matching
    - TierDescriptor is immutable and built per call (no shared state)

Design Decisions:
    - NewType over dataclass wrappers for Credential: zero runtime cost, SDKs take plain str
    - str Enums: serialize to JSON without custom encoders
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, NewType


# ─── Identity Types ──────────────────────────────────────────────

Credential = NewType("Credential", str)


# ─── Callables ───────────────────────────────────────────────────

# One external call against the provider with the given credential.
Operation = Callable[[Credential], Awaitable[Any]]


# ─── Enums ───────────────────────────────────────────────────────

class ErrorClass(str, Enum):
    """Outcome of classifying an upstream error."""
    TRANSIENT = "transient"
    FATAL = "fatal"


class TierName(str, Enum):
    """Backend tiers, in the order features usually cascade through them."""
    ENHANCED = "enhanced"
    STANDARD = "standard"


# ─── Value Objects ───────────────────────────────────────────────

@dataclass(frozen=True)
class TierDescriptor:
    """One backend configuration offering the same logical operation.

    operation_factory is already bound to the tier's model/config and only
    needs the credential chosen by the pool (or the override).
    """
    name: str
    operation_factory: Operation
    uses_enhanced_capability: bool = False


@dataclass(frozen=True)
class PoolStatus:
    """Snapshot of the credential pool for status endpoints."""
    total: int
    active: int
    current_index: int
    is_using_pool: bool
    is_custom: bool

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "active": self.active,
            "current_index": self.current_index,
            "is_using_pool": self.is_using_pool,
            "is_custom": self.is_custom,
        }
