"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no base class
    - PreferenceReader is read-only: the inference core never writes preferences;
      PreferenceStore adds the writes used by the settings routes
"""

from typing import Protocol


class PreferenceReader(Protocol):
    """Read-only lookup of persisted user preferences."""
    async def get(self, key: str) -> str | None: ...


class PreferenceStore(PreferenceReader, Protocol):
    """Full preference persistence — implemented by shell."""
    async def set(self, key: str, value: str) -> None: ...
    async def delete(self, key: str) -> bool: ...
