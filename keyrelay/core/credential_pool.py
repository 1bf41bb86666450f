"""Credential Pool — ordered credentials, rotation cursor, and exhausted set.

Invariants:
    - 0 <= cursor < len(credentials) whenever the pool is non-empty
    - exhausted ⊆ range(len(credentials))
    - rotate() always terminates and always lands on a valid index
    - exhausted never stays full: once every index is marked it is cleared
      (self-healing — quota is assumed to replenish rather than wedge the pool)
    - Single-credential pools never rotate or mark anything

Design Decisions:
    - One process-wide instance shared by interleaved asyncio tasks, no lock.
      Two tasks may read the same cursor and both rotate; the worst case is
      over- or under-rotation, which the reset above corrects. Pool mutation
      happens only between awaits, so state cannot tear. A multi-threaded
      host would need a lock around rotate().
    - Pure state, no logging: the retry executor reports rotations
"""

from keyrelay.core.domain_types import Credential, PoolStatus
from keyrelay.core.errors import EmptyPoolError


def mask_credential(credential: str | None) -> str:
    """Mask a credential for logs and error messages (last 4 chars only)."""
    if not credential:
        return "<none>"
    if len(credential) <= 8:
        return "***"
    return f"...{credential[-4:]}"


class CredentialPool:
    """Ordered credential set with circular rotation and exhaustion tracking."""

    def __init__(self, credentials: list[str] | tuple[str, ...] = ()):
        self._credentials: tuple[Credential, ...] = tuple(
            Credential(c) for c in credentials
        )
        self._cursor = 0
        self._exhausted: set[int] = set()

    @classmethod
    def from_csv(cls, raw: str | None) -> "CredentialPool":
        """Build from a comma-separated secret list (order preserved, blanks dropped)."""
        if not raw:
            return cls()
        return cls([part.strip() for part in raw.split(",") if part.strip()])

    # === Read side ===

    @property
    def size(self) -> int:
        return len(self._credentials)

    @property
    def credentials(self) -> tuple[Credential, ...]:
        return self._credentials

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def exhausted(self) -> frozenset[int]:
        return frozenset(self._exhausted)

    def __len__(self) -> int:
        return self.size

    def current(self) -> Credential:
        """Credential under the cursor. Raises EmptyPoolError on an empty pool."""
        if not self._credentials:
            raise EmptyPoolError()
        return self._credentials[self._cursor]

    def max_attempts(self) -> int:
        """Attempt budget for one executor run: N + 1 when N > 1, else 2."""
        return self.size + 1 if self.size > 1 else 2

    def status(self, override_active: bool = False) -> PoolStatus:
        return PoolStatus(
            total=self.size,
            active=self.size - len(self._exhausted),
            current_index=self._cursor,
            is_using_pool=self.size > 1 and not override_active,
            is_custom=override_active,
        )

    # === Mutation ===

    def rotate(self) -> bool:
        """Mark the current credential exhausted and advance to the next live one.

        Returns True when every credential had been marked and the exhausted
        set was reset. No-op (returns False) for pools of size <= 1.
        """
        n = self.size
        if n <= 1:
            return False

        self._exhausted.add(self._cursor)
        probes = 0
        while True:
            self._cursor = (self._cursor + 1) % n
            probes += 1
            if self._cursor not in self._exhausted or probes >= n:
                break

        if len(self._exhausted) >= n:
            self._exhausted.clear()
            return True
        return False
