"""In-memory state and PKCE challenge stores."""

import asyncio
from datetime import datetime

from idlink.domain.repository.state import ChallengeStore, StateStore
from idlink.domain.value import PKCEChallenge


class InMemoryStateStore(StateStore):
    """In-memory implementation of StateStore for testing."""

    def __init__(self) -> None:
        self._used: dict[str, datetime] = {}

    async def mark_used(self, nonce: str, expires_at: datetime) -> bool:
        """Record nonce; False if already recorded."""
        if nonce in self._used:
            return False
        self._used[nonce] = expires_at
        return True

    async def purge_expired(self, now: datetime) -> int:
        """Drop records past their expiry."""
        expired = [n for n, exp in self._used.items() if exp < now]
        for nonce in expired:
            del self._used[nonce]
        return len(expired)


class InMemoryChallengeStore(ChallengeStore):
    """Process-local PKCE challenge store.

    Suitable for a single API process; challenges are lost on restart and
    the affected users simply restart the sign-in.
    """

    def __init__(self) -> None:
        self._challenges: dict[str, tuple[PKCEChallenge, datetime]] = {}
        self._lock = asyncio.Lock()

    async def put(self, nonce: str, challenge: PKCEChallenge, expires_at: datetime) -> None:
        """Store challenge for a state nonce."""
        async with self._lock:
            self._challenges[nonce] = (challenge, expires_at)

    async def pop(self, nonce: str, now: datetime) -> PKCEChallenge | None:
        """Remove and return the challenge, dropping expired entries."""
        async with self._lock:
            for key in [k for k, (_, exp) in self._challenges.items() if exp < now]:
                del self._challenges[key]
            entry = self._challenges.pop(nonce, None)
        return entry[0] if entry else None
