"""Consumed OAuth state store interface."""

from abc import ABC, abstractmethod
from datetime import datetime

from idlink.domain.value import PKCEChallenge


class StateStore(ABC):
    """Remembers state nonces that have already completed a callback."""

    @abstractmethod
    async def mark_used(self, nonce: str, expires_at: datetime) -> bool:
        """Record a nonce as used.

        Args:
            nonce: State nonce
            expires_at: When the record may be purged (the state can no
                longer pass the age check after this point)

        Returns:
            True if the nonce was unused, False if it was already recorded
        """
        pass

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        """Delete records past their expiry.

        Returns:
            Number of records deleted
        """
        pass


class ChallengeStore(ABC):
    """Holds PKCE verifiers between authorization and callback.

    Entries live only as long as the state they belong to.
    """

    @abstractmethod
    async def put(self, nonce: str, challenge: PKCEChallenge, expires_at: datetime) -> None:
        """Store the challenge issued with a state nonce."""
        pass

    @abstractmethod
    async def pop(self, nonce: str, now: datetime) -> PKCEChallenge | None:
        """Remove and return the challenge for a state nonce.

        Returns:
            The challenge, or None if unknown or past its expiry
        """
        pass
