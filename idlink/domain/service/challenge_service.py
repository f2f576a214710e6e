"""PKCE and OAuth state domain service."""

import hashlib
import hmac
import re
import secrets
from base64 import urlsafe_b64encode
from datetime import datetime, timedelta, timezone

import logfire
from pydantic import ValidationError as PydanticValidationError

from idlink.config import StateSettings
from idlink.domain.error import ValidationError
from idlink.domain.repository.state import ChallengeStore, StateStore
from idlink.domain.value import PKCEChallenge, StateToken
from idlink.util.clock import Clock, utcnow

from .base import Service

VERIFIER_PATTERN = re.compile(r"[A-Za-z0-9_-]+")
MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128

# Tolerated clock difference for state timestamps issued by another node
FUTURE_SKEW_MS = 60_000


def _b64url(data: bytes) -> str:
    return urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def compute_challenge(verifier: str) -> str:
    """S256 code challenge for a verifier."""
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


class ChallengeGenerator(Service):
    """Generates and validates PKCE pairs and anti-replay state tokens."""

    def __init__(
        self,
        state_settings: StateSettings,
        state_store: StateStore,
        challenge_store: ChallengeStore,
        clock: Clock | None = None,
    ) -> None:
        """Initialize challenge generator.

        Args:
            state_settings: State secret and default maximum age
            state_store: Store of consumed state nonces
            challenge_store: Store of PKCE challenges awaiting their callback
            clock: Current-time source (UTC), injectable for tests
        """
        self.state_settings = state_settings
        self.state_store = state_store
        self.challenge_store = challenge_store
        self.clock = clock or utcnow

    def _now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    def generate_challenge(self) -> PKCEChallenge:
        """Generate a PKCE verifier and its S256 challenge.

        The verifier is 64 random bytes, base64url encoded without padding
        (86 characters, 512 bits of entropy).
        """
        verifier = _b64url(secrets.token_bytes(64))
        return PKCEChallenge(
            code_verifier=verifier,
            code_challenge=compute_challenge(verifier),
        )

    def verify_challenge(self, verifier: str | None, challenge: str | None) -> bool:
        """Check a verifier against a previously issued challenge.

        Fails closed: malformed input returns False and never raises.
        """
        if not verifier or not challenge:
            return False

        if not MIN_VERIFIER_LENGTH <= len(verifier) <= MAX_VERIFIER_LENGTH:
            return False

        if not VERIFIER_PATTERN.fullmatch(verifier):
            return False

        expected = compute_challenge(verifier)
        return hmac.compare_digest(expected.encode(), challenge.encode())

    def _account_hash(self, account_hint: str) -> str:
        digest = hmac.new(
            self.state_settings.secret.encode("utf-8"),
            account_hint.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return digest[:8]

    def generate_state(self, account_hint: str | None = None) -> str:
        """Generate a state token.

        Args:
            account_hint: Optional account identifier to bind the flow to.
                Only a keyed hash of it is embedded.

        Returns:
            ``<issued ms>.<nonce>.<account hash>``
        """
        account_part = self._account_hash(account_hint) if account_hint else ""
        return f"{self._now_ms()}.{secrets.token_hex(16)}.{account_part}"

    def _parse_state(self, token: str | None) -> StateToken | None:
        if not token:
            return None
        try:
            return StateToken(token)
        except PydanticValidationError:
            return None

    def validate_state(self, token: str | None, max_age_ms: int | None = None) -> bool:
        """Check state format and age.

        Does not by itself prevent replay inside the age window; callbacks
        go through consume_state for that.

        Args:
            token: State token from the callback
            max_age_ms: Maximum age (defaults to configured 10 minutes)

        Returns:
            True if well formed and not older than max_age_ms
        """
        if max_age_ms is None:
            max_age_ms = self.state_settings.max_age_ms

        state = self._parse_state(token)
        if state is None:
            return False

        age = self._now_ms() - state.issued_at_ms
        if age < -FUTURE_SKEW_MS:
            return False
        return age <= max_age_ms

    def is_bound_to(self, token: str, account_hint: str) -> bool:
        """Whether a state token was generated for the given account."""
        state = self._parse_state(token)
        if state is None or state.account_hash is None:
            return False
        return hmac.compare_digest(state.account_hash, self._account_hash(account_hint))

    def _expires_at(self, state: StateToken, max_age_ms: int) -> datetime:
        issued = datetime.fromtimestamp(state.issued_at_ms / 1000, tz=timezone.utc)
        return issued + timedelta(milliseconds=max_age_ms)

    async def start_authorization(
        self, account_hint: str | None = None
    ) -> tuple[str, PKCEChallenge]:
        """Issue a state token and a PKCE challenge for one authorization attempt.

        The challenge is held until the matching callback consumes the state.

        Args:
            account_hint: Optional account identifier to bind the flow to

        Returns:
            Tuple of (state token, PKCE challenge)
        """
        state = self.generate_state(account_hint)
        challenge = self.generate_challenge()
        parsed = StateToken(state)
        await self.challenge_store.put(
            parsed.nonce,
            challenge,
            self._expires_at(parsed, self.state_settings.max_age_ms),
        )
        return state, challenge

    async def consume_state(
        self,
        token: str | None,
        max_age_ms: int | None = None,
        account_hint: str | None = None,
    ) -> PKCEChallenge | None:
        """Validate a state token and mark it used.

        Args:
            token: State token from the callback
            max_age_ms: Maximum age (defaults to configured 10 minutes)
            account_hint: If given, the state must be bound to this account

        Returns:
            The PKCE challenge issued with the state, if one is held

        Raises:
            ValidationError: If the state is malformed, expired, bound to
                another account, or has already been used
        """
        if max_age_ms is None:
            max_age_ms = self.state_settings.max_age_ms

        with logfire.span("challenge_generator.consume_state"):
            if not self.validate_state(token, max_age_ms):
                logfire.warn("OAuth state rejected", reason="invalid_or_expired")
                raise ValidationError("Invalid or expired OAuth state")

            state = StateToken(token)

            if account_hint is not None and not self.is_bound_to(token, account_hint):
                logfire.warn("OAuth state rejected", reason="account_mismatch")
                raise ValidationError("OAuth state was issued for another account")

            expires_at = self._expires_at(state, max_age_ms)
            if not await self.state_store.mark_used(state.nonce, expires_at):
                logfire.warn("OAuth state rejected", reason="replayed")
                raise ValidationError("OAuth state has already been used")

            challenge = await self.challenge_store.pop(state.nonce, self.clock())
            if challenge and not self.verify_challenge(
                challenge.code_verifier, challenge.code_challenge
            ):
                raise ValidationError("Stored PKCE challenge is invalid")
            return challenge
