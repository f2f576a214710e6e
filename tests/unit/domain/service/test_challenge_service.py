"""Unit tests for ChallengeGenerator."""

import asyncio
import hashlib
import re
from base64 import urlsafe_b64decode, urlsafe_b64encode

import pytest

from idlink.config import StateSettings
from idlink.domain.error import ValidationError
from idlink.domain.service import ChallengeGenerator
from idlink.domain.value import StateToken
from idlink.persistence.repository.inmemory import (
    InMemoryChallengeStore,
    InMemoryStateStore,
)
from tests.harness import create_env_fixture

unit_env = create_env_fixture()


@pytest.fixture
def generator(clock) -> ChallengeGenerator:
    return ChallengeGenerator(
        state_settings=StateSettings(secret="unit-test-secret"),
        state_store=InMemoryStateStore(),
        challenge_store=InMemoryChallengeStore(),
        clock=clock,
    )


class TestGenerateChallenge:
    """Tests for PKCE pair generation."""

    def test_verifier_is_base64url_of_64_bytes(self, generator):
        """Verifier should be 86 base64url characters encoding 64 bytes."""
        challenge = generator.generate_challenge()

        assert re.match(r"^[A-Za-z0-9_-]+$", challenge.code_verifier)
        assert len(challenge.code_verifier) == 86
        assert len(urlsafe_b64decode(challenge.code_verifier + "==")) == 64

    def test_challenge_is_sha256_of_verifier(self, generator):
        """Challenge should be the unpadded base64url SHA-256 of the verifier."""
        challenge = generator.generate_challenge()

        expected = (
            urlsafe_b64encode(hashlib.sha256(challenge.code_verifier.encode()).digest())
            .rstrip(b"=")
            .decode()
        )
        assert challenge.code_challenge == expected
        assert challenge.method == "S256"

    def test_generates_unique_pairs(self, generator):
        """Each call should produce a different verifier."""
        verifiers = {generator.generate_challenge().code_verifier for _ in range(20)}

        assert len(verifiers) == 20

    def test_verifier_hidden_from_repr(self, generator):
        """The verifier is a secret and must not appear in repr."""
        challenge = generator.generate_challenge()

        assert challenge.code_verifier not in repr(challenge)


class TestVerifyChallenge:
    """Tests for verify_challenge."""

    def test_accepts_matching_pair(self, generator):
        challenge = generator.generate_challenge()

        assert generator.verify_challenge(
            challenge.code_verifier, challenge.code_challenge
        )

    def test_rejects_other_verifier(self, generator):
        first = generator.generate_challenge()
        second = generator.generate_challenge()

        assert not generator.verify_challenge(
            second.code_verifier, first.code_challenge
        )

    @pytest.mark.parametrize(
        "verifier",
        [
            "",
            None,
            "a" * 42,  # too short
            "a" * 129,  # too long
            "a" * 50 + "!" + "a" * 10,  # outside the allowed alphabet
            "a" * 50 + "=" + "a" * 10,  # padding is not allowed
            "A" * 43 + "\n",  # trailing newline
            "\n" + "A" * 43,  # leading newline
        ],
    )
    def test_rejects_malformed_verifier_without_raising(self, generator, verifier):
        """Malformed input should fail closed."""
        assert generator.verify_challenge(verifier, "anything") is False

    def test_rejects_trailing_newline_even_with_matching_challenge(self, generator):
        """A verifier with a trailing newline fails even if its hash matches."""
        verifier = "A" * 43 + "\n"
        challenge = (
            urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
            .rstrip(b"=")
            .decode()
        )

        assert generator.verify_challenge(verifier, challenge) is False

    def test_rejects_missing_challenge(self, generator):
        challenge = generator.generate_challenge()

        assert generator.verify_challenge(challenge.code_verifier, None) is False
        assert generator.verify_challenge(challenge.code_verifier, "") is False

    def test_accepts_boundary_lengths(self, generator):
        """43 and 128 character verifiers are both valid."""
        for length in (43, 128):
            verifier = "A" * length
            challenge = (
                urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
                .rstrip(b"=")
                .decode()
            )
            assert generator.verify_challenge(verifier, challenge)


class TestGenerateState:
    """Tests for state generation and validation."""

    def test_state_has_timestamp_nonce_and_empty_account_part(self, generator, clock):
        state = generator.generate_state()

        issued, nonce, account_part = state.split(".")
        assert int(issued) == int(clock.now.timestamp() * 1000)
        assert re.match(r"^[0-9a-f]{32}$", nonce)
        assert account_part == ""

    def test_account_hint_is_hashed_not_embedded(self, generator):
        """Only an 8 character keyed hash of the account goes into the state."""
        state = generator.generate_state("account-123")

        account_part = state.split(".")[2]
        assert len(account_part) == 8
        assert "account-123" not in state

    def test_states_are_unique(self, generator):
        states = {generator.generate_state() for _ in range(50)}

        assert len(states) == 50

    def test_fresh_state_is_valid(self, generator):
        assert generator.validate_state(generator.generate_state())

    def test_state_expires_after_max_age(self, generator, clock):
        """State older than max age should be rejected."""
        state = generator.generate_state()

        clock.advance(minutes=10)
        assert generator.validate_state(state)

        clock.advance(milliseconds=1)
        assert not generator.validate_state(state)

    def test_custom_max_age(self, generator, clock):
        state = generator.generate_state()
        clock.advance(seconds=31)

        assert not generator.validate_state(state, max_age_ms=30_000)
        assert generator.validate_state(state, max_age_ms=60_000)

    def test_state_from_far_future_is_rejected(self, generator, clock):
        """Timestamps ahead by more than the skew allowance are invalid."""
        clock.advance(minutes=5)
        state = generator.generate_state()
        clock.advance(minutes=-5)

        assert not generator.validate_state(state)

    @pytest.mark.parametrize(
        "token",
        [
            None,
            "",
            "abc",
            "123",
            "x.abcdef.",
            "123.XYZ.",
            "1.2.3.4",
            "123.abc.def.ghi",
        ],
    )
    def test_malformed_state_is_invalid(self, generator, token):
        assert generator.validate_state(token) is False

    @pytest.mark.parametrize(
        "template",
        [
            "{ms}.{nonce}\n",  # trailing newline on the nonce
            "{ms}.{nonce}.\n",  # newline as the account hash
            "{ms}.{nonce}.zzzzzzzz",  # account hash outside hex
            "\u00b2{ms}.{nonce}.",  # non-ASCII digit in the timestamp
        ],
    )
    def test_fresh_but_malformed_state_is_invalid(self, generator, clock, template):
        """Only the format can make these tokens invalid; they are not expired."""
        token = template.format(
            ms=int(clock.now.timestamp() * 1000), nonce="0123456789abcdef" * 2
        )

        assert generator.validate_state(token) is False

    def test_is_bound_to(self, generator):
        state = generator.generate_state("account-1")

        assert generator.is_bound_to(state, "account-1")
        assert not generator.is_bound_to(state, "account-2")
        assert not generator.is_bound_to(generator.generate_state(), "account-1")

    def test_account_hash_depends_on_secret(self, clock):
        """A different state secret yields a different account hash."""
        stores = dict(
            state_store=InMemoryStateStore(), challenge_store=InMemoryChallengeStore()
        )
        first = ChallengeGenerator(StateSettings(secret="one"), clock=clock, **stores)
        second = ChallengeGenerator(StateSettings(secret="two"), clock=clock, **stores)

        assert (
            StateToken(first.generate_state("acct")).account_hash
            != StateToken(second.generate_state("acct")).account_hash
        )


class TestConsumeState:
    """Tests for start_authorization and consume_state."""

    @pytest.mark.asyncio
    async def test_returns_issued_challenge(self, generator):
        """Consuming the state should hand back the challenge issued with it."""
        state, challenge = await generator.start_authorization()

        consumed = await generator.consume_state(state)

        assert consumed == challenge

    @pytest.mark.asyncio
    async def test_replay_is_rejected(self, generator):
        """A state can complete exactly one callback."""
        state, _ = await generator.start_authorization()
        await generator.consume_state(state)

        with pytest.raises(ValidationError, match="already been used"):
            await generator.consume_state(state)

    @pytest.mark.asyncio
    async def test_concurrent_consumption_succeeds_once(self, generator):
        state, _ = await generator.start_authorization()

        results = await asyncio.gather(
            generator.consume_state(state),
            generator.consume_state(state),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, ValidationError)]
        assert len(errors) == 1

    @pytest.mark.asyncio
    async def test_expired_state_is_rejected(self, generator, clock):
        state, _ = await generator.start_authorization()
        clock.advance(minutes=11)

        with pytest.raises(ValidationError, match="Invalid or expired"):
            await generator.consume_state(state)

    @pytest.mark.asyncio
    async def test_account_mismatch_is_rejected(self, generator):
        state, _ = await generator.start_authorization("account-1")

        with pytest.raises(ValidationError, match="another account"):
            await generator.consume_state(state, account_hint="account-2")

    @pytest.mark.asyncio
    async def test_unbound_state_cannot_complete_a_bound_flow(self, generator):
        state, _ = await generator.start_authorization()

        with pytest.raises(ValidationError):
            await generator.consume_state(state, account_hint="account-1")

    @pytest.mark.asyncio
    async def test_state_without_stored_challenge_returns_none(self, generator):
        """States issued elsewhere are still accepted, without a verifier."""
        state = generator.generate_state()

        assert await generator.consume_state(state) is None

    @pytest.mark.asyncio
    async def test_resolved_from_container(self, unit_env):
        """The DI container wires the generator with shared stores."""
        generator = await unit_env.get(ChallengeGenerator)

        state, challenge = await generator.start_authorization()

        assert await generator.consume_state(state) == challenge
