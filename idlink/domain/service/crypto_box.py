"""Provider token encryption domain service."""

import logfire

from idlink.config import CryptoSettings
from idlink.domain.error import DecryptionError
from idlink.util.crypto import (
    CryptoError,
    aead_decrypt,
    aead_encrypt,
    derive_key,
    is_aead_envelope,
    is_legacy_envelope,
    legacy_decrypt,
)

from .base import Service


class CryptoBox(Service):
    """Authenticated encryption of provider tokens at rest.

    Encrypts with the current key only. Decrypts envelopes produced under the
    current key, any configured previous key, or the legacy passphrase format.
    Never logs plaintext or ciphertext.
    """

    def __init__(self, crypto_settings: CryptoSettings) -> None:
        """Initialize crypto box.

        Args:
            crypto_settings: Key material
        """
        self._key = derive_key(crypto_settings.encryption_key)
        self._previous_keys = [derive_key(k) for k in crypto_settings.previous_keys]
        self._legacy_passphrase = crypto_settings.legacy_secret

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token under the current key.

        Args:
            plaintext: Token value

        Returns:
            Self-describing envelope (nonce, tag and ciphertext)
        """
        return aead_encrypt(self._key, plaintext)

    def decrypt(self, envelope: str) -> str:
        """Decrypt an envelope in either format.

        Args:
            envelope: Stored envelope

        Returns:
            Token value

        Raises:
            DecryptionError: If the envelope is malformed, tampered with, or
                was produced under a key this process does not hold
        """
        if not envelope:
            logfire.warn("Token decryption failed", error_type="EmptyEnvelope")
            raise DecryptionError("Failed to decrypt token")

        if is_aead_envelope(envelope):
            return self._decrypt_aead(envelope)

        if is_legacy_envelope(envelope):
            try:
                plaintext = legacy_decrypt(self._legacy_passphrase, envelope)
            except CryptoError as e:
                logfire.warn(
                    "Token decryption failed",
                    scheme="legacy",
                    error_type=type(e).__name__,
                )
                raise DecryptionError("Failed to decrypt token") from e
            logfire.debug("Token decrypted", scheme="legacy")
            return plaintext

        logfire.warn("Token decryption failed", error_type="UnknownEnvelopeFormat")
        raise DecryptionError("Failed to decrypt token")

    def _decrypt_aead(self, envelope: str) -> str:
        last_error: CryptoError | None = None
        for index, key in enumerate([self._key, *self._previous_keys]):
            try:
                plaintext = aead_decrypt(key, envelope)
            except CryptoError as e:
                last_error = e
                continue
            if index > 0:
                logfire.info("Token decrypted with previous key", key_index=index)
            return plaintext

        logfire.warn(
            "Token decryption failed",
            scheme="aead",
            error_type=type(last_error).__name__,
        )
        raise DecryptionError("Failed to decrypt token") from last_error

    def is_legacy(self, envelope: str) -> bool:
        """Whether an envelope uses the legacy passphrase format."""
        return bool(envelope) and is_legacy_envelope(envelope)

    def needs_reencryption(self, envelope: str) -> bool:
        """Whether an envelope is not readable with the current key alone."""
        if not is_aead_envelope(envelope):
            return True
        try:
            aead_decrypt(self._key, envelope)
        except CryptoError:
            return True
        return False

    def reencrypt(self, envelope: str) -> str:
        """Re-encrypt an envelope under the current key and AEAD format.

        Raises:
            DecryptionError: If the envelope cannot be read at all
        """
        return self.encrypt(self.decrypt(envelope))
