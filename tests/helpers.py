"""Shared test helpers."""

import base64
import hashlib
from datetime import datetime, timedelta, timezone

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes


def make_legacy_envelope(
    passphrase: str, plaintext: str, salt: bytes = b"saltsalt"
) -> str:
    """Encrypt like CryptoJS.AES.encrypt(plaintext, passphrase).toString().

    Builds the OpenSSL ``Salted__`` format that old rows carry.
    """
    derived = b""
    block = b""
    while len(derived) < 48:
        block = hashlib.md5(block + passphrase.encode("utf-8") + salt).digest()
        derived += block
    key, iv = derived[:32], derived[32:48]

    padder = padding.PKCS7(128).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    return base64.b64encode(b"Salted__" + salt + ciphertext).decode("ascii")


class FrozenClock:
    """Settable clock for services that take a ``clock`` callable."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)
