"""Token envelope encryption utilities.

Two envelope formats exist:

- AEAD (current): ``<nonce hex>:<tag hex>:<ciphertext hex>``, AES-256-GCM with
  a 12-byte nonce and fixed associated data.
- Legacy (read-only): OpenSSL ``Salted__`` base64 blobs as produced by
  CryptoJS passphrase encryption (EVP_BytesToKey/MD5 key derivation,
  AES-256-CBC, PKCS7 padding).
"""

import base64
import binascii
import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

TOKEN_AAD = b"oauth-token"
NONCE_BYTES = 12
TAG_BYTES = 16
LEGACY_MAGIC = b"Salted__"


class CryptoError(Exception):
    """Envelope could not be decrypted."""

    pass


def derive_key(passphrase: str) -> bytes:
    """Derive a 32-byte AES key from a configured passphrase."""
    return hashlib.sha256(passphrase.encode("utf-8")).digest()


def is_aead_envelope(envelope: str) -> bool:
    return envelope.count(":") == 2


def is_legacy_envelope(envelope: str) -> bool:
    try:
        raw = base64.b64decode(envelope, validate=True)
    except (binascii.Error, ValueError):
        return False
    return raw.startswith(LEGACY_MAGIC) and len(raw) > 16


def aead_encrypt(key: bytes, plaintext: str) -> str:
    """Encrypt plaintext into an AEAD envelope with a fresh random nonce.

    Args:
        key: 32-byte AES key
        plaintext: Value to encrypt

    Returns:
        Colon-delimited hex envelope
    """
    nonce = os.urandom(NONCE_BYTES)
    sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), TOKEN_AAD)
    ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
    return f"{nonce.hex()}:{tag.hex()}:{ciphertext.hex()}"


def aead_decrypt(key: bytes, envelope: str) -> str:
    """Decrypt an AEAD envelope.

    Raises:
        CryptoError: If the envelope is malformed or the tag does not verify
    """
    parts = envelope.split(":")
    if len(parts) != 3:
        raise CryptoError("Envelope must have three parts")

    try:
        nonce = bytes.fromhex(parts[0])
        tag = bytes.fromhex(parts[1])
        ciphertext = bytes.fromhex(parts[2])
    except ValueError as e:
        raise CryptoError("Envelope is not hex encoded") from e

    if len(nonce) != NONCE_BYTES or len(tag) != TAG_BYTES:
        raise CryptoError("Envelope nonce or tag has wrong length")

    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, TOKEN_AAD)
    except InvalidTag as e:
        raise CryptoError("Authentication tag mismatch") from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CryptoError("Plaintext is not UTF-8") from e


def _evp_bytes_to_key(
    password: bytes, salt: bytes, key_len: int = 32, iv_len: int = 16
) -> tuple[bytes, bytes]:
    """OpenSSL EVP_BytesToKey with MD5 and a single iteration."""
    derived = b""
    block = b""
    while len(derived) < key_len + iv_len:
        block = hashlib.md5(block + password + salt).digest()
        derived += block
    return derived[:key_len], derived[key_len : key_len + iv_len]


def legacy_decrypt(passphrase: str, envelope: str) -> str:
    """Decrypt a legacy passphrase envelope.

    Raises:
        CryptoError: If the envelope is malformed or the passphrase is wrong
    """
    try:
        raw = base64.b64decode(envelope, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError("Legacy envelope is not base64") from e

    if not raw.startswith(LEGACY_MAGIC) or len(raw) <= 16:
        raise CryptoError("Legacy envelope missing salt header")

    salt, ciphertext = raw[8:16], raw[16:]
    if len(ciphertext) % 16 != 0:
        raise CryptoError("Legacy ciphertext is not block aligned")

    key, iv = _evp_bytes_to_key(passphrase.encode("utf-8"), salt)
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    unpadder = padding.PKCS7(128).unpadder()
    try:
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return plaintext.decode("utf-8")
    except (ValueError, UnicodeDecodeError) as e:
        # Wrong passphrase almost always surfaces as bad padding
        raise CryptoError("Legacy envelope did not decrypt cleanly") from e
