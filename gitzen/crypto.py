"""
Cryptographic primitives for gitzen.

- AES-256-GCM for encrypting upstream access tokens at rest
- HMAC-SHA256 for signing application API tokens
- HKDF-SHA256 to derive independent keys for both from one secret
"""

import base64
import binascii
import re
import secrets

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import constant_time, hashes, hmac
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from gitzen.exceptions import DecryptionError

HKDF_SALT = b"gitzen-cms"
KEY_LENGTH = 32
NONCE_LENGTH = 12

_PURPOSE_INFO = {
    "encrypt": b"aes-gcm-encrypt",
    "sign": b"hmac-sign",
}

_SIGNATURE_RE = re.compile(r"[0-9a-f]{64}")


def derive_key(secret: str, purpose: str) -> bytes:
    """
    Derive a 256-bit key from a secret of any length.

    The purpose is bound into the HKDF info string, so the same secret
    yields unrelated encryption and signing keys.

    Args:
        secret: Application secret (any length)
        purpose: "encrypt" or "sign"

    Returns:
        32 bytes of key material
    """
    try:
        info = _PURPOSE_INFO[purpose]
    except KeyError:
        raise ValueError(f"Unknown key purpose: {purpose!r}") from None

    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=HKDF_SALT,
        info=info,
    )
    return hkdf.derive(secret.encode("utf-8"))


def encrypt(plaintext: str, secret: str) -> str:
    """
    Encrypt a string with AES-256-GCM under a fresh random nonce.

    Returns:
        "{nonce_b64}.{ciphertext_and_tag_b64}"
    """
    key = derive_key(secret, "encrypt")
    nonce = secrets.token_bytes(NONCE_LENGTH)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return f"{_b64encode(nonce)}.{_b64encode(ciphertext)}"


def decrypt(encoded: str, secret: str) -> str:
    """
    Decrypt a value produced by encrypt().

    Raises:
        DecryptionError: On malformed input, tampering, truncation or a wrong secret
    """
    nonce_b64, sep, ciphertext_b64 = encoded.partition(".")
    if not sep:
        raise DecryptionError()

    try:
        nonce = base64.b64decode(nonce_b64, validate=True)
        ciphertext = base64.b64decode(ciphertext_b64, validate=True)
    except (binascii.Error, ValueError):
        raise DecryptionError() from None

    if len(nonce) != NONCE_LENGTH:
        raise DecryptionError()

    key = derive_key(secret, "encrypt")
    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise DecryptionError() from None

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise DecryptionError() from None


def hmac_sign(message: str, secret: str) -> str:
    """Sign a message with HMAC-SHA256, returning 64 lower-case hex characters."""
    h = hmac.HMAC(derive_key(secret, "sign"), hashes.SHA256())
    h.update(message.encode("utf-8"))
    return h.finalize().hex()


def hmac_verify(message: str, signature: str, secret: str) -> bool:
    """
    Verify a signature produced by hmac_sign().

    Anything other than exactly 64 lower-case hex characters is rejected
    before the MAC is computed; the comparison itself is constant-time.
    """
    if not _SIGNATURE_RE.fullmatch(signature):
        return False

    h = hmac.HMAC(derive_key(secret, "sign"), hashes.SHA256())
    h.update(message.encode("utf-8"))
    try:
        h.verify(bytes.fromhex(signature))
    except InvalidSignature:
        return False
    return True


def generate_random_hex(byte_count: int) -> str:
    """Generate `byte_count` random bytes as a lower-case hex string."""
    return secrets.token_hex(byte_count)


def timing_safe_equal(a: str, b: str) -> bool:
    """Compare two strings in constant time (for equal lengths)."""
    if len(a) != len(b):
        return False
    return constant_time.bytes_eq(a.encode("utf-8"), b.encode("utf-8"))


def _b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
