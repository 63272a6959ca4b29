"""
Property-based tests for token encryption and API token signing.

Feature: gitzen-crypto
"""

import base64

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from gitzen.crypto import (
    decrypt,
    derive_key,
    encrypt,
    generate_random_hex,
    hmac_sign,
    hmac_verify,
    timing_safe_equal,
)
from gitzen.exceptions import DecryptionError

secret_strategy = st.text(min_size=1, max_size=64)
hex_message_strategy = st.text(alphabet="0123456789abcdef", min_size=1, max_size=80)


@given(plaintext=st.text(max_size=200), secret=secret_strategy)
@settings(max_examples=100)
def test_property_encrypt_then_decrypt_returns_plaintext(plaintext: str, secret: str) -> None:
    """
    Property: decrypt(encrypt(p, s), s) == p for any text and any secret.
    """
    assert decrypt(encrypt(plaintext, secret), secret) == plaintext


@given(plaintext=st.text(min_size=1, max_size=100), secret=secret_strategy)
@settings(max_examples=100)
def test_property_tampered_ciphertext_is_rejected(plaintext: str, secret: str) -> None:
    """
    Property: changing any ciphertext character makes decryption fail
    with a DecryptionError, never a garbled plaintext.
    """
    nonce, ciphertext = encrypt(plaintext, secret).split(".")
    first = "B" if ciphertext[0] == "A" else "A"
    tampered = f"{nonce}.{first}{ciphertext[1:]}"

    with pytest.raises(DecryptionError):
        decrypt(tampered, secret)


@given(plaintext=st.text(max_size=50), secret=secret_strategy, other=secret_strategy)
@settings(max_examples=50)
def test_property_wrong_secret_is_rejected(plaintext: str, secret: str, other: str) -> None:
    assume(secret != other)
    with pytest.raises(DecryptionError):
        decrypt(encrypt(plaintext, secret), other)


def test_encrypt_uses_fresh_nonce() -> None:
    assert encrypt("same", "key") != encrypt("same", "key")


@pytest.mark.parametrize(
    "encoded",
    [
        "",
        "no-separator",
        "!!!.???",
        "AAAA.AAAA",  # nonce too short
        "AAAAAAAAAAAAAAAA.",
    ],
)
def test_decrypt_rejects_malformed_input(encoded: str) -> None:
    with pytest.raises(DecryptionError) as exc_info:
        decrypt(encoded, "key")

    assert exc_info.value.message == "Invalid encrypted value"


def test_decrypt_rejects_truncated_ciphertext() -> None:
    encoded = encrypt("some access token", "key")
    with pytest.raises(DecryptionError):
        decrypt(encoded[:-8], "key")


def test_decrypt_rejects_swapped_halves() -> None:
    nonce, ciphertext = encrypt("some access token", "key").split(".")

    with pytest.raises(DecryptionError):
        decrypt(f"{ciphertext}.{nonce}", "key")


@given(position=st.integers(min_value=0, max_value=11))
@settings(max_examples=12)
def test_property_flipped_nonce_byte_is_rejected(position: int) -> None:
    nonce_b64, ciphertext = encrypt("some access token", "key").split(".")
    nonce = bytearray(base64.b64decode(nonce_b64))
    nonce[position] ^= 0x01
    tampered = f"{base64.b64encode(bytes(nonce)).decode('ascii')}.{ciphertext}"

    with pytest.raises(DecryptionError):
        decrypt(tampered, "key")


@pytest.mark.parametrize("secret", ["k", "k" * 4096, "ключ" * 1500])
def test_secrets_of_any_length_round_trip(secret: str) -> None:
    assert len(derive_key(secret, "encrypt")) == 32
    assert len(derive_key(secret, "sign")) == 32
    assert decrypt(encrypt("token ✓", secret), secret) == "token ✓"
    assert hmac_verify("abc", hmac_sign("abc", secret), secret)


def test_derived_keys_are_separated_by_purpose() -> None:
    encrypt_key = derive_key("shared-secret", "encrypt")
    sign_key = derive_key("shared-secret", "sign")

    assert len(encrypt_key) == 32
    assert len(sign_key) == 32
    assert encrypt_key != sign_key
    assert derive_key("shared-secret", "sign") == sign_key


def test_derive_key_rejects_unknown_purpose() -> None:
    with pytest.raises(ValueError):
        derive_key("secret", "wrap")


@given(message=hex_message_strategy, secret=secret_strategy)
@settings(max_examples=100)
def test_property_hmac_signature_verifies(message: str, secret: str) -> None:
    """
    Property: hmac_sign yields 64 lower-case hex characters that
    hmac_verify accepts for the same message and secret only.
    """
    signature = hmac_sign(message, secret)

    assert len(signature) == 64
    assert signature == signature.lower()
    assert hmac_verify(message, signature, secret)
    assert not hmac_verify(message + "0", signature, secret)


@pytest.mark.parametrize(
    "signature",
    [
        "",
        "abc",
        "g" * 64,
        "A" * 64,
        "a" * 63,
        "a" * 65,
    ],
)
def test_hmac_verify_rejects_malformed_signatures(signature: str) -> None:
    assert not hmac_verify("message", signature, "secret")


def test_hmac_verify_rejects_uppercase_copy_of_valid_signature() -> None:
    signature = hmac_sign("message", "secret")
    if signature == signature.upper():
        pytest.skip("signature has no letters")
    assert not hmac_verify("message", signature.upper(), "secret")


@given(message=hex_message_strategy, position=st.integers(min_value=0, max_value=31))
@settings(max_examples=100)
def test_property_flipped_signature_byte_is_rejected(message: str, position: int) -> None:
    """
    Property: flipping any single byte of a valid signature makes
    hmac_verify fail.
    """
    raw = bytearray(bytes.fromhex(hmac_sign(message, "secret")))
    raw[position] ^= 0xFF

    assert not hmac_verify(message, bytes(raw).hex(), "secret")


@pytest.mark.parametrize(
    "alter",
    [
        lambda sig: sig[:-1],
        lambda sig: sig[:32],
        lambda sig: sig + "0",
        lambda sig: sig + sig,
    ],
    ids=["drop-last", "half", "one-extra", "doubled"],
)
def test_hmac_verify_rejects_truncated_or_extended_signature(alter) -> None:
    signature = hmac_sign("message", "secret")

    assert not hmac_verify("message", alter(signature), "secret")


@given(message=hex_message_strategy, secret=secret_strategy, other=secret_strategy)
@settings(max_examples=100)
def test_property_signature_from_other_secret_is_rejected(
    message: str, secret: str, other: str
) -> None:
    assume(secret != other)

    assert not hmac_verify(message, hmac_sign(message, other), secret)


def test_hmac_sign_is_deterministic() -> None:
    assert hmac_sign("message", "secret") == hmac_sign("message", "secret")


@given(byte_count=st.integers(min_value=0, max_value=64))
@settings(max_examples=50)
def test_property_random_hex_length(byte_count: int) -> None:
    value = generate_random_hex(byte_count)
    assert len(value) == byte_count * 2
    assert all(c in "0123456789abcdef" for c in value)


def test_random_hex_of_zero_bytes_is_empty() -> None:
    assert generate_random_hex(0) == ""


def test_random_hex_values_do_not_repeat() -> None:
    values = [generate_random_hex(20) for _ in range(20)]

    assert len(set(values)) == 20


def test_timing_safe_equal() -> None:
    assert timing_safe_equal("state-value", "state-value")
    assert not timing_safe_equal("state-value", "state-valuf")
    assert not timing_safe_equal("short", "longer-value")
