# shieldforge/domain/services.py
from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import string
from dataclasses import asdict
from typing import Any

from shieldforge.domain.entities import User
from shieldforge.domain.errors import EntropyUnavailable

DIGITS = string.digits
ALPHANUMERIC = string.ascii_uppercase + string.ascii_lowercase + string.digits

RESET_CODE_LENGTH = 6
SECURE_TOKEN_LENGTH = 32
CHALLENGE_BYTES = 32
MIN_CHALLENGE_BYTES = 16

_HASH_HEX_LENGTH = hashlib.sha256().digest_size * 2


def generate_code(length: int, alphabet: str) -> str:
    """
    Return exactly `length` symbols drawn uniformly from `alphabet`
    using the OS CSPRNG (`secrets`).
    """
    if length < 1:
        raise ValueError("length must be a positive integer")
    if not alphabet:
        raise ValueError("alphabet cannot be empty")
    try:
        return "".join(secrets.choice(alphabet) for _ in range(length))
    except (OSError, NotImplementedError) as e:
        raise EntropyUnavailable("system entropy source unavailable") from e


def generate_reset_code(length: int = RESET_CODE_LENGTH) -> str:
    """Numeric reset code, zero-padded by construction."""
    return generate_code(length, DIGITS)


def generate_secure_token(length: int = SECURE_TOKEN_LENGTH) -> str:
    """Opaque alphanumeric token (62 symbols)."""
    return generate_code(length, ALPHANUMERIC)


def generate_challenge(num_bytes: int = CHALLENGE_BYTES) -> str:
    """Random WebAuthn challenge, base64url without padding."""
    if num_bytes < MIN_CHALLENGE_BYTES:
        raise ValueError(f"challenge needs at least {MIN_CHALLENGE_BYTES} bytes")
    try:
        raw = secrets.token_bytes(num_bytes)
    except (OSError, NotImplementedError) as e:
        raise EntropyUnavailable("system entropy source unavailable") from e
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def secure_compare(a: str, b: str) -> bool:
    """Constant-time equality for credential ids and other secret strings."""
    # compare_digest only takes str when both are ASCII
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def hash_reset_code(code: str) -> str:
    """
    SHA-256 hex digest (64 lowercase chars) of a reset code.
    Deterministic, so the stored hash can be used as a lookup key.
    """
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def verify_reset_code(code: str, stored_hash: str) -> bool:
    """
    Verify `code` against a hash from hash_reset_code().
    Malformed stored hashes yield False, never an exception.
    """
    if not isinstance(code, str) or not isinstance(stored_hash, str):
        return False
    if len(stored_hash) != _HASH_HEX_LENGTH:
        return False
    try:
        expected = bytes.fromhex(stored_hash)
    except ValueError:
        return False

    try:
        calc = hashlib.sha256(code.encode("utf-8")).digest()
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(calc, expected)


def sanitize_user(user: User) -> dict[str, Any]:
    """Public view of a user, without the password hash."""
    data = asdict(user)
    data.pop("password_hash", None)
    return data
