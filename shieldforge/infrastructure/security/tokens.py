"""
Compact signed session tokens (JWT, via PyJWT).

Signing always uses HS256. Verification is pinned to an explicit
allow-list instead of trusting the ``alg`` header, and ``alg: none`` is
rejected before the library is consulted. Issuer/audience are only
checked when the caller configures them.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping

import jwt

from shieldforge.domain.errors import InvalidToken

logger = logging.getLogger("shieldforge.infrastructure.security.tokens")

SIGNING_ALGORITHM = "HS256"
DEFAULT_ALLOWED_ALGORITHMS: tuple[str, ...] = (SIGNING_ALGORITHM,)
DEFAULT_EXPIRES_IN = "7d"

RESERVED_CLAIMS = frozenset({"exp", "iat", "nbf", "iss", "aud"})

_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 7 * 86400,
    "y": 365.25 * 86400,
}
_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d|w|y)?\s*$")

ExpiresIn = int | float | str | timedelta


def parse_expires_in(value: ExpiresIn) -> timedelta:
    """
    Accepts seconds (int/float), a timedelta, or strings like "7d", "1h",
    "30m", "1ms". A unit-less string is read as seconds.
    """
    if isinstance(value, bool):
        raise ValueError("expires_in must be a duration, not a bool")
    if isinstance(value, timedelta):
        delta = value
    elif isinstance(value, (int, float)):
        delta = timedelta(seconds=value)
    elif isinstance(value, str):
        m = _DURATION_RE.match(value)
        if not m:
            raise ValueError(f"unrecognized duration: {value!r}")
        amount, unit = float(m.group(1)), m.group(2) or "s"
        delta = timedelta(seconds=amount * _UNIT_SECONDS[unit])
    else:
        raise ValueError(f"unsupported expires_in type: {type(value).__name__}")

    if delta <= timedelta(0):
        raise ValueError("expires_in must be positive")
    return delta


def generate_token(
    payload: Mapping[str, Any],
    secret: str,
    expires_in: ExpiresIn = DEFAULT_EXPIRES_IN,
    *,
    issuer: str | None = None,
    audience: str | None = None,
) -> str:
    """Sign `payload` with HS256, adding iat/exp and optional iss/aud."""
    if not secret:
        raise ValueError("secret is required")
    clashing = RESERVED_CLAIMS.intersection(payload)
    if clashing:
        raise ValueError(f"payload must not set reserved claims: {sorted(clashing)}")

    now = datetime.now(timezone.utc)
    claims: dict[str, Any] = dict(payload)
    claims["iat"] = now
    claims["exp"] = now + parse_expires_in(expires_in)
    if issuer:
        claims["iss"] = issuer
    if audience:
        claims["aud"] = audience
    return jwt.encode(claims, secret, algorithm=SIGNING_ALGORITHM)


def _allow_list(allowed_algorithms: Iterable[str] | None) -> list[str]:
    algorithms = list(allowed_algorithms or DEFAULT_ALLOWED_ALGORITHMS)
    if any(a.lower() == "none" for a in algorithms):
        raise ValueError("'none' can never be an allowed algorithm")
    return algorithms


def verify_token(
    token: str,
    secret: str,
    *,
    allowed_algorithms: Iterable[str] | None = None,
    issuer: str | None = None,
    audience: str | None = None,
) -> dict[str, Any]:
    """
    Verify signature, algorithm, expiry and (when given) iss/aud.
    Raises InvalidToken with a `reason` on any failure.
    """
    algorithms = _allow_list(allowed_algorithms)

    try:
        header = jwt.get_unverified_header(token)
    except jwt.InvalidTokenError as e:
        raise InvalidToken("malformed") from e

    alg = header.get("alg")
    if not isinstance(alg, str) or alg.lower() == "none":
        raise InvalidToken("unsigned")
    if alg not in algorithms:
        raise InvalidToken("disallowed_algorithm")

    kwargs: dict[str, Any] = {}
    if issuer is not None:
        kwargs["issuer"] = issuer
    if audience is not None:
        kwargs["audience"] = audience

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=algorithms,
            options={"require": ["exp", "iat"], "verify_aud": audience is not None},
            **kwargs,
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidToken("expired") from e
    except jwt.InvalidSignatureError as e:
        raise InvalidToken("invalid_signature") from e
    except jwt.InvalidAlgorithmError as e:
        raise InvalidToken("disallowed_algorithm") from e
    except jwt.InvalidIssuerError as e:
        raise InvalidToken("invalid_issuer") from e
    except jwt.InvalidAudienceError as e:
        raise InvalidToken("invalid_audience") from e
    except jwt.MissingRequiredClaimError as e:
        if e.claim == "iss":
            raise InvalidToken("invalid_issuer") from e
        if e.claim == "aud":
            raise InvalidToken("invalid_audience") from e
        raise InvalidToken("missing_claim") from e
    except jwt.DecodeError as e:
        raise InvalidToken("malformed") from e
    except jwt.InvalidTokenError as e:
        raise InvalidToken("invalid") from e
    except jwt.InvalidKeyError as e:
        # secret unusable for the token's algorithm (e.g. RS256 against an HMAC secret)
        raise InvalidToken("invalid_key") from e
    except jwt.PyJWTError as e:
        raise InvalidToken("invalid") from e


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Read claims WITHOUT verifying anything. For logging/introspection only;
    never base an authorization decision on the result.
    """
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None


@dataclass(frozen=True)
class TokenService:
    """Binds a secret and claim policy to the token functions above."""

    secret: str
    expires_in: ExpiresIn = DEFAULT_EXPIRES_IN
    issuer: str | None = None
    audience: str | None = None
    allowed_algorithms: tuple[str, ...] = DEFAULT_ALLOWED_ALGORITHMS

    def __post_init__(self):
        if not self.secret:
            raise ValueError("secret is required")
        _allow_list(self.allowed_algorithms)
        parse_expires_in(self.expires_in)

    def sign(self, payload: Mapping[str, Any], expires_in: ExpiresIn | None = None) -> str:
        return generate_token(
            payload,
            self.secret,
            self.expires_in if expires_in is None else expires_in,
            issuer=self.issuer,
            audience=self.audience,
        )

    def verify(self, token: str) -> dict[str, Any]:
        try:
            return verify_token(
                token,
                self.secret,
                allowed_algorithms=self.allowed_algorithms,
                issuer=self.issuer,
                audience=self.audience,
            )
        except InvalidToken as e:
            logger.info("token rejected", extra={"reason": e.reason})
            raise

    def decode(self, token: str) -> dict[str, Any] | None:
        return decode_token(token)
