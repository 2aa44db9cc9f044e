import base64
import json
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from shieldforge.domain.errors import InvalidToken
from shieldforge.infrastructure.security.tokens import (
    TokenService,
    decode_token,
    generate_token,
    parse_expires_in,
    verify_token,
)

SECRET = "test-secret-key"
PAYLOAD = {"userId": "123", "email": "test@example.com"}


def _b64(obj) -> str:
    raw = json.dumps(obj, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def unsigned_token(claims: dict) -> str:
    return f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(claims)}."


def future_exp() -> int:
    return int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())


def test_token_has_three_segments():
    token = generate_token(PAYLOAD, SECRET)
    assert isinstance(token, str)
    assert len(token.split(".")) == 3


def test_round_trip_preserves_subject():
    token = generate_token(PAYLOAD, SECRET, "1h")
    claims = verify_token(token, SECRET)
    assert claims["userId"] == "123"
    assert claims["email"] == "test@example.com"
    assert "iat" in claims and "exp" in claims
    assert claims["exp"] - claims["iat"] == 3600


def test_different_payloads_give_different_tokens():
    assert generate_token(PAYLOAD, SECRET) != generate_token(
        {**PAYLOAD, "userId": "456"}, SECRET
    )


def test_header_is_pinned_to_hs256():
    token = generate_token(PAYLOAD, SECRET)
    assert jwt.get_unverified_header(token)["alg"] == "HS256"


def test_wrong_secret_is_invalid_signature():
    token = generate_token(PAYLOAD, SECRET)
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, "wrong-secret")
    assert exc.value.reason == "invalid_signature"


@pytest.mark.parametrize("token", ["invalid.token.here", "garbage", ""])
def test_malformed_token(token):
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, SECRET)
    assert exc.value.reason == "malformed"


def test_unsigned_token_is_rejected_but_decodable():
    token = unsigned_token({**PAYLOAD, "exp": future_exp()})
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, SECRET)
    assert exc.value.reason == "unsigned"

    decoded = decode_token(token)
    assert decoded is not None and decoded["userId"] == "123"


def test_non_allow_listed_algorithm_is_rejected():
    token = jwt.encode({**PAYLOAD, "exp": future_exp(), "iat": 0}, SECRET, algorithm="HS512")
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, SECRET)
    assert exc.value.reason == "disallowed_algorithm"
    assert decode_token(token)["userId"] == "123"


def test_explicit_allow_list_accepts_listed_algorithm():
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode(
        {**PAYLOAD, "exp": future_exp(), "iat": now}, SECRET, algorithm="HS512"
    )
    claims = verify_token(token, SECRET, allowed_algorithms=["HS512"])
    assert claims["userId"] == "123"


def test_asymmetric_token_against_hmac_secret_is_invalid():
    claims = {**PAYLOAD, "exp": future_exp(), "iat": 0}
    token = f"{_b64({'alg': 'RS256', 'typ': 'JWT'})}.{_b64(claims)}.c2lnbmF0dXJl"
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, SECRET, allowed_algorithms=["HS256", "RS256"])
    # without the cryptography extra PyJWT has no RS256 at all
    assert exc.value.reason in {"invalid_key", "disallowed_algorithm"}


def test_pem_shaped_secret_is_invalid_key():
    token = generate_token(PAYLOAD, SECRET, "1h")
    pem_secret = "-----BEGIN PUBLIC KEY-----\nAAAA\n-----END PUBLIC KEY-----"
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, pem_secret)
    assert exc.value.reason == "invalid_key"


@pytest.mark.parametrize("algorithms", [["none"], ["HS256", "None"]])
def test_none_can_never_be_allow_listed(algorithms):
    token = generate_token(PAYLOAD, SECRET)
    with pytest.raises(ValueError):
        verify_token(token, SECRET, allowed_algorithms=algorithms)


def test_expired_token_is_rejected_but_decodable():
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    token = jwt.encode(
        {**PAYLOAD, "iat": past - timedelta(hours=1), "exp": past},
        SECRET,
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, SECRET)
    assert exc.value.reason == "expired"
    assert decode_token(token)["userId"] == "123"


def test_token_without_exp_is_rejected():
    token = jwt.encode({**PAYLOAD, "iat": 0}, SECRET, algorithm="HS256")
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, SECRET)
    assert exc.value.reason == "missing_claim"


def test_issuer_scenario():
    token = generate_token(
        {"userId": "u1", "email": "a@b.com"}, "secret", "1h", issuer="svc"
    )
    assert decode_token(token)["iss"] == "svc"

    assert verify_token(token, "secret", issuer="svc")["userId"] == "u1"
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, "secret", issuer="evil")
    assert exc.value.reason == "invalid_issuer"


def test_issuer_mismatch_between_services():
    token = generate_token(PAYLOAD, SECRET, issuer="svc-a")
    with pytest.raises(InvalidToken):
        verify_token(token, SECRET, issuer="svc-b")
    assert verify_token(token, SECRET, issuer="svc-a")["iss"] == "svc-a"


def test_expected_issuer_requires_the_claim():
    token = generate_token(PAYLOAD, SECRET)
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, SECRET, issuer="svc")
    assert exc.value.reason == "invalid_issuer"


def test_audience_checks():
    token = generate_token(PAYLOAD, SECRET, audience="api")
    assert verify_token(token, SECRET, audience="api")["aud"] == "api"
    with pytest.raises(InvalidToken) as exc:
        verify_token(token, SECRET, audience="admin")
    assert exc.value.reason == "invalid_audience"


def test_unconfigured_claims_are_not_constraints():
    token = generate_token(PAYLOAD, SECRET, issuer="svc", audience="api")
    claims = verify_token(token, SECRET)
    assert claims["iss"] == "svc" and claims["aud"] == "api"


def test_empty_issuer_is_not_embedded():
    token = generate_token(PAYLOAD, SECRET, issuer="", audience=None)
    claims = decode_token(token)
    assert "iss" not in claims and "aud" not in claims


@pytest.mark.parametrize("claim", ["exp", "iat", "nbf", "iss", "aud"])
def test_reserved_claims_in_payload_are_refused(claim):
    with pytest.raises(ValueError):
        generate_token({**PAYLOAD, claim: 1}, SECRET)


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        generate_token(PAYLOAD, "")


@pytest.mark.parametrize("token", ["invalid-token", "", "a.b.c"])
def test_decode_returns_none_for_garbage(token):
    assert decode_token(token) is None


@pytest.mark.parametrize(
    "value,seconds",
    [
        ("7d", 7 * 86400),
        ("1h", 3600),
        ("30m", 1800),
        ("45s", 45),
        ("1ms", 0.001),
        ("2w", 14 * 86400),
        ("90", 90),
        (120, 120),
        (1.5, 1.5),
        (timedelta(minutes=2), 120),
    ],
)
def test_parse_expires_in(value, seconds):
    assert parse_expires_in(value) == timedelta(seconds=seconds)


@pytest.mark.parametrize("value", ["soon", "1x", "-1h", 0, -5, True, None])
def test_parse_expires_in_rejects(value):
    with pytest.raises(ValueError):
        parse_expires_in(value)


class TestTokenService:
    def test_sign_and_verify_with_bound_policy(self):
        svc = TokenService(secret=SECRET, expires_in="1h", issuer="svc", audience="api")
        token = svc.sign(PAYLOAD)
        claims = svc.verify(token)
        assert claims["iss"] == "svc" and claims["aud"] == "api"

    def test_rejects_tokens_from_another_issuer(self):
        other = TokenService(secret=SECRET, issuer="other")
        svc = TokenService(secret=SECRET, issuer="svc")
        with pytest.raises(InvalidToken):
            svc.verify(other.sign(PAYLOAD))

    def test_per_call_expiry_override(self):
        svc = TokenService(secret=SECRET, expires_in="7d")
        claims = svc.decode(svc.sign(PAYLOAD, "1h"))
        assert claims["exp"] - claims["iat"] == 3600

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"secret": ""},
            {"secret": SECRET, "allowed_algorithms": ("none",)},
            {"secret": SECRET, "expires_in": "whenever"},
        ],
    )
    def test_invalid_configuration(self, kwargs):
        with pytest.raises(ValueError):
            TokenService(**kwargs)
