from __future__ import annotations

from typing import Any, Iterable, Mapping

import shieldforge.domain.services as domain_services
from shieldforge.application.passkeys import PasskeyCeremonyCoordinator
from shieldforge.domain.entities import User
from shieldforge.domain.ports.challenge_store import ChallengeStorePort
from shieldforge.infrastructure.challenges.memory import InMemoryChallengeStore
from shieldforge.infrastructure.security import password
from shieldforge.infrastructure.security.tokens import (
    DEFAULT_ALLOWED_ALGORITHMS,
    DEFAULT_EXPIRES_IN,
    ExpiresIn,
    TokenService,
)
from shieldforge.settings import Settings


class ShieldForge:
    """
    One configured entry point for callers (resolvers, route handlers).
    Holds the secret and policy; every method delegates to the stateless
    components.
    """

    def __init__(
        self,
        *,
        jwt_secret: str,
        jwt_expires_in: ExpiresIn = DEFAULT_EXPIRES_IN,
        bcrypt_rounds: int = 12,
        jwt_issuer: str | None = None,
        jwt_audience: str | None = None,
        allowed_algorithms: Iterable[str] = DEFAULT_ALLOWED_ALGORITHMS,
        passkeys: PasskeyCeremonyCoordinator | None = None,
    ) -> None:
        self.bcrypt_rounds = bcrypt_rounds
        self.tokens = TokenService(
            secret=jwt_secret,
            expires_in=jwt_expires_in,
            issuer=jwt_issuer,
            audience=jwt_audience,
            allowed_algorithms=tuple(allowed_algorithms),
        )
        self.passkeys = passkeys

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        challenge_store: ChallengeStorePort | None = None,
    ) -> "ShieldForge":
        store = challenge_store or InMemoryChallengeStore(
            sweep_interval_seconds=settings.challenge_sweep_interval_seconds
        )
        passkeys = PasskeyCeremonyCoordinator(
            rp_name=settings.rp_name,
            rp_id=settings.rp_id,
            origin=settings.origin,
            challenge_ttl_seconds=settings.challenge_ttl_seconds,
            challenge_store=store,
        )
        return cls(
            jwt_secret=settings.jwt_secret,
            jwt_expires_in=settings.jwt_expires_in,
            bcrypt_rounds=settings.bcrypt_rounds,
            jwt_issuer=settings.jwt_issuer,
            jwt_audience=settings.jwt_audience,
            allowed_algorithms=settings.jwt_allowed_algorithms,
            passkeys=passkeys,
        )

    # passwords

    def hash_password(self, plain: str) -> str:
        return password.hash_password(plain, rounds=self.bcrypt_rounds)

    def verify_password(self, plain: str, password_hash: str) -> bool:
        return password.verify_password(plain, password_hash)

    # session tokens

    def generate_token(
        self, payload: Mapping[str, Any], expires_in: ExpiresIn | None = None
    ) -> str:
        return self.tokens.sign(payload, expires_in)

    def verify_token(self, token: str) -> dict[str, Any]:
        """Raises InvalidToken."""
        return self.tokens.verify(token)

    def decode_token(self, token: str) -> dict[str, Any] | None:
        return self.tokens.decode(token)

    # reset codes / opaque tokens

    def generate_reset_code(self, length: int = domain_services.RESET_CODE_LENGTH) -> str:
        return domain_services.generate_reset_code(length)

    def generate_secure_token(
        self, length: int = domain_services.SECURE_TOKEN_LENGTH
    ) -> str:
        return domain_services.generate_secure_token(length)

    def hash_reset_code(self, code: str) -> str:
        return domain_services.hash_reset_code(code)

    def verify_reset_code(self, code: str, stored_hash: str) -> bool:
        return domain_services.verify_reset_code(code, stored_hash)

    def sanitize_user(self, user: User) -> dict[str, Any]:
        return domain_services.sanitize_user(user)
