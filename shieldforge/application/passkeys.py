from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.cose import COSEAlgorithmIdentifier
from webauthn.helpers.structs import (
    AttestationConveyancePreference,
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

import shieldforge.domain.services as domain_services
from shieldforge.domain.entities import (
    AuthenticatorState,
    Challenge,
    CredentialDescriptor,
    PasskeyUser,
    VerifiedPasskeyAuthentication,
    VerifiedPasskeyRegistration,
)
from shieldforge.domain.errors import ChallengeNotFound, PasskeyVerificationFailed
from shieldforge.domain.ports.challenge_store import ChallengeStorePort
from shieldforge.domain.ports.passkey_verifier import PasskeyVerifierPort
from shieldforge.infrastructure.challenges.memory import InMemoryChallengeStore
from shieldforge.infrastructure.webauthn.verifier import WebAuthnVerifier
from shieldforge.logging import challenge_prefix
from shieldforge.schemas.passkeys import AuthenticationOptions, RegistrationOptions

logger = logging.getLogger("shieldforge.application.passkeys")

DEFAULT_CHALLENGE_TTL_SECONDS = 300
DEFAULT_TIMEOUT_MS = 60_000

SUPPORTED_ALGORITHMS = [
    COSEAlgorithmIdentifier.ECDSA_SHA_256,
    COSEAlgorithmIdentifier.RSASSA_PKCS1_v1_5_SHA_256,
]


def _descriptors(
    credentials: Iterable[CredentialDescriptor] | None,
) -> list[PublicKeyCredentialDescriptor]:
    descriptors = []
    for cred in credentials or ():
        transports = [AuthenticatorTransport(t) for t in cred.transports or ()]
        descriptors.append(
            PublicKeyCredentialDescriptor(
                id=base64url_to_bytes(cred.id),
                transports=transports or None,
            )
        )
    return descriptors


class PasskeyCeremonyCoordinator:
    """
    Drives WebAuthn registration and authentication ceremonies.

    Each `begin_*` issues a fresh challenge and records it in the challenge
    store. Each `complete_*` consumes that challenge (atomic fetch-and-delete)
    *before* any cryptographic check, so a response can be accepted at most
    once and a failed attempt means restarting the ceremony.
    """

    def __init__(
        self,
        *,
        rp_name: str,
        rp_id: str,
        origin: str,
        challenge_ttl_seconds: float = DEFAULT_CHALLENGE_TTL_SECONDS,
        challenge_store: ChallengeStorePort | None = None,
        verifier: PasskeyVerifierPort | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.rp_name = rp_name
        self.rp_id = rp_id
        self.origin = origin
        self.challenge_ttl_seconds = challenge_ttl_seconds
        self.challenge_store = challenge_store or InMemoryChallengeStore()
        self.verifier = verifier or WebAuthnVerifier()
        self.timeout_ms = timeout_ms

    async def begin_registration(
        self,
        user: PasskeyUser,
        exclude_credentials: Iterable[CredentialDescriptor] | None = None,
    ) -> RegistrationOptions:
        challenge = domain_services.generate_challenge()
        options = generate_registration_options(
            rp_id=self.rp_id,
            rp_name=self.rp_name,
            user_id=user.id.encode("utf-8"),
            user_name=user.email,
            user_display_name=user.display_name,
            challenge=base64url_to_bytes(challenge),
            timeout=self.timeout_ms,
            attestation=AttestationConveyancePreference.NONE,
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement.PREFERRED,
                user_verification=UserVerificationRequirement.PREFERRED,
            ),
            supported_pub_key_algs=SUPPORTED_ALGORITHMS,
            exclude_credentials=_descriptors(exclude_credentials),
        )

        await self.challenge_store.store(
            challenge, user_id=user.id, ttl_seconds=self.challenge_ttl_seconds
        )
        logger.info(
            "registration ceremony started",
            extra={"user_id": user.id, "challenge": challenge_prefix(challenge)},
        )
        return RegistrationOptions.model_validate(json.loads(options_to_json(options)))

    async def complete_registration(
        self, response: dict[str, Any] | str, expected_challenge: str
    ) -> VerifiedPasskeyRegistration:
        stored = await self._consume(expected_challenge)

        verified = self.verifier.verify_registration(
            response=response,
            expected_challenge=base64url_to_bytes(expected_challenge),
            expected_rp_id=self.rp_id,
            expected_origin=self.origin,
        )
        logger.info("passkey registered", extra={"user_id": stored.user_id})
        return VerifiedPasskeyRegistration(
            user_id=stored.user_id,
            credential_id=bytes_to_base64url(verified.credential_id),
            public_key=bytes_to_base64url(verified.credential_public_key),
            sign_count=verified.sign_count,
            device_type=_enum_value(verified.credential_device_type),
            backed_up=bool(verified.credential_backed_up),
            aaguid=verified.aaguid or None,
            user_verified=bool(verified.user_verified),
        )

    async def begin_authentication(
        self, allow_credentials: Iterable[CredentialDescriptor] | None = None
    ) -> AuthenticationOptions:
        challenge = domain_services.generate_challenge()
        options = generate_authentication_options(
            rp_id=self.rp_id,
            challenge=base64url_to_bytes(challenge),
            timeout=self.timeout_ms,
            allow_credentials=_descriptors(allow_credentials),
            user_verification=UserVerificationRequirement.PREFERRED,
        )

        # username-less: no user binding
        await self.challenge_store.store(
            challenge, user_id=None, ttl_seconds=self.challenge_ttl_seconds
        )
        logger.info(
            "authentication ceremony started",
            extra={"challenge": challenge_prefix(challenge)},
        )
        return AuthenticationOptions.model_validate(
            json.loads(options_to_json(options))
        )

    async def complete_authentication(
        self,
        response: dict[str, Any] | str,
        expected_challenge: str,
        authenticator: AuthenticatorState,
    ) -> VerifiedPasskeyAuthentication:
        await self._consume(expected_challenge)
        if not domain_services.secure_compare(
            _credential_id_of(response), _canonical_id(authenticator.credential_id)
        ):
            logger.warning(
                "assertion for a different credential",
                extra={"challenge": challenge_prefix(expected_challenge)},
            )
            raise PasskeyVerificationFailed("credential id does not match")

        verified = self.verifier.verify_authentication(
            response=response,
            expected_challenge=base64url_to_bytes(expected_challenge),
            expected_rp_id=self.rp_id,
            expected_origin=self.origin,
            credential_public_key=base64url_to_bytes(authenticator.public_key),
            credential_current_sign_count=authenticator.sign_count,
        )
        return VerifiedPasskeyAuthentication(
            credential_id=authenticator.credential_id,
            new_sign_count=verified.new_sign_count,
            device_type=_enum_value(verified.credential_device_type),
            backed_up=bool(verified.credential_backed_up),
            user_verified=bool(getattr(verified, "user_verified", False)),
        )

    async def clear_expired_challenges(self) -> int:
        return await self.challenge_store.clear_expired()

    async def _consume(self, challenge: str) -> Challenge:
        stored = await self.challenge_store.consume(challenge)
        if stored is None:
            logger.warning(
                "challenge not found",
                extra={"challenge": challenge_prefix(challenge)},
            )
            raise ChallengeNotFound("challenge not found or expired")
        return stored


def _enum_value(value: Any) -> str | None:
    if value is None:
        return None
    return getattr(value, "value", value)


def _canonical_id(value: str) -> str:
    try:
        return bytes_to_base64url(base64url_to_bytes(value))
    except ValueError as e:
        raise PasskeyVerificationFailed("malformed credential id") from e


def _credential_id_of(response: dict[str, Any] | str) -> str:
    if isinstance(response, str):
        try:
            response = json.loads(response)
        except ValueError as e:
            raise PasskeyVerificationFailed("malformed authentication response") from e
    raw_id = None
    if isinstance(response, dict):
        raw_id = response.get("rawId") or response.get("id")
    if not isinstance(raw_id, str) or not raw_id:
        raise PasskeyVerificationFailed("authentication response has no credential id")
    return _canonical_id(raw_id)
