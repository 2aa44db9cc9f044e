from __future__ import annotations

from typing import Any

from webauthn import verify_authentication_response, verify_registration_response
from webauthn.authentication.verify_authentication_response import (
    VerifiedAuthentication,
)
from webauthn.helpers.exceptions import WebAuthnException
from webauthn.registration.verify_registration_response import VerifiedRegistration

from shieldforge.domain.errors import PasskeyVerificationFailed
from shieldforge.domain.ports.passkey_verifier import PasskeyVerifierPort


class WebAuthnVerifier(PasskeyVerifierPort):
    """Attestation/assertion checks delegated to py_webauthn.

    Every py_webauthn failure, including undecodable stored public keys,
    surfaces as PasskeyVerificationFailed.
    """

    def __init__(self, *, require_user_verification: bool = False) -> None:
        self.require_user_verification = require_user_verification

    def verify_registration(
        self,
        *,
        response: dict[str, Any] | str,
        expected_challenge: bytes,
        expected_rp_id: str,
        expected_origin: str,
    ) -> VerifiedRegistration:
        try:
            return verify_registration_response(
                credential=response,
                expected_challenge=expected_challenge,
                expected_rp_id=expected_rp_id,
                expected_origin=expected_origin,
                require_user_verification=self.require_user_verification,
            )
        except WebAuthnException as e:
            raise PasskeyVerificationFailed(str(e)) from e

    def verify_authentication(
        self,
        *,
        response: dict[str, Any] | str,
        expected_challenge: bytes,
        expected_rp_id: str,
        expected_origin: str,
        credential_public_key: bytes,
        credential_current_sign_count: int,
    ) -> VerifiedAuthentication:
        try:
            return verify_authentication_response(
                credential=response,
                expected_challenge=expected_challenge,
                expected_rp_id=expected_rp_id,
                expected_origin=expected_origin,
                credential_public_key=credential_public_key,
                credential_current_sign_count=credential_current_sign_count,
                require_user_verification=self.require_user_verification,
            )
        except WebAuthnException as e:
            raise PasskeyVerificationFailed(str(e)) from e
