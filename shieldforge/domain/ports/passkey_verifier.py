from __future__ import annotations

from typing import Any, Protocol


class PasskeyVerifierPort(Protocol):
    """
    Cryptographic half of a WebAuthn ceremony. Raises
    PasskeyVerificationFailed when the response does not verify.
    """

    def verify_registration(
        self,
        *,
        response: dict[str, Any] | str,
        expected_challenge: bytes,
        expected_rp_id: str,
        expected_origin: str,
    ) -> Any:
        """Return an object exposing credential_id, credential_public_key,
        sign_count, aaguid, credential_device_type, credential_backed_up,
        user_verified."""

    def verify_authentication(
        self,
        *,
        response: dict[str, Any] | str,
        expected_challenge: bytes,
        expected_rp_id: str,
        expected_origin: str,
        credential_public_key: bytes,
        credential_current_sign_count: int,
    ) -> Any:
        """Return an object exposing credential_id, new_sign_count,
        credential_device_type, credential_backed_up, user_verified."""
