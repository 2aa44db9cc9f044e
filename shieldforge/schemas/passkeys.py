from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WebAuthnModel(BaseModel):
    """Snake_case in Python, camelCase (WebAuthn JSON) on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_client_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RelyingParty(_WebAuthnModel):
    id: str
    name: str


class UserEntity(_WebAuthnModel):
    id: str = Field(..., description="User handle, base64url")
    name: str
    display_name: str


class CredentialParameter(_WebAuthnModel):
    type: str = "public-key"
    alg: int = Field(..., description="COSE algorithm identifier")


class CredentialDescriptorOut(_WebAuthnModel):
    id: str = Field(..., description="Credential id, base64url")
    type: str = "public-key"
    transports: list[str] | None = None


class RegistrationOptions(_WebAuthnModel):
    challenge: str
    rp: RelyingParty
    user: UserEntity
    pub_key_cred_params: list[CredentialParameter]
    timeout: int | None = None
    attestation: str | None = "none"
    exclude_credentials: list[CredentialDescriptorOut] = []
    authenticator_selection: dict[str, Any] | None = None


class AuthenticationOptions(_WebAuthnModel):
    challenge: str
    rp_id: str
    timeout: int | None = None
    allow_credentials: list[CredentialDescriptorOut] = []
    user_verification: str | None = "preferred"
