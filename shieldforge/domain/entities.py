from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    id: str | None = None
    email: str | None = None
    username: str | None = None
    name: str | None = None
    display_name: str | None = None
    role: str | None = None
    password_hash: str | None = None
    email_verified: bool = False

    def __post_init__(self):
        if self.email:
            self.email = self.email.strip().lower()
            if not self.email:
                raise ValueError("email cannot be empty")
        else:
            raise ValueError("email is required")


@dataclass(frozen=True)
class PasswordReset:
    user_id: str
    code_hash: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class Challenge:
    challenge: str
    created_at: datetime
    expires_at: datetime
    user_id: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class PasskeyUser:
    id: str
    email: str
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email


@dataclass(frozen=True)
class CredentialDescriptor:
    id: str  # base64url
    transports: list[str] | None = None


@dataclass(frozen=True)
class AuthenticatorState:
    credential_id: str  # base64url
    public_key: str  # base64url
    sign_count: int = 0


@dataclass(frozen=True)
class VerifiedPasskeyRegistration:
    user_id: str | None
    credential_id: str
    public_key: str
    sign_count: int
    device_type: str | None = None
    backed_up: bool = False
    aaguid: str | None = None
    user_verified: bool = False


@dataclass(frozen=True)
class VerifiedPasskeyAuthentication:
    credential_id: str
    new_sign_count: int
    device_type: str | None = None
    backed_up: bool = False
    user_verified: bool = False
