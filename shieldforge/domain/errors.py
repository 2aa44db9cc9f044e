class ShieldForgeError(Exception):
    """Base class for all shieldforge errors."""

    pass


class InvalidToken(ShieldForgeError):
    """A session token failed verification.

    ``reason`` classifies the failure: ``malformed``, ``unsigned``,
    ``disallowed_algorithm``, ``invalid_signature``, ``expired``,
    ``invalid_issuer``, ``invalid_audience``, ``missing_claim``, ``invalid_key``
    or ``invalid``.
    """

    def __init__(self, reason: str = "invalid", message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or f"invalid token: {reason}")


class ChallengeNotFound(ShieldForgeError):
    """Challenge is absent, expired or already consumed."""

    pass


class EntropyUnavailable(ShieldForgeError):
    """The operating system CSPRNG could not be read."""

    pass


class PasskeyVerificationFailed(ShieldForgeError):
    """The authenticator response did not pass WebAuthn verification."""

    pass


class InvalidResetCode(ShieldForgeError):
    """No matching reset code for the given user."""

    pass


class ResetCodeExpired(ShieldForgeError):
    """The reset code exists but is past its expiry."""

    pass
