import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import shieldforge.domain.services as domain_services
from shieldforge.domain.entities import PasswordReset
from shieldforge.domain.errors import InvalidResetCode, ResetCodeExpired
from shieldforge.domain.ports.password_reset_repository import (
    PasswordResetRepositoryPort,
)
from shieldforge.domain.ports.reset_notifier import ResetNotifierPort
from shieldforge.domain.ports.user_repository import UserRepositoryPort

logger = logging.getLogger("shieldforge.application.password_reset")


async def request_password_reset(
    users: UserRepositoryPort,
    resets: PasswordResetRepositoryPort,
    notifier: ResetNotifierPort,
    email: str,
    *,
    code_length: int = domain_services.RESET_CODE_LENGTH,
    code_ttl_seconds: int = 3600,
) -> None:
    normalized_email = email.strip().lower()
    user = await users.get_by_email(normalized_email)
    if user is None:
        # indistinguishable from success for the caller
        logger.info("reset requested for unknown email")
        return

    generated_code = domain_services.generate_reset_code(code_length)
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=code_ttl_seconds)
    await resets.save(
        PasswordReset(
            user_id=user.id,
            code_hash=domain_services.hash_reset_code(generated_code),
            expires_at=expires_at,
        )
    )

    try:
        await notifier.send_reset_code(to=user.email, code=generated_code)
    except Exception:  # noqa: BLE001
        logger.exception("reset code delivery failed", extra={"user_id": user.id})
        return
    logger.info("reset code issued", extra={"user_id": user.id})


async def reset_password(
    users: UserRepositoryPort,
    resets: PasswordResetRepositoryPort,
    email: str,
    code: str,
    new_password: str,
    hash_password: Callable[..., str],
) -> None:
    normalized_email = email.strip().lower()
    user = await users.get_by_email(normalized_email)
    if user is None:
        raise InvalidResetCode()

    reset = await resets.get_for_user(user.id)
    if reset is None:
        raise InvalidResetCode()
    if reset.is_expired(datetime.now(timezone.utc)):
        await resets.delete_for_user(user.id)
        raise ResetCodeExpired()
    if not domain_services.verify_reset_code(code, reset.code_hash):
        raise InvalidResetCode()

    await users.update_password_hash(user.id, hash_password(new_password))
    await resets.delete_for_user(user.id)
    logger.info("password reset completed", extra={"user_id": user.id})
