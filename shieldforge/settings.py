from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    log_level: str = "INFO"

    # Tokens
    jwt_secret: str = "change-me"
    jwt_expires_in: str = "7d"
    jwt_issuer: str | None = None
    jwt_audience: str | None = None
    jwt_allowed_algorithms: list[str] = ["HS256"]

    # Passwords / reset codes
    bcrypt_rounds: int = 12
    reset_code_length: int = 6
    reset_code_ttl_seconds: int = 3600

    # Passkeys
    rp_name: str = "ShieldForge"
    rp_id: str = "localhost"
    origin: str = "http://localhost:3000"
    challenge_ttl_seconds: int = 300
    challenge_sweep_interval_seconds: int = 60

    # Infra
    redis_url: str = "redis://redis:6379/0"

    # Sessions
    session_cookie_name: str = "sf_session"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
