from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str
    SERVICE_NAME: str = "accounts-service"
    LOG_LEVEL: str = "INFO"

    # Internal service-to-service auth
    INTERNAL_SERVICE_TOKEN: Optional[str] = None
    INTERNAL_JWT_SIGNING_KEY: Optional[str] = None

    # Authorization service
    AUTHZ_SERVICE_URL: Optional[str] = None
    AUTHZ_CLIENT_TIMEOUT_MS: int = 5000

    # Request limits
    MAX_JSON_BODY_BYTES: int = 1048576
    ACTIONS_RATE_LIMIT: str = "600/minute"

    # Invites
    INVITE_EXPIRES_IN_DAYS: int = 7
    INVITE_TOKEN_BYTES: int = 32

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

settings = Settings()
