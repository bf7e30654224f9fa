# participation_service/core/config.py

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values come from the process environment (Docker Compose passes the
    # root .env through); a local .env is read as a fallback for dev runs.
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"

    # --- Production URLs (for inside Docker) ---
    DATABASE_URL_PROD: str = ""
    REDIS_URL_PROD: str = ""

    # --- Local Development URLs (for running locally) ---
    DATABASE_URL_LOCAL: str = "sqlite:///./participation.db"
    REDIS_URL_LOCAL: str = "redis://localhost:6379/0"

    # Secrets
    JWT_SECRET: str = "change-me-dev-secret"
    JWT_ALGORITHM: str = "HS256"
    INTERNAL_API_KEY: str = "change-me-internal-key"
    ATTENDEE_TOKEN_SECRET: str = "change-me-attendee-secret"

    # --- Participation rules ---
    # Joins close this many minutes before a session starts.
    JOIN_CUTOFF_MINUTES: int = 0
    # Upper bound on how long a join/leave waits for the session row lock.
    DB_LOCK_TIMEOUT_SECONDS: float = 5.0
    # Total attempts for a transaction that hit a lock/serialization conflict.
    CONFLICT_RETRY_ATTEMPTS: int = 2

    # --- Change notifier ---
    CAPACITY_CHANNEL_PREFIX: str = "platform.sessions.capacity.v1"
    NOTIFIER_REDIS_ENABLED: bool = True
    NOTIFIER_QUEUE_SIZE: int = 100

    # --- Rate limiting (public RSVP surface) ---
    RATE_LIMIT_ENABLED: bool = True
    PUBLIC_RSVP_RATE_LIMIT: str = "5/hour"

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # --- Dynamic Properties ---
    # These properties return the correct URL based on the ENV
    @property
    def DATABASE_URL(self) -> str:
        return (
            self.DATABASE_URL_LOCAL if self.ENV == "local" else self.DATABASE_URL_PROD
        )

    @property
    def REDIS_URL(self) -> str:
        return self.REDIS_URL_LOCAL if self.ENV == "local" else self.REDIS_URL_PROD


# Create a single instance of the settings
settings = Settings()
