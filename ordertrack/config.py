# ordertrack/config.py
from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict


def _env_str(key: str, default: str) -> str:
    return os.getenv(key, default).strip()


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key, str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


class Settings(BaseModel):
    """Process-wide configuration. Built once at startup and passed down."""

    model_config = ConfigDict(frozen=True)

    environment: str = "development"
    database_url: str = "sqlite:///./ordertrack.db"

    jwt_secret: str = "dev-secret-change-me"
    jwt_alg: str = "HS256"
    jwt_expire_minutes: int = 1440  # 24h

    email_host: str = ""
    email_port: int = 587
    email_user: str = ""
    email_password: str = ""
    email_from: str = "orders@ordertrack.local"
    email_timeout_seconds: int = 10
    outbox_max_size: int = 100

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def expires_in(self) -> str:
        minutes = self.jwt_expire_minutes
        if minutes % 60 == 0:
            return f"{minutes // 60}h"
        return f"{minutes}m"

    @classmethod
    def from_env(cls) -> "Settings":
        # Load .env locally (safe in prod too)
        load_dotenv()
        return cls(
            environment=_env_str("ENVIRONMENT", "development"),
            database_url=_env_str("DATABASE_URL", "sqlite:///./ordertrack.db"),
            jwt_secret=_env_str("JWT_SECRET", "dev-secret-change-me"),
            jwt_alg=_env_str("JWT_ALG", "HS256"),
            jwt_expire_minutes=_env_int("JWT_EXPIRE_MIN", 1440),
            email_host=_env_str("EMAIL_HOST", ""),
            email_port=_env_int("EMAIL_PORT", 587),
            email_user=_env_str("EMAIL_USER", ""),
            email_password=os.getenv("EMAIL_PASS", ""),
            email_from=_env_str("EMAIL_FROM", "orders@ordertrack.local"),
            email_timeout_seconds=_env_int("EMAIL_TIMEOUT_SEC", 10),
            outbox_max_size=_env_int("OUTBOX_MAX_SIZE", 100),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            host=_env_str("HOST", "0.0.0.0"),
            port=_env_int("PORT", 8000),
        )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
