"""
Application settings.

Built once from the environment (a local .env file is loaded first) and
validated at startup. A missing signing secret is a startup error.
"""
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
]

# Values that must never be accepted as a signing secret
INSECURE_SECRETS = {
    "",
    "secret",
    "changeme",
    "change-me",
    "default-jwt-secret-change-in-production",
}


class ConfigError(RuntimeError):
    """Raised when the environment does not describe a usable configuration."""


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _get_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip().rstrip("/") for item in raw.split(",") if item.strip()]


class Settings:
    PROJECT_NAME: str = "Interview Assistant API"
    VERSION: str = "1.0.0"

    def __init__(self):
        # Database
        self.DATABASE_URL: str = os.getenv("DATABASE_URL") or "sqlite:///./interview_assistant.db"
        self.RUN_MIGRATIONS: bool = os.getenv("RUN_MIGRATIONS", "0") == "1"

        # Security
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", "")
        self.ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_HOURS: int = _get_int("ACCESS_TOKEN_EXPIRE_HOURS", 24)
        self.LOGIN_RATE_LIMIT: int = _get_int("LOGIN_RATE_LIMIT", 10)
        self.LOGIN_RATE_WINDOW_SECONDS: int = _get_int("LOGIN_RATE_WINDOW_SECONDS", 60)

        # LLM (any OpenAI-compatible chat-completion endpoint)
        self.OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
        self.LLM_BASE_URL: Optional[str] = os.getenv("LLM_BASE_URL") or None
        self.LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
        self.LLM_TIMEOUT_SECONDS: int = _get_int("LLM_TIMEOUT_SECONDS", 30)

        # Stripe
        self.STRIPE_SECRET_KEY: Optional[str] = os.getenv("STRIPE_SECRET_KEY")
        self.STRIPE_WEBHOOK_SECRET: Optional[str] = os.getenv("STRIPE_WEBHOOK_SECRET")
        self.STRIPE_CURRENCY: str = os.getenv("STRIPE_CURRENCY", "eur")

        # Frontend / CORS
        self.FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")
        self.CORS_ORIGINS: List[str] = DEFAULT_CORS_ORIGINS + [
            origin for origin in _get_list("CORS_ORIGINS") if origin not in DEFAULT_CORS_ORIGINS
        ]

        # Logging
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        self.validate()

    def validate(self) -> None:
        if self.SECRET_KEY.strip().lower() in INSECURE_SECRETS:
            raise ConfigError("SECRET_KEY is not set (or uses a known placeholder); refusing to start")
        if self.ACCESS_TOKEN_EXPIRE_HOURS <= 0:
            raise ConfigError("ACCESS_TOKEN_EXPIRE_HOURS must be positive")
        if self.LLM_TIMEOUT_SECONDS <= 0:
            raise ConfigError("LLM_TIMEOUT_SECONDS must be positive")

    @property
    def stripe_enabled(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY)

    @property
    def llm_enabled(self) -> bool:
        return bool(self.OPENAI_API_KEY)


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings (also used as a FastAPI dependency)."""
    return Settings()
