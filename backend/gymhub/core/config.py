# backend/gymhub/core/config.py

from __future__ import annotations

from typing import List
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-secret-change-me"

# asyncpg rejects these as connect() kwargs when they leak through the URL query
_ASYNCPG_UNSUPPORTED_PARAMS = {"sslmode", "channel_binding"}


def _strip_asyncpg_unsupported_params(url: str) -> str:
    """
    Drop libpq-only query params (sslmode, channel_binding) from a Postgres URL.
    Hosted Postgres providers hand these out in their connection strings, but
    asyncpg.connect() fails on them with an unexpected keyword argument error.
    """
    parts = urlsplit(url)
    if not parts.query or not parts.scheme.startswith("postgresql"):
        return url

    kept = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k not in _ASYNCPG_UNSUPPORTED_PARAMS]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept, doseq=True), parts.fragment))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------------------
    # Environment
    # -----------------------------
    # development | staging | production
    ENVIRONMENT: str = "development"

    # -----------------------------
    # DB
    # -----------------------------
    # Local default is a SQLite file; deployments point this at postgresql+asyncpg://
    DATABASE_URL_ASYNC: str = "sqlite+aiosqlite:///./gymhub.db"

    # -----------------------------
    # JWT (session tokens)
    # -----------------------------
    JWT_SECRET: str = DEV_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # -----------------------------
    # Logging
    # -----------------------------
    LOG_LEVEL: str = "info"
    # json | console
    LOG_FORMAT: str = "json"

    # -----------------------------
    # HTTP
    # -----------------------------
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # -----------------------------
    # Membership client
    # -----------------------------
    # Window in which concurrent membership reads share one request.
    MEMBERSHIP_DEDUPE_SECONDS: float = 2.0

    @property
    def DATABASE_URL_ASYNC_CLEAN(self) -> str:
        return _strip_asyncpg_unsupported_params(self.DATABASE_URL_ASYNC)

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        env = (self.ENVIRONMENT or "").strip().lower()

        # Never run staging/production with the placeholder secret.
        if env in {"staging", "production"}:
            secret = (self.JWT_SECRET or "").strip()
            if not secret or secret == DEV_JWT_SECRET:
                raise ValueError("JWT_SECRET must be set to a strong value in staging/production.")
            if len(secret) < 32:
                raise ValueError("JWT_SECRET is too short; use at least 32 characters in staging/production.")

        if self.JWT_ALGORITHM not in {"HS256"}:
            raise ValueError(f"Unsupported JWT_ALGORITHM={self.JWT_ALGORITHM!r}. Allowed: HS256")

        if self.LOG_FORMAT not in {"json", "console"}:
            raise ValueError(f"Unsupported LOG_FORMAT={self.LOG_FORMAT!r}. Allowed: json, console")


settings = Settings()
