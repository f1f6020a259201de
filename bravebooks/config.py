# bravebooks/config.py  (Pydantic v2)
from __future__ import annotations

from typing import Optional

from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---- Load env (.env) ----
# the mailer reads SMTP_* straight from os.environ
load_dotenv()

INSECURE_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    """
    Process-wide settings read from the environment.

    The "system settings" group (token expiries, login attempts, reset expiry)
    can be changed at runtime through the admin API; `reload()` re-reads the
    environment and drops those overrides.
    """

    # ---------- pydantic-settings config ----------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,  # VAR= falls back to the default
        case_sensitive=False,
        extra="ignore",
    )

    # ---------- database ----------
    DATABASE_URL: str = "sqlite:///./bravebooks.db"
    # defaults to on for SQLite, off elsewhere (alembic owns the schema)
    DB_CREATE_ALL: Optional[bool] = None

    # ---------- tokens / hashing ----------
    JWT_SECRET: str = INSECURE_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    BCRYPT_ROUNDS: int = 12

    # ---------- system settings (admin adjustable) ----------
    AUTH_TOKEN_EXPIRY_DAYS: int = 7
    # None (or 0 in the environment) = book tokens never expire
    BOOK_ACCESS_TOKEN_EXPIRY_DAYS: Optional[int] = None
    PASSWORD_RESET_EXPIRY_HOURS: int = 1
    MAX_LOGIN_ATTEMPTS: int = 5
    ENABLE_EMAIL_NOTIFICATIONS: bool = True

    LOGIN_WINDOW_MINUTES: int = 15

    # ---------- platform ----------
    PLATFORM_ID: str = "brave-things-books"
    PLATFORM_URL: str = ""
    FRONTEND_URL: str = ""
    FREE_BOOK_ID: str = "wtbtg"
    FREE_BOOK_URL: str = "/book/wtbtg"
    CORS_ORIGINS: str = "*"  # comma separated

    # ---------- seeded admin (optional) ----------
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""
    ADMIN_NAME: str = "Administrator"

    LOG_LEVEL: str = "INFO"

    @field_validator("BOOK_ACCESS_TOKEN_EXPIRY_DAYS")
    @classmethod
    def _zero_means_never(cls, v: Optional[int]) -> Optional[int]:
        return v if v and v > 0 else None

    @field_validator("PLATFORM_URL", "FRONTEND_URL")
    @classmethod
    def _strip_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("ADMIN_EMAIL")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def _derive_create_all(self) -> "Settings":
        if self.DB_CREATE_ALL is None:
            self.DB_CREATE_ALL = self.DATABASE_URL.startswith("sqlite")
        return self

    def reload(self) -> None:
        """Re-read the environment in place; modules hold a reference to `settings`."""
        fresh = type(self)()
        for name in type(self).model_fields:
            setattr(self, name, getattr(fresh, name))

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def using_insecure_secret(self) -> bool:
        return self.JWT_SECRET == INSECURE_JWT_SECRET

    def system_settings(self) -> dict:
        return {
            "authTokenExpiry": self.AUTH_TOKEN_EXPIRY_DAYS,
            "bookAccessTokenExpiry": self.BOOK_ACCESS_TOKEN_EXPIRY_DAYS,
            "maxLoginAttempts": self.MAX_LOGIN_ATTEMPTS,
            "passwordResetExpiry": self.PASSWORD_RESET_EXPIRY_HOURS,
            "enableEmailNotifications": self.ENABLE_EMAIL_NOTIFICATIONS,
        }


settings = Settings()
