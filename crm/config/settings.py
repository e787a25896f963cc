import re
from datetime import timedelta
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str | int) -> timedelta:
    """Parse `7d`, `12h`, `30m`, `45s` or a plain number of seconds."""
    if isinstance(value, int):
        return timedelta(seconds=value)
    match = _DURATION_PATTERN.match(value.lower())
    if not match:
        raise ValueError(f"Invalid duration '{value}'. Use e.g. 7d, 12h, 30m or seconds.")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


class Settings(BaseSettings):
    """Application settings loaded from environment / .env file."""

    # ── Application ──────────────────────────────────────────────
    app_name: str = "CRM Auth Service"
    app_version: str = "1.0.0"
    service_name: str = "auth-service"
    debug: bool = False
    environment: str = "development"
    port: int = 3001
    log_level: str = "INFO"

    # ── Frontend / CORS ──────────────────────────────────────────
    frontend_url: str = "http://localhost:5174"
    cors_allowed_origins: list[str] = [
        "http://localhost:5174",
        "http://localhost:3000",
    ]
    cors_allow_credentials: bool = True
    cors_allowed_methods: list[str] = ["*"]
    cors_allowed_headers: list[str] = ["*"]

    # ── JWT / Security ───────────────────────────────────────────
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expires_in: str = "7d"
    password_hash_rounds: int = 12

    # ── Password reset ───────────────────────────────────────────
    reset_token_ttl_minutes: int = 60
    reset_token_sweep_interval: int = 300  # seconds

    # ── Storage ──────────────────────────────────────────────────
    storage_backend: str = "memory"  # memory | mongo
    mongodb_uri: Optional[str] = None
    database_name: str = "crm_db"
    seed_demo_data: bool = False

    # ── Rate limiting (per client IP) ────────────────────────────
    rate_limit_enabled: bool = True
    auth_rate_limit_max_failures: int = 5
    auth_rate_limit_window: str = "15m"
    password_reset_rate_limit_max: int = 3
    password_reset_rate_limit_window: str = "1h"

    # ── SMTP ─────────────────────────────────────────────────────
    smtp_host: str = "smtp.sendgrid.net"
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_timeout: float = 10.0
    email_from_name: str = "CRM Platform"
    email_from_address: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator(
        "jwt_expires_in", "auth_rate_limit_window", "password_reset_rate_limit_window"
    )
    @classmethod
    def validate_duration(cls, v):
        parse_duration(v)
        return v

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v):
        v = v.strip().lower()
        if v not in ("memory", "mongo"):
            raise ValueError("STORAGE_BACKEND must be 'memory' or 'mongo'")
        return v

    @field_validator("password_hash_rounds")
    @classmethod
    def validate_password_hash_rounds(cls, v):
        # bcrypt accepts cost factors 4..31
        if not 4 <= v <= 31:
            raise ValueError("PASSWORD_HASH_ROUNDS must be between 4 and 31")
        return v

    @model_validator(mode="after")
    def allow_frontend_origin(self):
        # The frontend is always an allowed CORS origin
        origin = self.frontend_url.rstrip("/")
        allowed = self.cors_allowed_origins
        if origin and "*" not in allowed and origin not in allowed:
            self.cors_allowed_origins = [*allowed, origin]
        return self

    @property
    def jwt_expires_delta(self) -> timedelta:
        return parse_duration(self.jwt_expires_in)

    @property
    def auth_rate_limit_window_delta(self) -> timedelta:
        return parse_duration(self.auth_rate_limit_window)

    @property
    def password_reset_rate_limit_window_delta(self) -> timedelta:
        return parse_duration(self.password_reset_rate_limit_window)

    @property
    def reset_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.reset_token_ttl_minutes)


# ── Module-level singleton ──────────────────────────────────────
settings = Settings()
