import os
from dataclasses import dataclass, field
from functools import lru_cache


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() == "true"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} debe ser un entero, recibido {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./delivery.db"
    dev_mode: bool = False
    jwt_secret: str | None = None
    jwt_expires_days: int = 7
    hash_rounds: int = 10
    app_base_url: str = "http://localhost:8000"
    require_verified_email: bool = False
    verification_ttl_hours: int = 24
    reset_ttl_minutes: int = 60
    registration_enabled: bool = True
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from: str = "no-reply@delivery.local"
    smtp_use_ssl: bool = False
    mail_workers: int = 2
    cors_origins: list[str] = field(default_factory=list)
    rate_limit_per_min: int = 120
    redis_url: str = "redis://redis:6379/0"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host)


def load_settings() -> Settings:
    cors = [origin.strip() for origin in os.environ.get("CORS_ORIGINS", "").split(",") if origin.strip()]
    return Settings(
        database_url=os.environ.get("DATABASE_URL", "sqlite:///./delivery.db"),
        dev_mode=_env_bool("DEV_MODE"),
        jwt_secret=os.environ.get("JWT_SECRET"),
        jwt_expires_days=_env_int("JWT_EXPIRES_DAYS", 7),
        hash_rounds=_env_int("HASH_ROUNDS", 10),
        app_base_url=os.environ.get("APP_BASE_URL", "http://localhost:8000").rstrip("/"),
        require_verified_email=_env_bool("REQUIRE_VERIFIED_EMAIL"),
        verification_ttl_hours=_env_int("VERIFICATION_TTL_HOURS", 24),
        reset_ttl_minutes=_env_int("RESET_TTL_MINUTES", 60),
        registration_enabled=_env_bool("REGISTRATION_ENABLED", "true"),
        smtp_host=os.environ.get("SMTP_HOST") or None,
        smtp_port=_env_int("SMTP_PORT", 587),
        smtp_user=os.environ.get("SMTP_USER") or None,
        smtp_password=os.environ.get("SMTP_PASSWORD") or None,
        smtp_from=os.environ.get("SMTP_FROM", "no-reply@delivery.local"),
        smtp_use_ssl=_env_bool("SMTP_USE_SSL"),
        mail_workers=_env_int("MAIL_WORKERS", 2),
        cors_origins=cors,
        rate_limit_per_min=_env_int("RATE_LIMIT_PER_MIN", 120),
        redis_url=os.environ.get("REDIS_URL", "redis://redis:6379/0"),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
