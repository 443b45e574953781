from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_DEV_JWT_SECRET = "dev-secret-change-me"


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    control_plane_db: str
    redis_url: str | None
    jwt_secret: str
    jwt_ttl_min: int
    max_upload_bytes: int
    default_admin_password: str
    media_bucket: str | None = None
    media_endpoint_url: str | None = None
    media_key_id: str | None = None
    media_secret: str | None = None
    media_public_base_url: str | None = None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    def database_url_for(self, db_name: str) -> str:
        """Build the connection URL of one database on the configured server."""
        if not self.database_url:
            raise ValueError("DATABASE_URL is not configured")
        return f"{self.database_url.rstrip('/')}/{db_name}"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getint("PORT", 8000)
    jwt_ttl_min = _getint("JWT_TTL_MIN", 24 * 60)
    if jwt_ttl_min <= 0:
        raise ValueError(f"JWT_TTL_MIN must be positive (got {jwt_ttl_min})")
    max_upload_bytes = _getint("MAX_UPLOAD_BYTES", 5 * 1024 * 1024)

    jwt_secret = _getenv("JWT_SECRET", "")
    if not jwt_secret:
        if app_env_raw == "prod":
            raise ValueError("JWT_SECRET must be set when APP_ENV=prod")
        jwt_secret = _DEV_JWT_SECRET

    control_plane_db = _getenv("CONTROL_PLANE_DB", "lms_master")
    if not control_plane_db:
        raise ValueError("CONTROL_PLANE_DB must be non-empty")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv("LOG_JSON", "false").lower() in ("1", "true", "yes"),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        control_plane_db=control_plane_db,
        redis_url=_getenv("REDIS_URL", "") or None,
        jwt_secret=jwt_secret,
        jwt_ttl_min=jwt_ttl_min,
        max_upload_bytes=max_upload_bytes,
        default_admin_password=_getenv("DEFAULT_ADMIN_PASSWORD", "Admin@123"),
        media_bucket=_getenv("MEDIA_BUCKET", "") or None,
        media_endpoint_url=_getenv("MEDIA_ENDPOINT_URL", "") or None,
        media_key_id=_getenv("MEDIA_KEY_ID", "") or None,
        media_secret=_getenv("MEDIA_SECRET", "") or None,
        media_public_base_url=_getenv("MEDIA_PUBLIC_BASE_URL", "") or None,
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
