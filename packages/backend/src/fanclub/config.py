"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with FANCLUB_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: pydantic-settings auto-loads from environment, validates types,
provides defaults. The realtime_* knobs drive the liveness sweeper.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via FANCLUB_* env vars."""

    # Auth
    jwt_secret: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Server
    app_name: str = "Fan Club Z"
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3001

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Realtime liveness: sweep every 30s, drop sockets silent for 60s
    realtime_sweep_interval_seconds: float = 30.0
    realtime_stale_timeout_seconds: float = 60.0

    model_config = {"env_prefix": "FANCLUB_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if (
            self.environment not in ("development", "test")
            and self.jwt_secret == "dev-jwt-secret-change-in-production"
        ):
            raise ValueError(
                "FANCLUB_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        if self.realtime_stale_timeout_seconds <= 0:
            raise ValueError("FANCLUB_REALTIME_STALE_TIMEOUT_SECONDS must be positive")
        return self


# Singleton, import this everywhere
settings = Settings()
