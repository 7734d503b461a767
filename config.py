"""Configuration management with environment variable support."""

import os
import secrets
from dataclasses import dataclass, field


def _parse_cors_origins() -> list[str]:
    """Parse CORS_ORIGINS environment variable."""
    origins = os.getenv("CORS_ORIGINS", "http://localhost:8000")
    return [o.strip() for o in origins.split(",") if o.strip()]


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class CORSConfig:
    """CORS configuration."""

    allowed_origins: list[str] = field(default_factory=_parse_cors_origins)
    allow_credentials: bool = True
    allow_methods: list[str] = field(default_factory=lambda: ["*"])
    allow_headers: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limiting configuration."""

    enabled: bool = field(default_factory=lambda: _env_flag("RATE_LIMIT_ENABLED", "true"))
    requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_RPM", "60"))
    )


@dataclass(frozen=True)
class SecurityConfig:
    """Security configuration."""

    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    )


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class PacingConfig:
    """
    Delays between table steps, in milliseconds.

    Purely cosmetic; disable for simulations and tests.
    """

    enabled: bool = field(default_factory=lambda: _env_flag("PACING_ENABLED", "true"))
    deal_ms: int = 300
    ai_think_ms: int = 1200
    dealer_flip_ms: int = 600
    dealer_hit_ms: int = 1000
    turn_end_ms: int = 800
    settle_ms: int = 600


@dataclass(frozen=True)
class GameConfig:
    """Default table configuration."""

    starting_chips: int = 1000
    starting_points: float = 0.0
    default_rounds: int = 5


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    debug: bool = field(default_factory=lambda: _env_flag("DEBUG", "false"))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    table_ttl: int = 3600  # Idle table timeout in seconds
    cleanup_interval: int = 60  # Seconds between idle table sweeps

    game: GameConfig = field(default_factory=GameConfig)
    pacing: PacingConfig = field(default_factory=PacingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)


# Global configuration instance
config = AppConfig()
