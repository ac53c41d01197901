"""
Application configuration using pydantic-settings.

WHAT: Centralized config from environment variables
WHY: Type-safe, validated config with sensible defaults
HOW: Pydantic BaseSettings reads from .env and environment
"""

from pydantic_settings import BaseSettings
from pydantic import field_validator
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App metadata
    APP_NAME: str = "Bargain Simulator"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Database (round log table)
    DATABASE_URL: str = "sqlite:///./data/bargain.db"

    # Round log sinks
    ROUND_LOG_TO_DATABASE: bool = True
    ROUND_LOG_WEBHOOK_URL: str = ""  # empty disables the webhook sink
    ROUND_LOG_TIMEOUT: float = 5.0  # seconds

    # Session scaling
    # Comma-separated multipliers, drawn without replacement per session
    DIMENSION_FACTORS: str = "1.0,1.3,1.5"

    # Negotiation defaults (can be overridden per session)
    INITIAL_OFFER: float = 5500
    MIN_PRICE: float = 3500
    MIN_PRICE_FACTOR: float | None = None  # floor = INITIAL_OFFER * factor when set
    ACCEPT_MARGIN: float = 0.12
    ACCEPT_BAND_MIN: float = 5000
    ACCEPT_BAND_MAX: float = 5500
    MIN_ROUNDS: int = 8
    MAX_ROUNDS: int = 12
    THINK_DELAY_MIN_MS: int = 1000
    THINK_DELAY_MAX_MS: int = 2500
    CONCESSION_SCHEDULE: str = "margin_percent"

    # Session Management
    SESSION_TTL_MINUTES: int = 120  # terminal sessions are evicted after this
    SESSION_IDLE_TTL_MINUTES: int = 1440  # unfinished sessions without activity

    # CORS - accepts comma-separated string or list
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    @field_validator("CORS_ORIGINS", "DIMENSION_FACTORS", mode="before")
    @classmethod
    def join_list_values(cls, v):
        """Accept either a comma-separated string or a list."""
        if isinstance(v, (list, tuple)):
            return ",".join(str(item) for item in v)
        return v

    def get_cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def get_dimension_factors(self) -> list[float]:
        """Get scale factors as floats, falling back to 1.0 if none parse."""
        factors = []
        for raw in self.DIMENSION_FACTORS.split(","):
            try:
                value = float(raw)
            except ValueError:
                continue
            if value > 0:
                factors.append(value)
        return factors or [1.0]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./data/logs/app.log"
    LOG_MAX_BYTES: int = 5_000_000  # rotate the file log at this size
    LOG_BACKUP_COUNT: int = 3

    # Streaming / SSE
    SSE_HEARTBEAT_INTERVAL: int = 15  # seconds between heartbeat events

    class Config:
        env_file = [
            str(Path(__file__).parent.parent.parent.parent / ".env"),  # project root
            str(Path(__file__).parent.parent.parent / ".env"),  # backend/.env (fallback)
        ]
        env_file_encoding = "utf-8"
        case_sensitive = True


# Singleton instance
settings = Settings()
