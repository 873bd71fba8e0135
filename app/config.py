from pathlib import Path
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Redis settings
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20

    # Auth settings
    JWT_SECRET: str | None = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"

    # Google settings
    GOOGLE_MAPS_API_KEY: str | None = None
    GOOGLE_REQUEST_TIMEOUT: float = 30.0

    # =================================================================
    # CONTACT RESOLUTION
    # =================================================================
    CONTACT_CACHE_TTL_S: int = 300  # 5 minutes
    CONTACT_SEARCH_MAX_RESULTS: int = 50
    CONTACT_MIN_CONFIDENCE: float = 0.7
    CONTACT_MAX_RESULTS: int = 3

    # =================================================================
    # AVAILABILITY
    # =================================================================
    SLOT_STEP_MINUTES: int = 30
    SLOT_MAX_RESULTS: int = 5
    AVAILABILITY_WINDOW_DAYS: int = 14
    # busy | skip | abort
    AVAILABILITY_FAILURE_POLICY: str = "busy"

    # =================================================================
    # VENUES
    # =================================================================
    VENUE_DEFAULT_MAX_DISTANCE_M: float = 5000.0
    VENUE_MAX_RESULTS: int = 5

    # Whole-request deadline shared by every fan-out call
    REQUEST_DEADLINE_S: float = 20.0

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def redis_host(self) -> str | None:
        """Host part of REDIS_URL, for log lines that must not leak credentials."""
        try:
            return urlparse(self.REDIS_URL).hostname
        except Exception:
            return None

    def get_redis_pool_config(self) -> dict:
        """
        Get Redis pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "max_connections": self.REDIS_MAX_CONNECTIONS,
            "socket_connect_timeout": 10,
            "socket_timeout": 10,
        }

        if self.environment == "development":
            config.update({"max_connections": min(self.REDIS_MAX_CONNECTIONS, 8)})

        return config


settings = Settings()
