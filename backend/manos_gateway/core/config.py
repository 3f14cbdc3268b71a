"""
Application configuration settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Manos Logistics Gateway"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production
    LOG_LEVEL: str = "INFO"

    # API
    API_PREFIX: str = "/api"

    # Upstream services
    API_BASE_URL: str = "http://localhost:3000/api"  # orders / organizations / auth backend
    EXTERNAL_API_BASE_URL: str = "http://localhost:3000"  # external orders API (paths carry /api)
    FASTAPI_BASE_URL: str = "http://localhost:8000"  # route optimization engine
    GOOGLE_PLACES_BASE_URL: str = "https://maps.googleapis.com/maps/api/place"
    GOOGLE_PLACES_COUNTRY: str = "gt"

    GOOGLE_MAPS_API: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_MAPS_API", "NEXT_PUBLIC_GOOGLE_MAPS_API"),
    )
    MAPBOX_TOKEN: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MAPBOX_TOKEN", "NEXT_PUBLIC_MAPBOX_TOKEN"),
    )
    APP_URL: str = Field(
        default="http://localhost:3001",
        validation_alias=AliasChoices("APP_URL", "NEXT_PUBLIC_APP_URL"),
    )

    # Upstream HTTP timeouts (seconds)
    UPSTREAM_TIMEOUT: float = 30.0
    UPSTREAM_CONNECT_TIMEOUT: float = 10.0
    OPTIMIZATION_TIMEOUT: float = 120.0  # traffic-aware optimization can be slow

    # Driver tracking (Socket.IO)
    WS_URL: str = "http://localhost:3000"
    WS_CONNECT_TIMEOUT: float = 10.0  # 5-20 seconds is sane
    WS_RECONNECTION_ATTEMPTS: int = 3
    WS_RECONNECTION_DELAY: float = 2.0
    WS_RECONNECTION_DELAY_MAX: float = 10.0
    DRIVER_OFFLINE_THRESHOLD_MINUTES: int = 70

    # Route optimization defaults
    DEFAULT_DEPARTURE_TIME: str = "now"
    DEFAULT_TRAVEL_MODE: str = "car"
    DEFAULT_ROUTE_TYPE: str = "fastest"
    DEFAULT_MAX_ORDERS_PER_TRIP: int = 10
    DEFAULT_MAX_RETURN_DISTANCE: float = 600.0

    def validate_production_settings(self) -> None:
        """Validate critical settings for production environment."""
        import logging

        logger = logging.getLogger(__name__)

        if self.ENVIRONMENT == "production":
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")

            for name in ("API_BASE_URL", "EXTERNAL_API_BASE_URL", "FASTAPI_BASE_URL"):
                value = getattr(self, name)
                if "localhost" in value or "127.0.0.1" in value:
                    raise ValueError(f"{name} points to a local address in production: {value}")

            if not self.GOOGLE_MAPS_API:
                logger.warning("GOOGLE_MAPS_API not configured. Places proxy disabled.")

            if not self.SENTRY_DSN:
                logger.warning("SENTRY_DSN not configured. Error tracking disabled.")

    # API Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:3001"]

    # Observability
    SENTRY_DSN: Optional[str] = None  # Set to enable Sentry error tracking
    METRICS_ENABLED: bool = True
    METRICS_PATH: str = "/metrics"

    class Config:
        env_file = ".env"
        case_sensitive = True
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
