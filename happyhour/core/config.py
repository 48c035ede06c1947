# happyhour/core/config.py
# Environment-driven settings for the discovery service.

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Happy Hour Finder"
    VERSION: str = "0.3.0"
    BRIEF_DESCRIPTION: str = "Finds venues near you that are running a happy hour discount right now."

    ENV: str = Field("development", description="Application environment (e.g., production, development)")
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    # --- Places backend ---
    # When unset, every query is answered from synthetic venues.
    GOOGLE_PLACES_API_KEY: Optional[str] = Field(None, description="Google Places API key (optional)")
    GOOGLE_PLACES_TIMEOUT: float = 15.0 # seconds

    # --- Reverse geocoding ---
    REVERSE_GEOCODE_URL: str = Field(
        "https://api.bigdatacloud.net/data/reverse-geocode-client",
        description="Client-side reverse geocoding endpoint"
    )
    GEOCODE_TIMEOUT: float = 8.0 # seconds
    GEOCODE_MAX_RETRIES: int = 2
    GEOCODE_INITIAL_BACKOFF: float = 1.0 # seconds

    # --- Location acquisition ---
    LOCATION_TIMEOUT_SECONDS: float = 10.0
    LOCATION_MAXIMUM_AGE_SECONDS: float = 60.0

    # Used by the static location backend when the client does not report a position
    DEFAULT_LATITUDE: float = 13.7563
    DEFAULT_LONGITUDE: float = 100.5018

    # --- Search ---
    DEFAULT_SEARCH_RADIUS_M: int = 5000  # list view
    MAP_SEARCH_RADIUS_M: int = 10000     # map view

    # --- Synthesis probabilities ---
    DISCOUNT_ACTIVE_PROBABILITY: float = Field(0.85, ge=0.0, le=1.0)
    VENUE_ACTIVE_PROBABILITY: float = Field(0.95, ge=0.0, le=1.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    @property
    def use_google_places(self) -> bool:
        return bool(self.GOOGLE_PLACES_API_KEY)

settings = Settings()
