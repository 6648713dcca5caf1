# runroute/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (.env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "RunRoute API"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Directions (OpenRouteService)
    ORS_API_KEY: str = ""
    ORS_BASE_URL: str = "https://api.openrouteservice.org"
    ORS_PROFILE: str = "foot-walking"

    # LLM route scoring (OpenAI-compatible chat completions)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-3.5-turbo"

    # Geocoding and elevation
    NOMINATIM_BASE_URL: str = "https://nominatim.openstreetmap.org"
    ELEVATION_API_URL: str = "https://api.open-meteo.com/v1/elevation"
    ELEVATION_BATCH_SIZE: int = 100
    ELEVATION_CACHE_SIZE: int = 100
    USER_AGENT: str = "RunRoute/0.1"

    HTTP_TIMEOUT_S: float = 30.0

    # Retry policy for external collaborators (delay = attempt * base)
    MAX_RETRIES: int = 3
    RETRY_BASE_DELAY_S: float = 1.0

    # Candidate generation
    DEFAULT_ALTERNATIVES: int = 10
    DEFAULT_PACE_MIN_PER_KM: float = 5.0
    LOOP_WAYPOINTS: int = 4
    # Road network is longer than a straight circle / straight line.
    LOOP_RADIUS_FACTOR: float = 1.2
    OUT_AND_BACK_FACTOR: float = 2.4
    CONCURRENT_FANOUT: bool = False


settings = Settings()
