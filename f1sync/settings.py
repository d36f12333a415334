import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # Upstream API Configuration
    ergast_base_url: str = Field(
        default="https://api.jolpi.ca/ergast/f1", alias="ERGAST_BASE_URL"
    )
    request_timeout_seconds: float = Field(default=10.0, alias="REQUEST_TIMEOUT")
    max_retry_attempts: int = Field(default=3, alias="MAX_RETRY_ATTEMPTS")
    throttle_ms: int = Field(default=300, alias="THROTTLE_MS")

    # Data range
    start_year: int = Field(default=2005, alias="START_YEAR")

    # Cache Configuration (seconds)
    seasons_cache_ttl: int = Field(default=300, alias="SEASONS_CACHE_TTL")
    races_cache_ttl: int = Field(default=300, alias="RACES_CACHE_TTL")
    cache_max_size: int = Field(default=256, alias="CACHE_MAX_SIZE")

    # Season sync job
    season_sync_cron: str = Field(default="0 3 * * *", alias="SEASON_SYNC_CRON")
    season_sync_on_startup: bool = Field(default=True, alias="SEASON_SYNC_ON_STARTUP")
    startup_delay_seconds: float = Field(default=2.0, alias="STARTUP_DELAY_SECONDS")

    # Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./f1sync.db", alias="DATABASE_URL"
    )
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # HTTP server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def throttle_seconds(self) -> float:
        return self.throttle_ms / 1000


def load_settings() -> Settings:
    """Build settings from the process environment (after .env is loaded)."""
    return Settings.model_validate(dict(os.environ))


global_settings = load_settings()
