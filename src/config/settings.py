from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Lock files younger than this are assumed to belong to a live git process
DEFAULT_LOCK_MAX_AGE = 60.0  # seconds


class Settings(BaseSettings):
    """
    Pre-flight settings loaded from environment variables.

    Values can also come from a `.env` file in the working directory, which is
    convenient for CI runners that export their configuration that way. Any
    value here can be overridden for a single run from the command line.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Remote and fetch retry settings
    GIT_REMOTE_NAME: str = "origin"
    FETCH_MAX_RETRIES: int = Field(default=3, ge=1)
    FETCH_BACKOFF_BASE: float = Field(default=2.0, ge=0)  # seconds
    FETCH_BACKOFF_FACTOR: float = Field(default=2.0, ge=1)
    FETCH_TIMEOUT: float = Field(default=120.0, gt=0)  # seconds per attempt

    LOCK_MAX_AGE: float = Field(default=DEFAULT_LOCK_MAX_AGE, ge=0)

    # Development and debugging
    DEBUG: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
