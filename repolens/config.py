"""
Configuration for the repolens FastAPI application
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config:
    """Application configuration"""

    # API settings
    TITLE = "repolens"
    DESCRIPTION = "Cached FastAPI facade over the GitHub REST API"
    VERSION = "1.0.0"
    DOCS_URL = "/docs"
    REDOC_URL = "/redoc"

    # CORS settings
    ALLOW_ORIGINS = ["*"]
    ALLOW_CREDENTIALS = True
    ALLOW_METHODS = ["*"]
    ALLOW_HEADERS = ["*"]

    # Server settings
    HOST = "0.0.0.0"
    PORT = 8000
    RELOAD = True


class Settings(BaseSettings):
    """Runtime settings read from the environment (or a ``.env`` file).

    Built once by ``create_app`` and handed to every component that needs it.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    GITHUB_TOKEN: str = Field(..., min_length=1)
    GITHUB_API_URL: str = "https://api.github.com"

    MAX_REPOSITORIES: int = Field(12, ge=0)
    CACHE_TIMEOUT_MS: int = Field(5 * 60 * 1000, ge=0)
    CACHE_MAX_ENTRIES: int = Field(1024, ge=1)
    LANGUAGE_STATS_LIMIT: int = Field(10, ge=0)
    RANDOM_REPO_MAX_PAGES: int = Field(33, ge=0)
    REQUEST_TIMEOUT_MS: int = Field(10_000, ge=0)

    LOG_LEVEL: str = "INFO"

    @property
    def request_timeout_seconds(self) -> float:
        return self.REQUEST_TIMEOUT_MS / 1000.0
