from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Google Gemini API Configuration
    GOOGLE_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"

    # Comma-separated model ids per role; empty means GEMINI_MODEL. Only the first is used.
    MODEL_ROUTE_SUMMARIZER: str = ""
    MODEL_ROUTE_CODER: str = ""

    # GitHub REST API
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TIMEOUT_SECONDS: float = 30.0

    # Files offered for selection (matched against the path suffix)
    SOURCE_EXTENSIONS: list[str] = [".java", ".js", ".py", ".ts", ".tsx"]

    # Extension used for "<ClassName>Test.<ext>" when the context files give no hint
    DEFAULT_TEST_EXTENSION: str = "java"

    # Prefix for branches created when publishing
    BRANCH_PREFIX: str = "testgenius"

    LOG_LEVEL: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings loaded from environment/.env.

    Use refresh_settings() to clear the cache if the environment changes at runtime.
    """
    return Settings()


def refresh_settings() -> None:
    """Clear cached settings so the next get_settings() reloads from env/.env."""
    get_settings.cache_clear()
