import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from contracts.errors import InvalidParameter


def load_env():
    """Load environment variables from env file.

    Defaults to config/local.env for local development.
    Set ENV_FILE environment variable to override.
    """
    env = os.getenv("ENV_FILE", "config/local.env")
    load_dotenv(env)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidParameter(f"{name} must be an integer, got {raw!r}")


class SearchSettings(BaseModel):
    """Runtime settings for the catalog client and the search pipeline."""

    tmdb_read_token: str | None = None
    tmdb_api_key: str | None = None
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    default_country: str = "US"
    season_batch_limit: int = Field(default=5, ge=0)
    merge_score_policy: str = "first"
    tmdb_daily_call_limit: int = Field(default=1000, ge=0)
    tmdb_rate_limit_max: int = Field(default=35, ge=1)
    environment: str = "local"

    @property
    def is_test(self) -> bool:
        return self.environment.lower() == "test"


def settings_from_env() -> SearchSettings:
    return SearchSettings(
        tmdb_read_token=os.getenv("TMDB_READ_TOKEN") or None,
        tmdb_api_key=os.getenv("TMDB_API_KEY") or None,
        tmdb_base_url=os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3").rstrip("/"),
        default_country=os.getenv("DEFAULT_COUNTRY", "US").upper(),
        season_batch_limit=_int_env("SEASON_BATCH_LIMIT", 5),
        merge_score_policy=os.getenv("MERGE_SCORE_POLICY", "first").lower(),
        tmdb_daily_call_limit=_int_env("TMDB_DAILY_CALL_LIMIT", 1000),
        tmdb_rate_limit_max=_int_env("TMDB_RATE_LIMIT_MAX", 35),
        environment=os.getenv("ENVIRONMENT", "local"),
    )


@lru_cache(maxsize=1)
def get_settings() -> SearchSettings:
    """Settings singleton. Call get_settings.cache_clear() after changing env vars."""
    return settings_from_env()
