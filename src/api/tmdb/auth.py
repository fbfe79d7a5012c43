"""
TMDB Auth - credential handling for TMDB API requests.

TMDB accepts either a v4 read access token (bearer header) or a v3 api_key
query parameter. The bearer token wins when both are configured.
"""

from adapters.config import SearchSettings, get_settings
from utils.get_logger import get_logger

logger = get_logger(__name__)


class Auth:
    """Base TMDB service with authentication utilities."""

    base_url: str
    image_base_url: str = "https://image.tmdb.org/t/p/"

    def __init__(self, settings: SearchSettings | None = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.tmdb_base_url
        self._tmdb_read_token = self.settings.tmdb_read_token
        self._tmdb_api_key = self.settings.tmdb_api_key
        if not self._tmdb_read_token and not self._tmdb_api_key:
            logger.error("Neither TMDB_READ_TOKEN nor TMDB_API_KEY is configured")

    @property
    def tmdb_read_token(self) -> str | None:
        return self._tmdb_read_token

    def auth_headers(self) -> dict[str, str]:
        """Return the authorization headers for TMDB API requests."""
        headers = {"Accept": "application/json"}
        if self._tmdb_read_token:
            headers["Authorization"] = f"Bearer {self._tmdb_read_token}"
        return headers

    def auth_params(self) -> dict[str, str]:
        """Query parameters carrying the v3 api_key when no bearer token is set."""
        if self._tmdb_read_token or not self._tmdb_api_key:
            return {}
        return {"api_key": self._tmdb_api_key}
