"""
Persisted show status.

The watchlist store accepts a single status value for shows, so every catalog
status collapses to "ended" on the way in. The richer ShowStatus stays
available on CatalogShow for display; only persistence goes through here.
"""

from api.tmdb.models import ShowStatus

PERSISTED_STATUS = "ended"


def to_persisted_status(status: ShowStatus | str | None) -> str:
    """Collapse ended / returning / unknown into the one value the store accepts."""
    return PERSISTED_STATUS
