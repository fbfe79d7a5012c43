"""
Error taxonomy for the search service.

Enrichment failures are never raised to callers; they degrade to empty
availability inside the resolver. Everything here is meant to reach the HTTP
layer, which maps each class to a status code.
"""


class SearchError(Exception):
    """Base class for errors surfaced to search callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidQuery(SearchError):
    """Search text is empty after trimming and year extraction."""

    status_code = 400


class InvalidParameter(SearchError):
    """A request parameter is outside its allowed vocabulary or range."""

    status_code = 400


class NotFound(SearchError):
    status_code = 404


class UpstreamError(SearchError):
    """The catalog call failed: network, non-2xx, malformed payload or exhausted quota."""

    status_code = 502

    def __init__(self, message: str, endpoint: str | None = None, upstream_status: int | None = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.upstream_status = upstream_status

    def __str__(self) -> str:
        parts = [self.message]
        if self.endpoint:
            parts.append(f"endpoint={self.endpoint}")
        if self.upstream_status is not None:
            parts.append(f"status={self.upstream_status}")
        return " ".join(parts)
