# catalog_sync/errors.py

"""Exception hierarchy shared by the reference client, the store and the engine."""

from __future__ import annotations


class CatalogSyncError(Exception):
    """Base class for all catalog-sync errors."""


class ReferenceServiceError(CatalogSyncError):
    """A request against the reference service did not produce a usable result."""


class PersistentThrottlingError(ReferenceServiceError):
    """The service kept answering busy/rate-limited until the retry budget ran out."""

    def __init__(self, url: str, attempts: int, last_wait: float) -> None:
        self.url = url
        self.attempts = attempts
        self.last_wait = last_wait
        super().__init__(
            f"Reference service still unavailable after {attempts} retries "
            f"(waited up to {last_wait:.0f}s) for {url}"
        )


class PermanentHTTPError(ReferenceServiceError):
    """Non-success status that is not worth retrying (404, 400, 500, ...)."""

    def __init__(self, status_code: int, url: str) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(f"HTTP {status_code} for {url}")


class ResponseParseError(ReferenceServiceError):
    """The response body was not the JSON document we expected."""


class ReferenceTransportError(ReferenceServiceError):
    """No response at all: timeout, DNS failure, refused connection."""


class CatalogStoreError(CatalogSyncError):
    """A catalog store read or write failed."""
