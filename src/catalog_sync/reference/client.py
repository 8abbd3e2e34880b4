# catalog_sync/reference/client.py

"""HTTP client for the reference metadata service (MusicBrainz web service v2).

All requests share one adaptive RateLimiter and go through `_get_json`, which
retries busy / rate-limited responses with exponential backoff.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx

from catalog_sync.config import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, Settings
from catalog_sync.domain.models import (
    ArtistDetail,
    ArtistMatch,
    ArtistRelation,
    ReleaseGroupCandidate,
    ReleaseVariant,
    TagCount,
    TrackCandidate,
)
from catalog_sync.errors import (
    PermanentHTTPError,
    PersistentThrottlingError,
    ReferenceTransportError,
    ResponseParseError,
)
from catalog_sync.reference.rate_limiter import RateLimiter
from catalog_sync.reference.retry import RetryPolicy, describe_status

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "catalog-sync/0.1.0 ( mailto:you@example.com )"

SEARCH_LIMIT = 5
MIN_SEARCH_SCORE = 90
RELEASE_GROUP_PAGE_SIZE = 100
RELEASE_VARIANT_LIMIT = 10


class ReferenceServiceClient:
    """Typed access to the four reference-service lookups the sync needs."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._rate_limiter = rate_limiter or RateLimiter()
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

        headers = {
            "User-Agent": user_agent,
            "Accept": "application/json",
        }

        self._client = httpx.Client(
            headers=headers,
            timeout=timeout,
            verify=verify,
            transport=transport,
            follow_redirects=True,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> ReferenceServiceClient:
        return cls(
            base_url=settings.base_url,
            user_agent=settings.user_agent,
            timeout=settings.timeout,
            verify=settings.verify_tls,
            **kwargs,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> "ReferenceServiceClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    @property
    def current_delay(self) -> float:
        return self._rate_limiter.current_delay

    # ------------------------------------------------------------------
    # Public lookups
    # ------------------------------------------------------------------

    def search_artist(self, name: str) -> ArtistMatch | None:
        """Return the first search hit scoring at least 90, or None."""
        data = self._get_json(
            "/artist",
            {"query": f"artist:{name}", "limit": SEARCH_LIMIT, "fmt": "json"},
        )
        for raw in _as_list(data.get("artists"), "artists"):
            match = _parse_artist_match(raw)
            if match.score >= MIN_SEARCH_SCORE:
                return match
        return None

    def fetch_artist_detail(self, external_id: str) -> ArtistDetail:
        """Lookup an artist including URL relations, genres and tags."""
        data = self._get_json(
            f"/artist/{external_id}",
            {"inc": "url-rels+genres+tags", "fmt": "json"},
        )
        return _parse_artist_detail(data)

    def list_release_groups(self, external_id: str) -> list[ReleaseGroupCandidate]:
        """Fetch the complete release-group listing of an artist, page by page."""
        groups: list[ReleaseGroupCandidate] = []
        offset = 0

        while True:
            data = self._get_json(
                "/release-group",
                {
                    "artist": external_id,
                    "limit": RELEASE_GROUP_PAGE_SIZE,
                    "offset": offset,
                    "fmt": "json",
                },
            )
            page = [
                _parse_release_group(raw)
                for raw in _as_list(data.get("release-groups"), "release-groups")
            ]
            groups.extend(page)

            total = _as_int(data.get("release-group-count")) or 0
            offset += len(page)
            logger.debug(
                "Fetched %d release groups for %s (%d/%d).",
                len(page),
                external_id,
                offset,
                total,
            )
            if offset >= total or not page:
                break

        return groups

    def list_release_tracks(self, release_group_id: str) -> list[ReleaseVariant]:
        """Fetch up to 10 releases of a release group with their tracks."""
        data = self._get_json(
            "/release",
            {
                "release-group": release_group_id,
                "inc": "recordings",
                "limit": RELEASE_VARIANT_LIMIT,
                "fmt": "json",
            },
        )
        return [
            _parse_release_variant(raw)
            for raw in _as_list(data.get("releases"), "releases")
        ]

    # ------------------------------------------------------------------
    # Request primitive
    # ------------------------------------------------------------------

    def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        max_attempts = self._retry_policy.max_attempts
        wait_time = self._rate_limiter.current_delay

        for attempt in range(1, max_attempts + 1):
            self._rate_limiter.wait()

            try:
                response = self._client.get(url, params=params)
            except httpx.TimeoutException as exc:
                msg = f"Request to {url} timed out: {exc}"
                raise ReferenceTransportError(msg) from exc
            except httpx.RequestError as exc:
                msg = f"Request to {url} failed: {exc}"
                raise ReferenceTransportError(msg) from exc

            status = response.status_code
            if response.is_success:
                self._rate_limiter.on_success()
                logger.debug("GET %s -> %s", response.url, status)
                return _decode_json(response)

            if not self._retry_policy.is_retryable(status):
                raise PermanentHTTPError(status, str(response.url))

            self._rate_limiter.on_throttled()
            decision = self._retry_policy.decide(attempt, status, wait_time)
            if not decision.retry:
                break

            wait_time = decision.wait
            logger.warning(
                "%s - waiting %.1fs before retry %d/%d.",
                describe_status(status),
                wait_time,
                attempt,
                max_attempts - 1,
            )
            self._sleep(wait_time)

        raise PersistentThrottlingError(url, max_attempts, wait_time)


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


def _decode_json(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        msg = f"Invalid JSON from {response.url}: {exc}"
        raise ResponseParseError(msg) from exc

    if not isinstance(data, dict):
        msg = f"Expected a JSON object from {response.url}, got {type(data).__name__}"
        raise ResponseParseError(msg)
    return data


def _as_list(value: Any, key: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        msg = f"Expected a list for '{key}', got {type(value).__name__}"
        raise ResponseParseError(msg)
    return [item for item in value if isinstance(item, dict)]


def _as_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _require_str(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str):
        msg = f"Missing or invalid '{key}' in reference record"
        raise ResponseParseError(msg)
    return value


def _parse_artist_match(raw: dict[str, Any]) -> ArtistMatch:
    return ArtistMatch(
        id=_require_str(raw, "id"),
        name=str(raw.get("name", "")),
        score=_as_int(raw.get("score")) or 0,
    )


def _parse_tags(raw_tags: Any, key: str) -> list[TagCount]:
    tags: list[TagCount] = []
    for tag in _as_list(raw_tags, key):
        name = tag.get("name")
        if not name:
            continue
        tags.append(TagCount(name=str(name), count=_as_int(tag.get("count"))))
    return tags


def _parse_artist_detail(raw: dict[str, Any]) -> ArtistDetail:
    relations: list[ArtistRelation] = []
    for rel in _as_list(raw.get("relations"), "relations"):
        rel_type = rel.get("type")
        if not rel_type:
            continue
        url = rel.get("url") or {}
        resource = url.get("resource") if isinstance(url, dict) else None
        relations.append(ArtistRelation(type=str(rel_type), url=resource))

    return ArtistDetail(
        id=_require_str(raw, "id"),
        name=str(raw.get("name", "")),
        relations=relations,
        genres=_parse_tags(raw.get("genres"), "genres"),
        tags=_parse_tags(raw.get("tags"), "tags"),
    )


def _parse_release_group(raw: dict[str, Any]) -> ReleaseGroupCandidate:
    secondary = raw.get("secondary-types") or []
    return ReleaseGroupCandidate(
        id=_require_str(raw, "id"),
        title=_require_str(raw, "title"),
        primary_type=raw.get("primary-type"),
        secondary_types=tuple(str(s) for s in secondary),
        first_release_date=raw.get("first-release-date") or None,
    )


def _parse_release_variant(raw: dict[str, Any]) -> ReleaseVariant:
    tracks: list[TrackCandidate] = []
    for medium in _as_list(raw.get("media"), "media"):
        disc_number = _as_int(medium.get("position"))
        for track in _as_list(medium.get("tracks"), "tracks"):
            tracks.append(
                TrackCandidate(
                    id=_require_str(track, "id"),
                    title=_require_str(track, "title"),
                    position=_as_int(track.get("position")),
                    duration_ms=_as_int(track.get("length")),
                    disc_number=disc_number,
                )
            )

    return ReleaseVariant(
        id=_require_str(raw, "id"),
        title=str(raw.get("title", "")),
        date=raw.get("date") or None,
        tracks=tracks,
    )
