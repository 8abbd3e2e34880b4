# catalog_sync/store/base.py

"""The catalog-store contract the reconciliation engine depends on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from catalog_sync.domain.models import (
    ArtistRef,
    CatalogStatistics,
    LocalRelease,
    MatchVerdict,
    TrackCandidate,
)

COMPILATION_MARKER_NAMES = frozenset({"various artists", "various"})
COMPILATION_MARKER_SLUGS = frozenset({"various-artists", "various"})


@dataclass(slots=True, frozen=True)
class SlugRange:
    """Case-insensitive slug filter.

    `only` is a prefix and wins over `start`/`end`. Both bounds are inclusive
    and compared lexicographically; `end` also admits every slug it prefixes,
    so `end="c"` keeps "cure".
    """

    only: str | None = None
    start: str | None = None
    end: str | None = None

    def matches(self, slug: str) -> bool:
        slug = slug.lower()
        if self.only:
            return slug.startswith(self.only.lower())
        if self.start and slug < self.start.lower():
            return False
        if self.end and slug[: len(self.end)] > self.end.lower():
            return False
        return True


def is_compilation_marker(artist: ArtistRef) -> bool:
    """True for placeholder artists such as "Various Artists"."""
    return (
        artist.name.strip().lower() in COMPILATION_MARKER_NAMES
        or artist.slug in COMPILATION_MARKER_SLUGS
    )


class CatalogStore(ABC):
    """Reads and writes the engine needs from the catalog persistence layer.

    Implementations raise `CatalogStoreError` on failure.
    """

    @abstractmethod
    def find_artists_due_for_sync(
        self,
        overwrite_all: bool,
        slug_range: SlugRange | None = None,
        limit: int | None = None,
    ) -> list[ArtistRef]:
        """Artists to reconcile, ordered by slug.

        Unless `overwrite_all` is set, only artists without an external id,
        never synced, or synced before the staleness window are returned.
        A `limit` of None or 0 means no limit.
        """

    @abstractmethod
    def get_local_release_track_titles(
        self, artist_id: str, release_title: str
    ) -> LocalRelease | None:
        """Local release of the artist whose title matches case-insensitively."""

    @abstractmethod
    def upsert_release_type(self, name: str) -> str: ...

    @abstractmethod
    def upsert_external_release(
        self,
        artist_id: str,
        title: str,
        type_id: str,
        year: int | None,
        external_id: str,
    ) -> str:
        """Create or update the reference release keyed by (artist, title)."""

    @abstractmethod
    def replace_external_tracks(
        self, release_id: str, tracks: Sequence[TrackCandidate]
    ) -> None: ...

    @abstractmethod
    def link_local_release_to_external(
        self, local_release_id: str, external_release_id: str
    ) -> None: ...

    @abstractmethod
    def set_release_match_status(self, release_id: str, verdict: MatchVerdict) -> None:
        """Store the verdict on the reference release and every linked local release."""

    @abstractmethod
    def set_artist_external_id(self, artist_id: str, external_id: str) -> None: ...

    @abstractmethod
    def set_artist_sync_result(
        self,
        artist_id: str,
        average_score: float | None,
        synced_at: datetime,
    ) -> None: ...

    @abstractmethod
    def touch_artist_synced(self, artist_id: str, synced_at: datetime) -> None:
        """Stamp the sync time but keep the previous average score."""

    @abstractmethod
    def upsert_artist_link(self, artist_id: str, relation_type: str, url: str) -> None: ...

    @abstractmethod
    def upsert_genre(self, name: str) -> str: ...

    @abstractmethod
    def link_artist_genre(self, artist_id: str, genre_id: str) -> None: ...

    @abstractmethod
    def refresh_statistics(self) -> CatalogStatistics: ...
