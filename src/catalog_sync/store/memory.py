# catalog_sync/store/memory.py

"""Dict-backed catalog store.

Used directly in tests and as the working set of the JSONL store.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from catalog_sync.config import DEFAULT_STALENESS_DAYS
from catalog_sync.domain.models import (
    ArtistRef,
    CatalogStatistics,
    LocalRelease,
    MatchVerdict,
    TrackCandidate,
)
from catalog_sync.errors import CatalogStoreError
from catalog_sync.store.base import CatalogStore, SlugRange

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReleaseTypeRecord:
    id: str
    name: str
    slug: str


@dataclass(slots=True)
class ExternalReleaseRecord:
    """A reference release as persisted for one artist."""

    id: str
    artist_id: str
    title: str
    type_id: str
    year: int | None
    external_id: str
    status: MatchVerdict = MatchVerdict.UNKNOWN
    tracks: list[TrackCandidate] = field(default_factory=list)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")


class InMemoryCatalogStore(CatalogStore):
    def __init__(
        self,
        *,
        staleness_days: int = DEFAULT_STALENESS_DAYS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.staleness = timedelta(days=staleness_days)
        self._clock = clock

        self.artists: dict[str, ArtistRef] = {}
        self.local_releases: dict[str, LocalRelease] = {}
        self.release_types: dict[str, ReleaseTypeRecord] = {}  # slug -> record
        self.external_releases: dict[str, ExternalReleaseRecord] = {}
        self.genres: dict[str, str] = {}  # name -> id
        self.artist_links: set[tuple[str, str, str]] = set()
        self.artist_genres: set[tuple[str, str]] = set()
        self.statistics: CatalogStatistics | None = None

    # ------------------------------------------------------------------
    # Seeding (the indexer's side of the catalog)
    # ------------------------------------------------------------------

    def add_artist(self, artist: ArtistRef) -> ArtistRef:
        self.artists[artist.id] = artist
        return artist

    def add_local_release(self, release: LocalRelease) -> LocalRelease:
        if release.artist_id not in self.artists:
            msg = f"Unknown artist id {release.artist_id!r} for local release {release.title!r}"
            raise CatalogStoreError(msg)
        self.local_releases[release.id] = release
        return release

    # ------------------------------------------------------------------
    # CatalogStore
    # ------------------------------------------------------------------

    def find_artists_due_for_sync(
        self,
        overwrite_all: bool,
        slug_range: SlugRange | None = None,
        limit: int | None = None,
    ) -> list[ArtistRef]:
        cutoff = self._clock() - self.staleness
        selected = []
        for artist in self.artists.values():
            if slug_range is not None and not slug_range.matches(artist.slug):
                continue
            if overwrite_all or _is_due(artist, cutoff):
                selected.append(artist)

        selected.sort(key=lambda a: a.slug)
        if limit:
            selected = selected[:limit]
        return selected

    def get_local_release_track_titles(
        self, artist_id: str, release_title: str
    ) -> LocalRelease | None:
        wanted = release_title.lower()
        for release in self.local_releases.values():
            if release.artist_id == artist_id and release.title.lower() == wanted:
                return release
        return None

    def upsert_release_type(self, name: str) -> str:
        slug = slugify(name)
        if not slug:
            msg = f"Release type {name!r} has an empty slug"
            raise CatalogStoreError(msg)

        existing = self.release_types.get(slug)
        if existing is not None:
            return existing.id

        record = ReleaseTypeRecord(id=new_id(), name=name, slug=slug)
        self.release_types[slug] = record
        return record.id

    def upsert_external_release(
        self,
        artist_id: str,
        title: str,
        type_id: str,
        year: int | None,
        external_id: str,
    ) -> str:
        self._artist(artist_id)
        for record in self.external_releases.values():
            if record.artist_id == artist_id and record.title == title:
                record.type_id = type_id
                record.year = year
                record.external_id = external_id
                return record.id

        record = ExternalReleaseRecord(
            id=new_id(),
            artist_id=artist_id,
            title=title,
            type_id=type_id,
            year=year,
            external_id=external_id,
        )
        self.external_releases[record.id] = record
        return record.id

    def replace_external_tracks(
        self, release_id: str, tracks: Sequence[TrackCandidate]
    ) -> None:
        record = self._external_release(release_id)
        record.tracks = list(tracks)

    def link_local_release_to_external(
        self, local_release_id: str, external_release_id: str
    ) -> None:
        self._external_release(external_release_id)
        release = self.local_releases.get(local_release_id)
        if release is None:
            msg = f"Unknown local release id {local_release_id!r}"
            raise CatalogStoreError(msg)
        release.external_release_id = external_release_id

    def set_release_match_status(self, release_id: str, verdict: MatchVerdict) -> None:
        self._external_release(release_id).status = verdict
        for release in self.local_releases.values():
            if release.external_release_id == release_id:
                release.match_status = verdict

    def set_artist_external_id(self, artist_id: str, external_id: str) -> None:
        self._artist(artist_id).external_id = external_id

    def set_artist_sync_result(
        self,
        artist_id: str,
        average_score: float | None,
        synced_at: datetime,
    ) -> None:
        artist = self._artist(artist_id)
        artist.average_match_score = average_score
        artist.last_synced_at = synced_at

    def touch_artist_synced(self, artist_id: str, synced_at: datetime) -> None:
        self._artist(artist_id).last_synced_at = synced_at

    def upsert_artist_link(self, artist_id: str, relation_type: str, url: str) -> None:
        self._artist(artist_id)
        self.artist_links.add((artist_id, relation_type, url))

    def upsert_genre(self, name: str) -> str:
        genre_id = self.genres.get(name)
        if genre_id is None:
            genre_id = new_id()
            self.genres[name] = genre_id
        return genre_id

    def link_artist_genre(self, artist_id: str, genre_id: str) -> None:
        self._artist(artist_id)
        if genre_id not in self.genres.values():
            msg = f"Unknown genre id {genre_id!r}"
            raise CatalogStoreError(msg)
        self.artist_genres.add((artist_id, genre_id))

    def refresh_statistics(self) -> CatalogStatistics:
        self.statistics = CatalogStatistics(
            artists_with_external_id=sum(
                1 for a in self.artists.values() if a.external_id
            ),
            external_releases=len(self.external_releases),
            genres=len(self.genres),
        )
        logger.debug("Catalog statistics: %s", self.statistics)
        return self.statistics

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def links_for(self, artist_id: str) -> list[tuple[str, str]]:
        return sorted((t, url) for a, t, url in self.artist_links if a == artist_id)

    def genres_for(self, artist_id: str) -> list[str]:
        names = {genre_id: name for name, genre_id in self.genres.items()}
        return sorted(names[g] for a, g in self.artist_genres if a == artist_id)

    def external_release_by_title(
        self, artist_id: str, title: str
    ) -> ExternalReleaseRecord | None:
        for record in self.external_releases.values():
            if record.artist_id == artist_id and record.title == title:
                return record
        return None

    def _artist(self, artist_id: str) -> ArtistRef:
        artist = self.artists.get(artist_id)
        if artist is None:
            msg = f"Unknown artist id {artist_id!r}"
            raise CatalogStoreError(msg)
        return artist

    def _external_release(self, release_id: str) -> ExternalReleaseRecord:
        record = self.external_releases.get(release_id)
        if record is None:
            msg = f"Unknown external release id {release_id!r}"
            raise CatalogStoreError(msg)
        return record


def _is_due(artist: ArtistRef, cutoff: datetime) -> bool:
    return (
        artist.external_id is None
        or artist.last_synced_at is None
        or artist.last_synced_at < cutoff
    )
