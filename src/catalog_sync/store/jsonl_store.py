# catalog_sync/store/jsonl_store.py

"""File-backed catalog store: one JSONL file per table in a catalog directory.

The whole catalog is loaded into memory, mutated by the engine through the
`CatalogStore` contract and written back with `save()`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from catalog_sync.domain.models import (
    ArtistRef,
    LocalRelease,
    MatchVerdict,
    TrackCandidate,
)
from catalog_sync.io.jsonl import read_records, write_jsonl
from catalog_sync.store.memory import (
    ExternalReleaseRecord,
    InMemoryCatalogStore,
    ReleaseTypeRecord,
)

logger = logging.getLogger(__name__)

ARTISTS_FILE = "artists.jsonl"
LOCAL_RELEASES_FILE = "local_releases.jsonl"
RELEASE_TYPES_FILE = "release_types.jsonl"
EXTERNAL_RELEASES_FILE = "external_releases.jsonl"
GENRES_FILE = "genres.jsonl"
ARTIST_LINKS_FILE = "artist_links.jsonl"
ARTIST_GENRES_FILE = "artist_genres.jsonl"


class JsonlCatalogStore(InMemoryCatalogStore):
    def __init__(self, directory: Path, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.directory = directory

    @classmethod
    def load(cls, directory: Path, **kwargs: Any) -> JsonlCatalogStore:
        """Read every table file that exists in `directory`."""
        store = cls(directory, **kwargs)

        for artist in read_records(directory / ARTISTS_FILE, _artist_from_dict):
            store.artists[artist.id] = artist

        for release in read_records(directory / LOCAL_RELEASES_FILE, _local_release_from_dict):
            store.local_releases[release.id] = release

        for rtype in read_records(directory / RELEASE_TYPES_FILE, _release_type_from_dict):
            store.release_types[rtype.slug] = rtype

        for record in read_records(
            directory / EXTERNAL_RELEASES_FILE, _external_release_from_dict
        ):
            store.external_releases[record.id] = record

        for name, genre_id in read_records(
            directory / GENRES_FILE, lambda o: (str(o["name"]), str(o["id"]))
        ):
            store.genres[name] = genre_id

        store.artist_links.update(
            read_records(
                directory / ARTIST_LINKS_FILE,
                lambda o: (str(o["artist_id"]), str(o["type"]), str(o["url"])),
            )
        )
        store.artist_genres.update(
            read_records(
                directory / ARTIST_GENRES_FILE,
                lambda o: (str(o["artist_id"]), str(o["genre_id"])),
            )
        )

        logger.info(
            "Loaded catalog from %s: %d artists, %d local releases, %d reference releases.",
            directory,
            len(store.artists),
            len(store.local_releases),
            len(store.external_releases),
        )
        return store

    def save(self) -> None:
        """Write all tables back to the catalog directory."""
        d = self.directory
        write_jsonl(d / ARTISTS_FILE, (_artist_to_dict(a) for a in self._sorted(self.artists)))
        write_jsonl(
            d / LOCAL_RELEASES_FILE,
            (_local_release_to_dict(r) for r in self._sorted(self.local_releases)),
        )
        write_jsonl(
            d / RELEASE_TYPES_FILE,
            (
                {"id": t.id, "name": t.name, "slug": t.slug}
                for _, t in sorted(self.release_types.items())
            ),
        )
        write_jsonl(
            d / EXTERNAL_RELEASES_FILE,
            (_external_release_to_dict(r) for r in self._sorted(self.external_releases)),
        )
        write_jsonl(
            d / GENRES_FILE,
            ({"id": gid, "name": name} for name, gid in sorted(self.genres.items())),
        )
        write_jsonl(
            d / ARTIST_LINKS_FILE,
            (
                {"artist_id": a, "type": t, "url": url}
                for a, t, url in sorted(self.artist_links)
            ),
        )
        write_jsonl(
            d / ARTIST_GENRES_FILE,
            ({"artist_id": a, "genre_id": g} for a, g in sorted(self.artist_genres)),
        )
        logger.info("Saved catalog to %s.", d)

    @staticmethod
    def _sorted(table: dict[str, Any]) -> list[Any]:
        return [table[key] for key in sorted(table)]


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_verdict(value: Any) -> MatchVerdict | None:
    return MatchVerdict(value) if value else None


def _artist_from_dict(obj: dict[str, Any]) -> ArtistRef:
    score = obj.get("average_match_score")
    return ArtistRef(
        id=str(obj["id"]),
        name=str(obj["name"]),
        slug=str(obj["slug"]),
        external_id=obj.get("external_id") or None,
        last_synced_at=_parse_datetime(obj.get("last_synced_at")),
        average_match_score=None if score is None else float(score),
    )


def _artist_to_dict(artist: ArtistRef) -> dict[str, Any]:
    return {
        "id": artist.id,
        "name": artist.name,
        "slug": artist.slug,
        "external_id": artist.external_id,
        "last_synced_at": (
            artist.last_synced_at.isoformat() if artist.last_synced_at else None
        ),
        "average_match_score": artist.average_match_score,
    }


def _local_release_from_dict(obj: dict[str, Any]) -> LocalRelease:
    return LocalRelease(
        id=str(obj["id"]),
        artist_id=str(obj["artist_id"]),
        title=str(obj["title"]),
        track_titles=[str(t or "") for t in obj.get("track_titles") or []],
        external_release_id=obj.get("external_release_id") or None,
        match_status=_parse_verdict(obj.get("match_status")),
    )


def _local_release_to_dict(release: LocalRelease) -> dict[str, Any]:
    return {
        "id": release.id,
        "artist_id": release.artist_id,
        "title": release.title,
        "track_titles": release.track_titles,
        "external_release_id": release.external_release_id,
        "match_status": release.match_status.value if release.match_status else None,
    }


def _release_type_from_dict(obj: dict[str, Any]) -> ReleaseTypeRecord:
    return ReleaseTypeRecord(id=str(obj["id"]), name=str(obj["name"]), slug=str(obj["slug"]))


def _track_from_dict(obj: dict[str, Any]) -> TrackCandidate:
    return TrackCandidate(
        id=str(obj["id"]),
        title=str(obj["title"]),
        position=obj.get("position"),
        duration_ms=obj.get("duration_ms"),
        disc_number=obj.get("disc_number"),
    )


def _track_to_dict(track: TrackCandidate) -> dict[str, Any]:
    return {
        "id": track.id,
        "title": track.title,
        "position": track.position,
        "duration_ms": track.duration_ms,
        "disc_number": track.disc_number,
    }


def _external_release_from_dict(obj: dict[str, Any]) -> ExternalReleaseRecord:
    year = obj.get("year")
    return ExternalReleaseRecord(
        id=str(obj["id"]),
        artist_id=str(obj["artist_id"]),
        title=str(obj["title"]),
        type_id=str(obj["type_id"]),
        year=None if year is None else int(year),
        external_id=str(obj["external_id"]),
        status=_parse_verdict(obj.get("status")) or MatchVerdict.UNKNOWN,
        tracks=[_track_from_dict(t) for t in obj.get("tracks") or []],
    )


def _external_release_to_dict(record: ExternalReleaseRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "artist_id": record.artist_id,
        "title": record.title,
        "type_id": record.type_id,
        "year": record.year,
        "external_id": record.external_id,
        "status": record.status.value,
        "tracks": [_track_to_dict(t) for t in record.tracks],
    }
