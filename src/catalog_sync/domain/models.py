# catalog_sync/domain/models.py

"""Core domain models for catalog artists, reference records and match results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class MatchVerdict(str, Enum):
    """How well a local release corresponds to its reference release."""

    COMPLETE = "COMPLETE"
    INCOMPLETE = "INCOMPLETE"
    EXTRA_TRACKS = "EXTRA_TRACKS"
    MISSING = "MISSING"
    UNKNOWN = "UNKNOWN"


class RelationType(str, Enum):
    """Artist relation types the sync actually branches on.

    All other relation types are passed through verbatim as plain strings.
    """

    WIKIPEDIA = "wikipedia"
    WIKIDATA = "wikidata"


class ArtistStatus(str, Enum):
    SYNCED = "synced"
    PARTIALLY_SYNCED = "partially_synced"
    FAILED = "failed"


class ArtistState(str, Enum):
    """Progress of a single artist through a reconciliation pass."""

    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    ENRICHING = "enriching"
    RELEASE_SCANNING = "release_scanning"
    SCORED = "scored"


# ---------------------------------------------------------------------------
# Local catalog
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ArtistRef:
    """A catalog artist as selected for synchronization."""

    id: str
    name: str
    slug: str
    external_id: str | None = None
    last_synced_at: datetime | None = None
    average_match_score: float | None = None


@dataclass(slots=True)
class LocalRelease:
    """A release found on disk by the indexer, plus its linkage state."""

    id: str
    artist_id: str
    title: str
    track_titles: list[str] = field(default_factory=list)
    external_release_id: str | None = None
    match_status: MatchVerdict | None = None


# ---------------------------------------------------------------------------
# Reference service records
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ArtistMatch:
    id: str
    name: str
    score: int


@dataclass(slots=True, frozen=True)
class ArtistRelation:
    type: str
    url: str | None


@dataclass(slots=True, frozen=True)
class TagCount:
    """A genre or free-text tag with its (signed) vote count."""

    name: str
    count: int | None = None

    @property
    def is_popular(self) -> bool:
        return (self.count or 0) > 0


@dataclass(slots=True)
class ArtistDetail:
    id: str
    name: str
    relations: list[ArtistRelation] = field(default_factory=list)
    genres: list[TagCount] = field(default_factory=list)
    tags: list[TagCount] = field(default_factory=list)

    def urls_for(self, relation_type: RelationType) -> list[str]:
        """Return the target URLs of all relations of the given type."""
        return [
            rel.url
            for rel in self.relations
            if rel.url and rel.type == relation_type.value
        ]


@dataclass(slots=True, frozen=True)
class ReleaseGroupCandidate:
    """A release group as listed by the reference service."""

    id: str
    title: str
    primary_type: str | None = None
    secondary_types: tuple[str, ...] = ()
    first_release_date: str | None = None  # "1997", "1997-05" or "1997-05-21"

    @property
    def release_type(self) -> str:
        return self.primary_type or "Album"

    @property
    def year(self) -> int | None:
        if not self.first_release_date:
            return None
        head = self.first_release_date.split("-", 1)[0]
        if len(head) != 4 or not head.isdigit():
            return None
        return int(head)


@dataclass(slots=True, frozen=True)
class TrackCandidate:
    id: str
    title: str
    position: int | None = None
    duration_ms: int | None = None
    disc_number: int | None = None


@dataclass(slots=True)
class ReleaseVariant:
    """One concrete release of a release group with its flattened track list."""

    id: str
    title: str
    date: str | None = None
    tracks: list[TrackCandidate] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class MatchResult:
    verdict: MatchVerdict
    score: float
    missing: list[str] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ArtistOutcome:
    """Result of reconciling a single artist."""

    artist: ArtistRef
    status: ArtistStatus
    average_score: float | None = None
    processed_releases: int = 0
    skipped_releases: int = 0
    failed_releases: int = 0
    reasons: list[str] = field(default_factory=list)


@dataclass(slots=True)
class RunSummary:
    """Aggregated counts for a whole reconciliation run."""

    synced: int = 0
    partial: int = 0
    failed: int = 0
    skipped_releases: int = 0
    failure_reasons: list[tuple[str, str]] = field(default_factory=list)
    outcomes: list[ArtistOutcome] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def add(self, outcome: ArtistOutcome) -> None:
        self.outcomes.append(outcome)
        self.skipped_releases += outcome.skipped_releases
        for reason in outcome.reasons:
            self.failure_reasons.append((outcome.artist.name, reason))

        if outcome.status is ArtistStatus.SYNCED:
            self.synced += 1
        elif outcome.status is ArtistStatus.PARTIALLY_SYNCED:
            self.partial += 1
        else:
            self.failed += 1


@dataclass(slots=True, frozen=True)
class CatalogStatistics:
    artists_with_external_id: int
    external_releases: int
    genres: int
