# catalog_sync/reconcile/engine.py

"""Reconcile catalog artists against the reference service.

Artists are processed one after another; every artist walks through
resolving -> enriching -> release scanning -> scoring and ends up synced,
partially synced or failed. Failures are recorded in the run summary and
never stop the run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, TypeVar

from catalog_sync.domain.models import (
    ArtistDetail,
    ArtistMatch,
    ArtistOutcome,
    ArtistRef,
    ArtistState,
    ArtistStatus,
    MatchResult,
    MatchVerdict,
    ReleaseGroupCandidate,
    ReleaseVariant,
    RunSummary,
    TrackCandidate,
)
from catalog_sync.errors import (
    CatalogStoreError,
    PersistentThrottlingError,
    ReferenceServiceError,
)
from catalog_sync.reconcile.classifier import should_skip
from catalog_sync.reconcile.matcher import match_release
from catalog_sync.store.base import CatalogStore, SlugRange, is_compilation_marker
from catalog_sync.store.memory import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

REASON_NO_MATCH = "no match"
REASON_PERSISTENT_THROTTLING = "persistent rate limiting"
REASON_NO_RELEASES_PROCESSED = "could not process any releases"


class ReferenceLookup(Protocol):
    """The reference-service operations the engine consumes."""

    def search_artist(self, name: str) -> ArtistMatch | None: ...

    def fetch_artist_detail(self, external_id: str) -> ArtistDetail: ...

    def list_release_groups(self, external_id: str) -> list[ReleaseGroupCandidate]: ...

    def list_release_tracks(self, release_group_id: str) -> list[ReleaseVariant]: ...


DetailHook = Callable[[ArtistRef, ArtistDetail], None]


@dataclass(slots=True, frozen=True)
class ArtistSelection:
    """Which artists a run should look at."""

    overwrite_all: bool = False
    slug_range: SlugRange | None = None
    limit: int | None = None


@dataclass(slots=True)
class _ArtistProgress:
    state: ArtistState = ArtistState.UNRESOLVED
    scores: list[float] = field(default_factory=list)
    eligible: int = 0
    skipped: int = 0
    failures: int = 0
    reasons: list[str] = field(default_factory=list)

    def advance(self, state: ArtistState, artist_name: str) -> None:
        logger.debug("'%s': %s -> %s", artist_name, self.state.value, state.value)
        self.state = state


class ReconciliationEngine:
    def __init__(
        self,
        client: ReferenceLookup,
        store: CatalogStore,
        *,
        detail_hook: DetailHook | None = None,
        clock: Callable[[], datetime] = utc_now,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._store = store
        self._detail_hook = detail_hook
        self._clock = clock
        self._timer = timer

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def reconcile(self, selection: ArtistSelection) -> RunSummary:
        """Reconcile every artist picked by `selection` and summarize the run."""
        started = self._timer()
        artists = self._store.find_artists_due_for_sync(
            selection.overwrite_all,
            selection.slug_range,
            selection.limit,
        )

        markers = [a for a in artists if is_compilation_marker(a)]
        if markers:
            logger.info(
                "Ignoring %d compilation placeholder artist(s): %s",
                len(markers),
                ", ".join(a.name for a in markers),
            )
            artists = [a for a in artists if not is_compilation_marker(a)]

        logger.info("Artists to sync: %d", len(artists))
        if len(artists) > 10:
            logger.info("Reference rate limits apply. Large batches may take time.")

        summary = RunSummary()
        total = len(artists)
        for index, artist in enumerate(artists, start=1):
            logger.info("[%d/%d] Syncing: %s", index, total, artist.name)
            summary.add(self.reconcile_artist(artist))

        try:
            self._store.refresh_statistics()
        except CatalogStoreError as exc:
            logger.warning("Could not refresh catalog statistics: %s", exc)

        summary.elapsed_seconds = self._timer() - started
        logger.info(
            "Completed in %.1fs: synced=%d, partial=%d, failed=%d, total=%d",
            summary.elapsed_seconds,
            summary.synced,
            summary.partial,
            summary.failed,
            summary.total,
        )
        return summary

    # ------------------------------------------------------------------
    # Single artist
    # ------------------------------------------------------------------

    def reconcile_artist(self, artist: ArtistRef) -> ArtistOutcome:
        progress = _ArtistProgress()

        progress.advance(ArtistState.RESOLVING, artist.name)
        external_id = self._resolve(artist, progress)
        if external_id is None:
            return self._outcome(artist, ArtistStatus.FAILED, progress)

        progress.advance(ArtistState.ENRICHING, artist.name)
        self._enrich(artist, external_id)

        progress.advance(ArtistState.RELEASE_SCANNING, artist.name)
        try:
            groups = self._client.list_release_groups(external_id)
        except ReferenceServiceError as exc:
            logger.error("Failed to fetch releases for '%s': %s", artist.name, exc)
            progress.reasons.append(f"failed to fetch releases: {exc}")
            return self._outcome(artist, ArtistStatus.FAILED, progress)

        logger.info("Found %d release groups for '%s'.", len(groups), artist.name)
        self._scan_releases(artist, groups, progress)

        progress.advance(ArtistState.SCORED, artist.name)
        return self._score(artist, progress)

    def _resolve(self, artist: ArtistRef, progress: _ArtistProgress) -> str | None:
        if artist.external_id:
            logger.debug("Using existing external id %s for '%s'.", artist.external_id, artist.name)
            return artist.external_id

        try:
            match = self._client.search_artist(artist.name)
        except ReferenceServiceError as exc:
            logger.error("Search error for artist '%s': %s", artist.name, exc)
            progress.reasons.append(f"search error: {exc}")
            return None

        if match is None:
            logger.warning("No reference match for artist '%s'.", artist.name)
            progress.reasons.append(REASON_NO_MATCH)
            # Stamp the sync time so the artist waits out the staleness window.
            self._best_effort(
                "stamp sync time",
                self._store.touch_artist_synced,
                artist.id,
                self._clock(),
            )
            return None

        logger.info("Found: %s (%s, score=%d)", match.name, match.id, match.score)
        self._best_effort(
            "save external id",
            self._store.set_artist_external_id,
            artist.id,
            match.id,
        )
        return match.id

    def _enrich(self, artist: ArtistRef, external_id: str) -> None:
        try:
            detail = self._client.fetch_artist_detail(external_id)
        except ReferenceServiceError as exc:
            logger.warning("Could not fetch details for '%s': %s", artist.name, exc)
            return

        links = 0
        for relation in detail.relations:
            if not relation.url:
                continue
            if self._best_effort(
                "save artist link",
                self._store.upsert_artist_link,
                artist.id,
                relation.type,
                relation.url,
            ) is not _FAILED:
                links += 1

        genres = 0
        # Tags double as genres, but only those somebody actually voted for.
        for tag in [*detail.genres, *detail.tags]:
            if not tag.is_popular:
                continue
            genre_id = self._best_effort("save genre", self._store.upsert_genre, tag.name)
            if genre_id is _FAILED:
                continue
            if self._best_effort(
                "link genre",
                self._store.link_artist_genre,
                artist.id,
                genre_id,
            ) is not _FAILED:
                genres += 1

        logger.info("Saved %d links, %d genres for '%s'.", links, genres, artist.name)

        if self._detail_hook is not None:
            try:
                self._detail_hook(artist, detail)
            except Exception:  # noqa: BLE001
                logger.exception("Artist detail hook failed for '%s'.", artist.name)

    def _scan_releases(
        self,
        artist: ArtistRef,
        groups: list[ReleaseGroupCandidate],
        progress: _ArtistProgress,
    ) -> None:
        for candidate in groups:
            skip_reason = should_skip(candidate)
            if skip_reason is not None:
                logger.info(
                    "%s (%s) - skipping (%s)",
                    candidate.title,
                    candidate.release_type,
                    skip_reason,
                )
                progress.skipped += 1
                continue

            progress.eligible += 1
            try:
                score = self._reconcile_release(artist, candidate)
            except PersistentThrottlingError as exc:
                logger.error(
                    "Stopping sync for '%s' due to persistent rate limiting: %s",
                    artist.name,
                    exc,
                )
                progress.failures += 1
                progress.reasons.append(REASON_PERSISTENT_THROTTLING)
                break
            except (ReferenceServiceError, CatalogStoreError) as exc:
                logger.warning(
                    "Release '%s' by '%s' failed: %s",
                    candidate.title,
                    artist.name,
                    exc,
                )
                progress.failures += 1
                continue

            if score is not None:
                progress.scores.append(score)

        logger.info(
            "Processed %d releases for '%s' (%d skipped, %d failed).",
            progress.eligible,
            artist.name,
            progress.skipped,
            progress.failures,
        )

    def _reconcile_release(
        self, artist: ArtistRef, candidate: ReleaseGroupCandidate
    ) -> float | None:
        """Persist one release group and return its match score.

        Returns None when the service listed no release for the group.
        """
        type_id = self._store.upsert_release_type(candidate.release_type)
        release_id = self._store.upsert_external_release(
            artist.id,
            candidate.title,
            type_id,
            candidate.year,
            candidate.id,
        )

        variants = self._client.list_release_tracks(candidate.id)
        if not variants:
            logger.info("No releases listed for '%s'.", candidate.title)
            return None

        # The first variant is the most canonical one.
        tracks = variants[0].tracks
        self._best_effort(
            "replace reference tracks",
            self._store.replace_external_tracks,
            release_id,
            tracks,
        )

        result = self._match_local_release(artist, candidate.title, release_id, tracks)
        self._best_effort(
            "save match status",
            self._store.set_release_match_status,
            release_id,
            result.verdict,
        )
        logger.info(
            "%s (%s): %s (score=%.2f, missing=%d, extra=%d)",
            candidate.title,
            candidate.release_type,
            result.verdict.value,
            result.score,
            len(result.missing),
            len(result.extra),
        )
        return result.score

    def _match_local_release(
        self,
        artist: ArtistRef,
        title: str,
        release_id: str,
        tracks: list[TrackCandidate],
    ) -> MatchResult:
        try:
            local = self._store.get_local_release_track_titles(artist.id, title)
        except CatalogStoreError as exc:
            logger.warning("Could not read local release '%s': %s", title, exc)
            return MatchResult(MatchVerdict.UNKNOWN, 0.0)

        if local is None:
            return MatchResult(MatchVerdict.MISSING, 0.0)

        self._best_effort(
            "link local release",
            self._store.link_local_release_to_external,
            local.id,
            release_id,
        )
        return match_release(local.track_titles, tracks)

    def _score(self, artist: ArtistRef, progress: _ArtistProgress) -> ArtistOutcome:
        now = self._clock()
        processed = bool(progress.scores) or (
            progress.eligible == 0 and progress.failures == 0
        )

        if not processed:
            self._best_effort("stamp sync time", self._store.touch_artist_synced, artist.id, now)
            progress.reasons.append(REASON_NO_RELEASES_PROCESSED)
            logger.error("Artist '%s' could not process any releases.", artist.name)
            return self._outcome(artist, ArtistStatus.FAILED, progress)

        average = (
            sum(progress.scores) / len(progress.scores) if progress.scores else None
        )
        self._best_effort(
            "save sync result",
            self._store.set_artist_sync_result,
            artist.id,
            average,
            now,
        )

        if progress.failures:
            logger.warning(
                "'%s' partially synced (%d releases had issues).",
                artist.name,
                progress.failures,
            )
            status = ArtistStatus.PARTIALLY_SYNCED
        else:
            if progress.eligible == 0 and progress.skipped:
                logger.info("'%s' synced (all releases were filtered types).", artist.name)
            else:
                logger.info("'%s' fully synced.", artist.name)
            status = ArtistStatus.SYNCED

        return self._outcome(artist, status, progress, average)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _outcome(
        artist: ArtistRef,
        status: ArtistStatus,
        progress: _ArtistProgress,
        average: float | None = None,
    ) -> ArtistOutcome:
        return ArtistOutcome(
            artist=artist,
            status=status,
            average_score=average,
            processed_releases=progress.eligible,
            skipped_releases=progress.skipped,
            failed_releases=progress.failures,
            reasons=list(progress.reasons),
        )

    @staticmethod
    def _best_effort(action: str, func: Callable[..., T], *args: object) -> T | object:
        """Run a store write whose failure should be logged but not propagated."""
        try:
            return func(*args)
        except CatalogStoreError as exc:
            logger.warning("Could not %s: %s", action, exc)
            return _FAILED


_FAILED = object()
