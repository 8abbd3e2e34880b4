# catalog_sync/reconcile/matcher.py

"""Compare a local track listing against a reference release."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from catalog_sync.domain.models import MatchResult, MatchVerdict, TrackCandidate


WORD_SEPARATORS = frozenset("-\u2010\u2011\u2012\u2013\u2014/")


def normalize(title: str) -> str:
    """Lowercase, keep only alphanumerics and whitespace, collapse whitespace.

    Dashes and slashes separate words, so they turn into spaces; every other
    non-alphanumeric character is dropped.

    >>> normalize("  The B-52's!  ")
    'the b 52s'
    """
    lowered = "".join(" " if c in WORD_SEPARATORS else c for c in title.lower())
    kept = "".join(c for c in lowered if c.isalnum() or c.isspace())
    return " ".join(kept.split())


def match_release(
    local_titles: Iterable[str],
    reference_tracks: Sequence[TrackCandidate],
) -> MatchResult:
    """Classify how completely a local release covers its reference release.

    Titles are compared after `normalize`. Containment uses sets, so repeated
    titles on either side count once.
    """
    local = list(local_titles)
    local_norm = {normalize(t) for t in local}
    reference_norm = {normalize(t.title) for t in reference_tracks}

    missing = [t.title for t in reference_tracks if normalize(t.title) not in local_norm]
    extra = [t for t in local if normalize(t) not in reference_norm]

    if not missing and not extra:
        return MatchResult(MatchVerdict.COMPLETE, 1.0)

    if not missing:
        return MatchResult(MatchVerdict.EXTRA_TRACKS, 1.0, extra=extra)

    total = len(reference_tracks)
    score = (total - len(missing)) / total if total else 0.0
    return MatchResult(MatchVerdict.INCOMPLETE, score, missing=missing, extra=extra)
