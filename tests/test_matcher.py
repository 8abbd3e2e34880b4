"""Tests for title normalization and release matching."""

from __future__ import annotations

import pytest

from catalog_sync.domain.models import MatchVerdict, TrackCandidate
from catalog_sync.reconcile.matcher import match_release, normalize


def tracks(*titles: str) -> list[TrackCandidate]:
    return [TrackCandidate(id=f"t{i}", title=t, position=i) for i, t in enumerate(titles, 1)]


def test_normalize_ignores_case_and_punctuation() -> None:
    assert normalize("The B-52's!") == normalize("the b 52s")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  Hello,   World  ", "hello world"),
        ("Don't Stop (Live)", "dont stop live"),
        ("AC/DC", "ac dc"),
        ("Sigur Rós – Hoppípolla", "sigur rós hoppípolla"),
        ("", ""),
        ("!!!", ""),
    ],
)
def test_normalize_examples(raw: str, expected: str) -> None:
    assert normalize(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["The B-52's!", "  a\t\tb\nc ", "Ça — va?", "x//y--z", "12 Bar Blues"],
)
def test_normalize_is_idempotent(raw: str) -> None:
    once = normalize(raw)
    assert normalize(once) == once


def test_complete_match() -> None:
    result = match_release(["Intro", "Track A"], tracks("Intro", "Track A"))
    assert result.verdict is MatchVerdict.COMPLETE
    assert result.score == 1.0
    assert result.missing == []
    assert result.extra == []


def test_incomplete_match() -> None:
    result = match_release(["Intro"], tracks("Intro", "Outro"))
    assert result.verdict is MatchVerdict.INCOMPLETE
    assert result.score == 0.5
    assert result.missing == ["Outro"]
    assert result.extra == []


def test_extra_tracks() -> None:
    result = match_release(["Intro", "Bonus"], tracks("Intro"))
    assert result.verdict is MatchVerdict.EXTRA_TRACKS
    assert result.score == 1.0
    assert result.missing == []
    assert result.extra == ["Bonus"]


def test_incomplete_still_reports_extra_tracks() -> None:
    result = match_release(["One", "Hidden Track"], tracks("One", "Two", "Three", "Four"))
    assert result.verdict is MatchVerdict.INCOMPLETE
    assert result.score == pytest.approx(0.25)
    assert result.missing == ["Two", "Three", "Four"]
    assert result.extra == ["Hidden Track"]


def test_matching_uses_normalized_titles() -> None:
    result = match_release(["INTRO!", "track  a"], tracks("Intro", "Track A"))
    assert result.verdict is MatchVerdict.COMPLETE


def test_nothing_matches() -> None:
    result = match_release(["X"], tracks("A", "B"))
    assert result.verdict is MatchVerdict.INCOMPLETE
    assert result.score == 0.0


def test_duplicate_titles_use_set_semantics() -> None:
    # Two reference tracks share a title, the local release has it once:
    # containment is by set, so nothing is reported missing.
    result = match_release(["Interlude", "Song"], tracks("Interlude", "Song", "Interlude"))
    assert result.verdict is MatchVerdict.COMPLETE
    assert result.score == 1.0


def test_empty_reference_with_local_tracks_is_extra() -> None:
    result = match_release(["Something"], [])
    assert result.verdict is MatchVerdict.EXTRA_TRACKS
    assert result.extra == ["Something"]


def test_both_empty_is_complete() -> None:
    assert match_release([], []).verdict is MatchVerdict.COMPLETE
