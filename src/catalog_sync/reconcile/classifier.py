# catalog_sync/reconcile/classifier.py

"""Decide which release groups take part in catalog completeness checks."""

from __future__ import annotations

from enum import Enum

from catalog_sync.domain.models import ReleaseGroupCandidate


class SkipType(str, Enum):
    """Release-group types that are not albums for completeness purposes.

    Compilations and live recordings are deliberately not listed.
    """

    SINGLE = "single"
    BOOTLEG = "bootleg"
    DEMO = "demo"
    INTERVIEW = "interview"
    BROADCAST = "broadcast"


_SKIP_VALUES = frozenset(t.value for t in SkipType)


def is_skip_type(type_name: str) -> bool:
    return type_name.strip().lower() in _SKIP_VALUES


def should_skip(candidate: ReleaseGroupCandidate) -> str | None:
    """Return the type name that excludes `candidate`, or None to keep it.

    The primary type is checked before the secondary types.
    """
    if candidate.primary_type and is_skip_type(candidate.primary_type):
        return candidate.primary_type

    for secondary in candidate.secondary_types:
        if is_skip_type(secondary):
            return secondary

    return None
