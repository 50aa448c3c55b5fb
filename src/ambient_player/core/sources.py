"""Source descriptor classification.

A source is *direct* when it already names an adaptive manifest and can
be handed to the playback engine unchanged; anything else is *indirect*
and must go through candidate extraction.  Classification is a pure
function of the string.
"""

from __future__ import annotations

import hashlib
from pathlib import PurePosixPath
from urllib.parse import urlparse

from ambient_player.exceptions import InvalidSourceError

DEFAULT_SOURCE_URL: str = (
    "https://devstreaming-cdn.apple.com/videos/streaming/examples/"
    "bipbop_adv_example_hevc/master.m3u8"
)
"""Public HLS test stream played when no source is configured."""

_MANIFEST_SUFFIXES: frozenset[str] = frozenset({".m3u8", ".mpd"})


def is_direct(source: str) -> bool:
    """Return ``True`` when *source* points at an adaptive manifest."""
    path = urlparse(source.strip()).path
    return PurePosixPath(path).suffix.lower() in _MANIFEST_SUFFIXES


def needs_extraction(source: str) -> bool:
    """Return ``True`` when *source* must be resolved before playback."""
    return not is_direct(source)


def cache_key(source: str) -> str:
    """Stable, filesystem-safe key for *source*."""
    return hashlib.sha256(source.encode("utf-8")).hexdigest()[:16]


def validate_source(source: str) -> str:
    """Return the stripped *source* or raise :class:`InvalidSourceError`."""
    stripped = source.strip()
    if not stripped:
        raise InvalidSourceError("Source URL must not be empty.")
    if not stripped.startswith(("http://", "https://")):
        raise InvalidSourceError(
            f"Invalid source URL: {stripped}",
            hint="URL must start with http:// or https://",
        )
    return stripped


def normalize_source(source: str | None) -> str:
    """Return the stripped source, or the default when blank."""
    if source is None:
        return DEFAULT_SOURCE_URL
    stripped = source.strip()
    return stripped or DEFAULT_SOURCE_URL
