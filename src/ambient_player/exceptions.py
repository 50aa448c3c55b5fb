"""Custom exception hierarchy for ambient-player.

All exceptions that cross layer boundaries must inherit from
:class:`AmbientPlayerError`.  Raw third-party exceptions (e.g. from
yt-dlp or python-mpv) must NEVER propagate beyond the infrastructure
layer — they must be caught and re-raised as a typed subclass defined
here.

Inside the core, extraction and playback failures are absorbed and
turned into cache misses or retry events; only the CLI error boundary
ever renders one of these to the user.

Hierarchy
---------
AmbientPlayerError
├── InvalidSourceError
├── ExtractionError              (kind = UNKNOWN)
│   ├── RateLimitedError         (kind = RATE_LIMITED)
│   ├── StreamNotFoundError      (kind = NOT_FOUND)
│   └── NetworkError             (kind = NETWORK)
├── PlaybackEngineError
├── SettingsError
├── LibmpvNotFoundError
└── EnvironmentError
"""

from __future__ import annotations

import enum


class AmbientPlayerError(Exception):
    """Base exception for all ambient-player errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Source validation -----------------------------------------------------

class InvalidSourceError(AmbientPlayerError):
    """Raised when a source descriptor fails validation."""


# --- Extraction ------------------------------------------------------------

class FailureKind(enum.Enum):
    """Typed reason attached to every :class:`ExtractionError`."""

    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    UNKNOWN = "unknown"


class ExtractionError(AmbientPlayerError):
    """Raised when candidate extraction fails for an indirect source."""

    kind: FailureKind = FailureKind.UNKNOWN


class RateLimitedError(ExtractionError):
    """Raised when the remote host answered with HTTP 429."""

    kind = FailureKind.RATE_LIMITED


class StreamNotFoundError(ExtractionError):
    """Raised when the target stream is unavailable (offline, private, removed)."""

    kind = FailureKind.NOT_FOUND


class NetworkError(ExtractionError):
    """Raised when the extraction request could not reach the remote host."""

    kind = FailureKind.NETWORK


# --- Playback --------------------------------------------------------------

class PlaybackEngineError(AmbientPlayerError):
    """Raised when the playback engine rejects a command."""


# --- Configuration ---------------------------------------------------------

class SettingsError(AmbientPlayerError):
    """Raised when the settings file cannot be written."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(AmbientPlayerError):
    """Raised when a required runtime dependency is not available."""


class LibmpvNotFoundError(AmbientPlayerError):
    """Raised when the libmpv shared library cannot be located."""


def append_ytdlp_upgrade_suggestion(hint: str) -> str:
    """Append yt-dlp upgrade guidance to an existing hint text.

    The suggestion is appended only once and preserves the original
    hint content verbatim.
    """
    marker = "Also try updating yt-dlp:"
    if marker in hint:
        return hint
    return "\n".join(
        (
            hint,
            marker,
            "    pip install --upgrade yt-dlp",
        )
    )
