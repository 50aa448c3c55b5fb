"""Domain models for ambient-player.

Extraction results are **frozen** dataclasses — immutable value objects
with no behaviour beyond data access.  Playback events form a closed set
of variants delivered on the session's single inbound event channel.
The only mutable model is :class:`RetryState`, owned exclusively by the
:class:`~ambient_player.core.retry_controller.RetryController`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union


# ---------------------------------------------------------------------------
# Extraction results
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class StreamCandidate:
    """A single progressive media URL reported by the extraction backend."""

    url: str
    """Directly playable media URL."""

    bitrate: int | None = None
    """Declared bitrate (any consistent unit), or ``None`` if unknown."""


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Everything the extraction backend found for one source.

    Candidate tuples keep the backend's return order, which breaks
    bitrate ties during selection.
    """

    manifest_url: str | None = None
    """Adaptive manifest (HLS/DASH) URL, preferred over everything else."""

    muxed_candidates: tuple[StreamCandidate, ...] = ()
    """Streams carrying both audio and video."""

    video_only_candidates: tuple[StreamCandidate, ...] = ()
    """Streams carrying video without audio."""

    def __bool__(self) -> bool:
        return bool(
            self.manifest_url
            or self.muxed_candidates
            or self.video_only_candidates
        )


# ---------------------------------------------------------------------------
# Playback engine events
# ---------------------------------------------------------------------------

class PlaybackState(enum.Enum):
    """Coarse playback-engine state as reported by ``StateChanged``."""

    IDLE = "idle"
    BUFFERING = "buffering"
    READY = "ready"
    ENDED = "ended"


@dataclass(frozen=True, slots=True)
class StateChanged:
    state: PlaybackState


@dataclass(frozen=True, slots=True)
class IsPlayingChanged:
    is_playing: bool


@dataclass(frozen=True, slots=True)
class PlaybackFailed:
    cause: str


PlaybackEvent = Union[StateChanged, IsPlayingChanged, PlaybackFailed]
"""Closed set of events a playback engine may emit."""


# ---------------------------------------------------------------------------
# Retry bookkeeping
# ---------------------------------------------------------------------------

class FailureReason(enum.Enum):
    """Why the retry controller was notified."""

    EXTRACTION = "extraction"
    PLAYBACK_ERROR = "playback_error"
    STALL = "stall"


@dataclass(slots=True)
class RetryState:
    """Mutable per-session retry bookkeeping."""

    current_source: str | None = None
    retry_count: int = 0
    is_retrying: bool = False
    given_up: bool = False
    delays: list[float] = field(default_factory=list)
    """Backoff delays scheduled since the last healthy transition."""
