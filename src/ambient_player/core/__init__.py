"""Core / service layer — resolution policy, health checks, retry state.

Rules
-----
* No ``print()`` calls; diagnostics go through :mod:`logging`.
* No direct filesystem, network, or media-engine access — only the
  protocols in :mod:`ambient_player.core.protocols`.
* No imports from ``cli`` or ``infra``.
"""

from ambient_player.core.health_monitor import HealthMonitor
from ambient_player.core.models import (
    ExtractionResult,
    FailureReason,
    IsPlayingChanged,
    PlaybackEvent,
    PlaybackFailed,
    PlaybackState,
    RetryState,
    StateChanged,
    StreamCandidate,
)
from ambient_player.core.playback_session import PlaybackSession
from ambient_player.core.protocols import (
    CandidateExtractor,
    PlaybackEngine,
    ResolutionCache,
    ResolutionLock,
    Scheduler,
)
from ambient_player.core.retry_controller import RetryController
from ambient_player.core.stream_resolver import StreamResolver

__all__: list[str] = [
    "CandidateExtractor",
    "ExtractionResult",
    "FailureReason",
    "HealthMonitor",
    "IsPlayingChanged",
    "PlaybackEngine",
    "PlaybackEvent",
    "PlaybackFailed",
    "PlaybackSession",
    "PlaybackState",
    "ResolutionCache",
    "ResolutionLock",
    "RetryController",
    "RetryState",
    "Scheduler",
    "StateChanged",
    "StreamCandidate",
    "StreamResolver",
]
