"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols — never on concrete
implementations — preserving the dependency inversion principle.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from ambient_player.core.models import ExtractionResult, PlaybackEvent


class CandidateExtractor(Protocol):
    """Contract for candidate-extraction backends.

    Any object that implements :meth:`extract` with the correct
    signature satisfies this protocol structurally (no explicit
    inheritance required).
    """

    def extract(self, source_url: str) -> ExtractionResult:
        """Return every playable candidate found for *source_url*.

        Implementations issue at most one remote request per call and
        must map all backend-specific exceptions to
        :class:`~ambient_player.exceptions.ExtractionError` subclasses.

        Raises
        ------
        RateLimitedError
            When the remote host answered with HTTP 429.
        StreamNotFoundError
            When the stream is confirmed unavailable.
        NetworkError
            When the remote host could not be reached.
        ExtractionError
            For all other extraction failures.
        """
        ...  # pragma: no cover


class ResolutionCache(Protocol):
    """One resolved-URL entry per source descriptor, with expiry."""

    def get(self, source: str, max_age_seconds: float) -> str | None:
        ...  # pragma: no cover

    def put(self, source: str, resolved_url: str) -> None:
        ...  # pragma: no cover

    def invalidate(self, source: str) -> None:
        ...  # pragma: no cover

    def clear_all(self) -> None:
        ...  # pragma: no cover


class ResolutionLock(Protocol):
    """Staleness-tolerant mutual exclusion keyed by source descriptor."""

    def try_acquire(self, source: str) -> bool:
        ...  # pragma: no cover

    def release(self, source: str) -> None:
        ...  # pragma: no cover


class PlaybackEngine(Protocol):
    """Contract for the adaptive playback backend.

    The core only issues commands; state changes come back through the
    callable registered with :meth:`set_event_sink`.  Implementations
    may invoke the sink from any thread.
    """

    def configure(self, *, muted: bool, loop_forever: bool) -> None:
        ...  # pragma: no cover

    def load(self, url: str) -> None:
        """Replace the current media with *url* and start playing.

        Raises
        ------
        PlaybackEngineError
            When the engine rejects the media.
        """
        ...  # pragma: no cover

    def stop(self) -> None:
        ...  # pragma: no cover

    def clear_media(self) -> None:
        ...  # pragma: no cover

    def release(self) -> None:
        ...  # pragma: no cover

    def set_event_sink(self, sink: Callable[[PlaybackEvent], None] | None) -> None:
        ...  # pragma: no cover


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...  # pragma: no cover


class Scheduler(Protocol):
    """Delayed-callback facility of the control loop.

    :class:`asyncio.AbstractEventLoop` satisfies this protocol.
    """

    def call_later(self, delay: float, callback: Callable[[], object]) -> TimerHandle:
        ...  # pragma: no cover
