"""Playback health monitor — stall detection by elapsed time.

The monitor only observes.  It never issues engine commands; when the
engine has reported "ready but not advancing" for longer than the stall
timeout it raises a single stall notification and waits to be reset.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ambient_player.core.models import PlaybackState
from ambient_player.core.protocols import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL_SECONDS: float = 1.0
DEFAULT_STALL_TIMEOUT_SECONDS: float = 10.0


class HealthMonitor:
    """Periodic stall check driven by a :class:`Scheduler`.

    Parameters
    ----------
    scheduler:
        Source of delayed callbacks (the session's event loop).
    on_stall:
        Invoked once per stall episode.
    check_interval:
        Seconds between ticks.
    stall_timeout:
        A stall is reported once ``now - stall_since`` exceeds this.
    clock:
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_stall: Callable[[], None],
        *,
        check_interval: float = DEFAULT_CHECK_INTERVAL_SECONDS,
        stall_timeout: float = DEFAULT_STALL_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._scheduler = scheduler
        self._on_stall = on_stall
        self._check_interval = check_interval
        self._stall_timeout = stall_timeout
        self._clock = clock

        self._stall_since: float | None = None
        self._stall_reported = False
        self._timer: TimerHandle | None = None

    @property
    def stall_since(self) -> float | None:
        return self._stall_since

    @property
    def is_running(self) -> bool:
        return self._timer is not None

    # ------------------------------------------------------------------
    # Engine observations
    # ------------------------------------------------------------------

    def on_is_playing_changed(self, is_playing: bool, state: PlaybackState) -> None:
        """Record an ``IsPlayingChanged`` notification."""
        if is_playing:
            self._stall_since = None
            self._stall_reported = False
        elif state is PlaybackState.READY and self._stall_since is None:
            self._stall_since = self._clock()

    def reset(self) -> None:
        """Forget the current stall episode."""
        self._stall_since = None
        self._stall_reported = False

    # ------------------------------------------------------------------
    # Periodic tick
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin ticking.  No-op when already running."""
        if self._timer is None:
            self._timer = self._scheduler.call_later(0, self._tick)

    def stop(self) -> None:
        """Cancel the pending tick."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def restart(self) -> None:
        self.stop()
        self.start()

    def check(self) -> bool:
        """Run one stall check; return ``True`` when a stall was raised."""
        if self._stall_since is None or self._stall_reported:
            return False
        stalled_for = self._clock() - self._stall_since
        if stalled_for <= self._stall_timeout:
            return False
        logger.warning("Stream stalled for %.1fs, requesting retry", stalled_for)
        self._stall_reported = True
        self._on_stall()
        return True

    def _tick(self) -> None:
        self._timer = self._scheduler.call_later(self._check_interval, self._tick)
        self.check()
