"""Retry/backoff state machine for one playback session.

States
------
``Healthy`` → ``Retrying(n)`` → ``Healthy`` | ``GivenUp`` (terminal)

* Any failure while a retry is pending is ignored (single flight).
* The *n*-th consecutive failure schedules a resume after
  ``2 ** (n - 1)`` seconds and invalidates the cached URL of an
  indirect source.
* The failure after ``max_retries`` consecutive retries gives up: the
  health monitor is stopped and nothing else is scheduled.  Only a new
  session leaves ``GivenUp``.
* A healthy ready transition forgives all previous failures.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ambient_player.core.models import FailureReason, RetryState
from ambient_player.core.protocols import Scheduler, TimerHandle
from ambient_player.core.sources import needs_extraction

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES: int = 3


class RetryController:
    """Owns :class:`RetryState` and reacts to failure events.

    Parameters
    ----------
    scheduler:
        Source of delayed callbacks (the session's event loop).
    invalidate:
        Drops the cached URL for a source.
    reload:
        Re-runs the playback load path for a source with a forced
        refresh; called when a scheduled resume fires.
    give_up:
        Called once when retries are exhausted (stops health checks).
    max_retries:
        Consecutive failures tolerated before giving up.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        invalidate: Callable[[str], None],
        reload: Callable[[str], None],
        give_up: Callable[[], None],
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._scheduler = scheduler
        self._invalidate = invalidate
        self._reload = reload
        self._give_up = give_up
        self._max_retries = max_retries
        self._pending: TimerHandle | None = None
        self.state = RetryState()

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def track(self, source: str) -> None:
        """Remember *source* as the one being played."""
        self.state.current_source = source

    def on_failure(self, reason: FailureReason) -> float | None:
        """Handle one failure event.

        Returns
        -------
        float | None
            The scheduled backoff delay in seconds, or ``None`` when the
            event was ignored or retries are exhausted.
        """
        state = self.state
        if state.is_retrying or state.given_up:
            logger.debug("Ignoring %s failure, retry already pending", reason.value)
            return None

        if state.retry_count >= self._max_retries:
            logger.error("Max retries reached, giving up")
            state.given_up = True
            self._give_up()
            return None

        state.retry_count += 1
        state.is_retrying = True
        logger.info(
            "Retry attempt %d of %d after %s",
            state.retry_count,
            self._max_retries,
            reason.value,
        )

        source = state.current_source
        if source is not None and needs_extraction(source):
            self._invalidate(source)

        delay = float(2 ** (state.retry_count - 1))
        state.delays.append(delay)
        self._pending = self._scheduler.call_later(delay, self._resume)
        return delay

    def on_healthy(self) -> None:
        """Forgive previous failures after a confirmed healthy transition."""
        if self.state.retry_count:
            logger.info("Playback recovered after %d retries", self.state.retry_count)
        self.state.retry_count = 0
        self.state.delays.clear()

    def cancel(self) -> None:
        """Cancel a pending resume, if any."""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self.state.is_retrying = False

    # ------------------------------------------------------------------
    # Scheduled resume
    # ------------------------------------------------------------------

    def _resume(self) -> None:
        self._pending = None
        self.state.is_retrying = False
        source = self.state.current_source
        if source is not None:
            self._reload(source)
