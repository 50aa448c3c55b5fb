"""Playback session — the orchestrator behind one attached display.

A session wires the stream resolver, the playback engine, the health
monitor and the retry controller together on a single asyncio event
loop (the control flow).  Resolution work runs in a thread pool and is
awaited, so the loop never blocks on network or filesystem I/O.

Lifecycle is explicit: :meth:`PlaybackSession.start` when the display
attaches, :meth:`PlaybackSession.stop` when it detaches.  Stopping
cancels every in-flight resolution, every scheduled callback, and
releases the engine.  Each start builds its own engine from the factory,
so a session started again begins from a clean ``Healthy`` state on a
live engine.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Callable, Coroutine
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any

from ambient_player.core.health_monitor import (
    DEFAULT_CHECK_INTERVAL_SECONDS,
    DEFAULT_STALL_TIMEOUT_SECONDS,
    HealthMonitor,
)
from ambient_player.core.models import (
    FailureReason,
    IsPlayingChanged,
    PlaybackEvent,
    PlaybackFailed,
    PlaybackState,
    StateChanged,
)
from ambient_player.core.protocols import PlaybackEngine, Scheduler
from ambient_player.core.retry_controller import DEFAULT_MAX_RETRIES, RetryController
from ambient_player.core.sources import needs_extraction
from ambient_player.core.stream_resolver import (
    DEFAULT_CACHE_EXPIRATION_SECONDS,
    StreamResolver,
)
from ambient_player.exceptions import PlaybackEngineError

logger = logging.getLogger(__name__)


class PlaybackSession:
    """Keeps one source playing on one engine until stopped.

    Parameters
    ----------
    source:
        The source descriptor to play.
    engine_factory:
        Builds a fresh :class:`PlaybackEngine` for every :meth:`start`;
        the engine is released on :meth:`stop` and never reused.
    resolver:
        Shared :class:`StreamResolver`; its cache and lock outlive the
        session.
    scheduler:
        Delayed-callback source for health ticks and backoff resumes.
        Defaults to the running event loop.
    executor:
        Pool used for resolution I/O.  When omitted the session creates
        (and shuts down) its own.
    """

    def __init__(
        self,
        source: str,
        engine_factory: Callable[[], PlaybackEngine],
        resolver: StreamResolver,
        *,
        scheduler: Scheduler | None = None,
        executor: Executor | None = None,
        cache_expiration_seconds: float = DEFAULT_CACHE_EXPIRATION_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        stall_timeout: float = DEFAULT_STALL_TIMEOUT_SECONDS,
        check_interval: float = DEFAULT_CHECK_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._engine_factory = engine_factory
        self._engine: PlaybackEngine | None = None
        self._resolver = resolver
        self._scheduler = scheduler
        self._executor = executor
        self._owns_executor = executor is None
        self._cache_expiration_seconds = cache_expiration_seconds
        self._max_retries = max_retries
        self._stall_timeout = stall_timeout
        self._check_interval = check_interval
        self._clock = clock

        self._loop: asyncio.AbstractEventLoop | None = None
        self._events: asyncio.Queue[PlaybackEvent] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._engine_state = PlaybackState.IDLE
        self._monitor: HealthMonitor | None = None
        self._retry: RetryController | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def source(self) -> str:
        return self._source

    @property
    def is_running(self) -> bool:
        return self._loop is not None

    @property
    def monitor(self) -> HealthMonitor | None:
        return self._monitor

    @property
    def retry(self) -> RetryController | None:
        return self._retry

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Attach to the running loop and begin playback.

        Must be called from a coroutine running on the control loop.
        """
        if self._loop is not None:
            return
        loop = asyncio.get_running_loop()
        engine = self._engine_factory()
        self._engine = engine
        self._loop = loop
        scheduler: Scheduler = self._scheduler if self._scheduler is not None else loop

        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=2, thread_name_prefix="ambient-resolve",
            )
            self._owns_executor = True

        self._engine_state = PlaybackState.IDLE
        self._monitor = HealthMonitor(
            scheduler,
            self._on_stall,
            check_interval=self._check_interval,
            stall_timeout=self._stall_timeout,
            clock=self._clock,
        )
        self._retry = RetryController(
            scheduler,
            invalidate=self._resolver.invalidate,
            reload=self._reload,
            give_up=self._monitor.stop,
            max_retries=self._max_retries,
        )

        self._events = asyncio.Queue()
        self._consumer = loop.create_task(self._consume_events())
        engine.configure(muted=True, loop_forever=True)
        engine.set_event_sink(self.post_event)

        logger.info("Session started for %s", self._source)
        self.load_stream(self._source)
        self._monitor.start()

    def stop(self) -> None:
        """Tear the session down.  Safe to call more than once."""
        if self._loop is None:
            return
        logger.info("Session stopping")

        if self._retry is not None:
            self._retry.cancel()
        if self._monitor is not None:
            self._monitor.stop()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        if self._consumer is not None:
            self._consumer.cancel()
            self._consumer = None

        if self._engine is not None:
            self._engine.set_event_sink(None)
            self._engine.release()
            self._engine = None

        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

        self._retry = None
        self._monitor = None
        self._events = None
        self._loop = None

    async def drain(self) -> None:
        """Wait until every in-flight resolution task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Inbound event channel
    # ------------------------------------------------------------------

    def post_event(self, event: PlaybackEvent) -> None:
        """Queue an engine event.  Safe to call from any thread."""
        loop, queue = self._loop, self._events
        if loop is None or queue is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(queue.put_nowait, event)

    def handle_event(self, event: PlaybackEvent) -> None:
        """Dispatch one engine event on the control loop."""
        if self._monitor is None or self._retry is None:
            return

        if isinstance(event, StateChanged):
            self._engine_state = event.state
            logger.debug("Player %s", event.state.value)
            if event.state is PlaybackState.READY:
                self._monitor.reset()
                self._retry.on_healthy()
        elif isinstance(event, IsPlayingChanged):
            self._monitor.on_is_playing_changed(event.is_playing, self._engine_state)
        elif isinstance(event, PlaybackFailed):
            logger.error("Player error: %s", event.cause)
            self._retry.on_failure(FailureReason.PLAYBACK_ERROR)

    async def _consume_events(self) -> None:
        assert self._events is not None
        queue = self._events
        while True:
            event = await queue.get()
            try:
                self.handle_event(event)
            except Exception:
                logger.exception("Error handling playback event %r", event)

    # ------------------------------------------------------------------
    # Load path
    # ------------------------------------------------------------------

    def load_stream(self, source: str, force_refresh: bool = False) -> None:
        """Resolve *source* in the background and hand it to the engine."""
        if self._retry is None:
            return
        self._retry.track(source)
        logger.info("Loading stream: %s", source)
        self._spawn(self._load(source, force_refresh))

    async def _load(self, source: str, force_refresh: bool) -> None:
        try:
            url = await self._resolve_for_playback(source, force_refresh)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Error loading stream %s", source)
            url = None

        if url is None:
            logger.error("Failed to extract stream URL for %s", source)
            self._fail(FailureReason.EXTRACTION)
            return
        self._play(url)

    async def _resolve_for_playback(self, source: str, force_refresh: bool) -> str | None:
        if not needs_extraction(source):
            return source
        if force_refresh:
            return await self._resolve(source, True)

        cached = await self._run_io(
            self._resolver.cached_url, source, self._cache_expiration_seconds,
        )
        if cached is None:
            return await self._resolve(source, True)

        # Serve the cached URL now and warm the cache for the next attempt.
        self._spawn(self._revalidate(source))
        return cached

    async def _revalidate(self, source: str) -> None:
        try:
            await self._resolve(source, True)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.debug("Background refresh of %s failed", source, exc_info=True)

    async def _resolve(self, source: str, force_refresh: bool) -> str | None:
        return await self._run_io(
            self._resolver.resolve,
            source,
            force_refresh,
            self._cache_expiration_seconds,
        )

    async def _run_io(self, func: Callable[..., str | None], *args: Any) -> str | None:
        assert self._loop is not None
        return await self._loop.run_in_executor(
            self._executor, functools.partial(func, *args),
        )

    def _play(self, url: str) -> None:
        if self._engine is None:
            return
        logger.info("Playing stream: %s", url)
        try:
            self._engine.load(url)
        except PlaybackEngineError as exc:
            logger.error("Error playing stream: %s", exc)
            self._fail(FailureReason.PLAYBACK_ERROR)

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------

    def _fail(self, reason: FailureReason) -> None:
        if self._retry is not None:
            self._retry.on_failure(reason)

    def _on_stall(self) -> None:
        self._fail(FailureReason.STALL)

    def _reload(self, source: str) -> None:
        if self._monitor is None or self._engine is None:
            return
        self._monitor.reset()
        try:
            self._engine.stop()
            self._engine.clear_media()
        except PlaybackEngineError as exc:
            # The fresh load below replaces whatever the engine still holds.
            logger.warning("Could not clear player before reload: %s", exc)
        self.load_stream(source, force_refresh=True)
        self._monitor.restart()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        assert self._loop is not None
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
