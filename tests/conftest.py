"""Shared pytest fixtures and configuration for the ambient-player test suite.

Guidelines
----------
* No internet access in any test.
* yt-dlp and mpv must be mocked at the infra boundary.
* Time never passes for real: clocks and schedulers are fakes.
* Filesystem access only below ``tmp_path``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from ambient_player.core.models import PlaybackEvent
from ambient_player.exceptions import PlaybackEngineError


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class FakeTimer:
    when: float
    delay: float
    callback: Callable[[], object]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic stand-in for ``loop.call_later``."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], object]) -> FakeTimer:
        timer = FakeTimer(when=self.clock.now + delay, delay=delay, callback=callback)
        self.timers.append(timer)
        return timer

    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due timers in order."""
        target = self.clock.now + seconds
        while True:
            due = [t for t in self.pending() if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.clock.now = max(self.clock.now, timer.when)
            timer.fired = True
            timer.callback()
        self.clock.now = target


# ---------------------------------------------------------------------------
# Playback engine
# ---------------------------------------------------------------------------

@dataclass
class FakeEngine:
    """Records every command issued by the core.

    Like a terminated mpv instance, a released engine rejects further use.
    """

    loaded: list[str] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    configured: dict[str, bool] = field(default_factory=dict)
    released: bool = False
    sink: Callable[[PlaybackEvent], None] | None = None
    fail_load: Exception | None = None
    fail_stop: Exception | None = None

    def _check_open(self) -> None:
        if self.released:
            raise PlaybackEngineError("engine already released")

    def configure(self, *, muted: bool, loop_forever: bool) -> None:
        self._check_open()
        self.configured = {"muted": muted, "loop_forever": loop_forever}

    def load(self, url: str) -> None:
        self._check_open()
        if self.fail_load is not None:
            raise self.fail_load
        self.loaded.append(url)

    def stop(self) -> None:
        self._check_open()
        if self.fail_stop is not None:
            raise self.fail_stop
        self.commands.append("stop")

    def clear_media(self) -> None:
        self.commands.append("clear_media")

    def release(self) -> None:
        self.released = True

    def set_event_sink(self, sink: Callable[[PlaybackEvent], None] | None) -> None:
        self.sink = sink


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> FakeScheduler:
    return FakeScheduler(clock)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "stream_cache"


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep every test away from the real ``~/.ambient-player``."""
    monkeypatch.setenv("AMBIENT_PLAYER_HOME", str(tmp_path / "home"))


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """Undo handlers and levels installed by ``configure_logging``."""
    from ambient_player.cli import console as console_module

    root = logging.getLogger()
    level = root.level
    yield
    if console_module._installed_handler is not None:
        root.removeHandler(console_module._installed_handler)
        console_module._installed_handler = None
    root.setLevel(level)
