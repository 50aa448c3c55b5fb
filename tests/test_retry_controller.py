"""Tests for RetryController (core/retry_controller.py).

Collaborators are plain recorders; the scheduler is the fake from
``conftest``.
"""

from __future__ import annotations

import pytest
from conftest import FakeScheduler

from ambient_player.core.models import FailureReason
from ambient_player.core.retry_controller import RetryController

INDIRECT = "https://www.youtube.com/watch?v=jfKfPfyJRdk"
DIRECT = "https://cdn.example.com/live/master.m3u8"


class Recorder:
    def __init__(self) -> None:
        self.invalidated: list[str] = []
        self.reloaded: list[str] = []
        self.gave_up = 0

    def invalidate(self, source: str) -> None:
        self.invalidated.append(source)

    def reload(self, source: str) -> None:
        self.reloaded.append(source)

    def give_up(self) -> None:
        self.gave_up += 1


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


def _controller(
    scheduler: FakeScheduler, recorder: Recorder, source: str = INDIRECT,
) -> RetryController:
    controller = RetryController(
        scheduler,
        invalidate=recorder.invalidate,
        reload=recorder.reload,
        give_up=recorder.give_up,
        max_retries=3,
    )
    controller.track(source)
    return controller


def _fail_and_resume(controller: RetryController, scheduler: FakeScheduler) -> float | None:
    delay = controller.on_failure(FailureReason.PLAYBACK_ERROR)
    if delay is not None:
        scheduler.advance(delay)
    return delay


class TestBackoff:
    def test_delays_double(self, scheduler: FakeScheduler, recorder: Recorder) -> None:
        controller = _controller(scheduler, recorder)

        delays = [_fail_and_resume(controller, scheduler) for _ in range(3)]

        assert delays == [1.0, 2.0, 4.0]
        assert controller.state.delays == [1.0, 2.0, 4.0]
        assert controller.state.retry_count == 3

    def test_resume_reloads_after_delay(
        self, scheduler: FakeScheduler, recorder: Recorder,
    ) -> None:
        controller = _controller(scheduler, recorder)
        controller.on_failure(FailureReason.STALL)
        assert controller.state.is_retrying

        scheduler.advance(0.9)
        assert recorder.reloaded == []
        scheduler.advance(0.1)
        assert recorder.reloaded == [INDIRECT]
        assert not controller.state.is_retrying


class TestGiveUp:
    def test_fourth_failure_gives_up(
        self, scheduler: FakeScheduler, recorder: Recorder,
    ) -> None:
        controller = _controller(scheduler, recorder)
        for _ in range(3):
            _fail_and_resume(controller, scheduler)

        assert controller.on_failure(FailureReason.EXTRACTION) is None
        assert controller.state.given_up
        assert recorder.gave_up == 1
        assert scheduler.pending() == []
        assert len(recorder.reloaded) == 3

    def test_given_up_is_terminal(
        self, scheduler: FakeScheduler, recorder: Recorder,
    ) -> None:
        controller = _controller(scheduler, recorder)
        for _ in range(4):
            _fail_and_resume(controller, scheduler)

        for reason in FailureReason:
            assert controller.on_failure(reason) is None
        controller.on_healthy()
        assert controller.on_failure(FailureReason.STALL) is None

        assert recorder.gave_up == 1
        assert scheduler.pending() == []


class TestSingleFlight:
    def test_failures_while_retrying_are_ignored(
        self, scheduler: FakeScheduler, recorder: Recorder,
    ) -> None:
        controller = _controller(scheduler, recorder)
        assert controller.on_failure(FailureReason.PLAYBACK_ERROR) == 1.0
        assert controller.on_failure(FailureReason.STALL) is None
        assert controller.on_failure(FailureReason.EXTRACTION) is None

        assert controller.state.retry_count == 1
        assert len(scheduler.pending()) == 1


class TestInvalidation:
    def test_indirect_source_is_invalidated(
        self, scheduler: FakeScheduler, recorder: Recorder,
    ) -> None:
        controller = _controller(scheduler, recorder, INDIRECT)
        controller.on_failure(FailureReason.PLAYBACK_ERROR)
        assert recorder.invalidated == [INDIRECT]

    def test_direct_source_is_not_invalidated(
        self, scheduler: FakeScheduler, recorder: Recorder,
    ) -> None:
        controller = _controller(scheduler, recorder, DIRECT)
        controller.on_failure(FailureReason.PLAYBACK_ERROR)
        assert recorder.invalidated == []


class TestRecovery:
    def test_healthy_resets_budget(
        self, scheduler: FakeScheduler, recorder: Recorder,
    ) -> None:
        controller = _controller(scheduler, recorder)
        _fail_and_resume(controller, scheduler)
        _fail_and_resume(controller, scheduler)
        controller.on_healthy()

        assert controller.state.retry_count == 0
        assert controller.state.delays == []
        assert _fail_and_resume(controller, scheduler) == 1.0

    def test_cancel_drops_pending_resume(
        self, scheduler: FakeScheduler, recorder: Recorder,
    ) -> None:
        controller = _controller(scheduler, recorder)
        controller.on_failure(FailureReason.PLAYBACK_ERROR)
        controller.cancel()

        assert not controller.state.is_retrying
        assert scheduler.pending() == []
        scheduler.advance(10)
        assert recorder.reloaded == []
