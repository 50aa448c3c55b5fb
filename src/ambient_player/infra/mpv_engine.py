"""python-mpv backed implementation of :class:`~ambient_player.core.protocols.PlaybackEngine`.

This module is the **only** place in the codebase that imports ``mpv``.
mpv property changes and events arrive on mpv's own event thread; they
are translated into the closed set of
:mod:`~ambient_player.core.models` playback events and forwarded to the
registered sink, which is responsible for marshalling them onto the
control loop.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ambient_player.core.models import (
    IsPlayingChanged,
    PlaybackEvent,
    PlaybackFailed,
    PlaybackState,
    StateChanged,
)
from ambient_player.exceptions import (
    EnvironmentError,
    LibmpvNotFoundError,
    PlaybackEngineError,
)
from ambient_player.infra.mpv_detector import require_libmpv

logger = logging.getLogger(__name__)


def _load_mpv_module() -> Any:
    """Import ``mpv`` or raise a typed environment error."""
    try:
        import mpv
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "python-mpv is not installed. Install with: pip install python-mpv",
        ) from exc
    except OSError as exc:
        # python-mpv loads libmpv at import time.
        require_libmpv()
        raise LibmpvNotFoundError(
            f"libmpv could not be loaded: {exc}",
            hint="Install the mpv shared library (e.g. libmpv2 / mpv).",
        ) from exc
    return mpv


class MpvPlaybackEngine:
    """Concrete :class:`PlaybackEngine` wrapping one mpv instance.

    Parameters
    ----------
    fullscreen:
        Open the video window fullscreen (passive displays).
    mpv_options:
        Extra options forwarded verbatim to :class:`mpv.MPV`.
    """

    def __init__(self, *, fullscreen: bool = True, **mpv_options: Any) -> None:
        self._mpv = _load_mpv_module()
        self._sink: Callable[[PlaybackEvent], None] | None = None
        self._file_loaded = False

        options: dict[str, Any] = {
            "fullscreen": fullscreen,
            "idle": True,
            # Keep a black window up between loads.
            "force_window": "immediate",
            "background_color": "#000000",
            "osc": False,
            "config": False,
            "input_default_bindings": False,
            "input_vo_keyboard": False,
            # URLs are resolved before they reach mpv.
            "ytdl": False,
            "cache": "auto",
            "log_handler": self._log,
            "loglevel": "warn",
        }
        options.update(mpv_options)
        try:
            self._player = self._mpv.MPV(**options)
        except Exception as exc:
            raise PlaybackEngineError(f"Could not start mpv: {exc}") from exc

        self._player.observe_property("idle-active", self._on_idle_active)
        self._player.observe_property("paused-for-cache", self._on_paused_for_cache)
        self._player.observe_property("core-idle", self._on_core_idle)
        self._player.event_callback("file-loaded")(self._on_file_loaded)
        self._player.event_callback("end-file")(self._on_end_file)

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def set_event_sink(self, sink: Callable[[PlaybackEvent], None] | None) -> None:
        self._sink = sink

    def configure(self, *, muted: bool, loop_forever: bool) -> None:
        self._set("mute", muted)
        self._set("loop_file", "inf" if loop_forever else "no")

    def load(self, url: str) -> None:
        self._file_loaded = False
        try:
            self._player.play(url)
        except Exception as exc:
            raise PlaybackEngineError(f"mpv rejected {url}: {exc}") from exc

    def stop(self) -> None:
        self._command("stop")

    def clear_media(self) -> None:
        self._file_loaded = False
        self._command("playlist-clear")

    def release(self) -> None:
        self._sink = None
        try:
            self._player.terminate()
        except Exception as exc:
            logger.warning("mpv terminate failed: %s", exc)

    # ------------------------------------------------------------------
    # mpv callbacks (mpv event thread)
    # ------------------------------------------------------------------

    def _emit(self, event: PlaybackEvent) -> None:
        sink = self._sink
        if sink is not None:
            sink(event)

    def _on_idle_active(self, _name: str, value: Any) -> None:
        if value:
            self._file_loaded = False
            self._emit(StateChanged(PlaybackState.IDLE))

    def _on_paused_for_cache(self, _name: str, value: Any) -> None:
        if value:
            self._emit(StateChanged(PlaybackState.BUFFERING))
        elif self._file_loaded:
            self._emit(StateChanged(PlaybackState.READY))

    def _on_core_idle(self, _name: str, value: Any) -> None:
        if value is None:
            return
        self._emit(IsPlayingChanged(is_playing=not value))

    def _on_file_loaded(self, _event: Any) -> None:
        self._file_loaded = True
        self._emit(StateChanged(PlaybackState.READY))

    def _on_end_file(self, event: Any) -> None:
        reason = self._end_file_reason(event)
        end_file = self._mpv.MpvEventEndFile
        if reason == end_file.ERROR:
            self._emit(PlaybackFailed(cause="mpv reported a playback error"))
        elif reason == end_file.EOF:
            self._emit(StateChanged(PlaybackState.ENDED))

    @staticmethod
    def _end_file_reason(event: Any) -> Any:
        """Return the end-file reason code across python-mpv versions.

        Older releases hand callbacks a dict (``event["event"]["reason"]``),
        newer ones an event object (``event.data.reason``).
        """
        if isinstance(event, dict):
            data = event.get("event")
        else:
            data = getattr(event, "data", None)
        if isinstance(data, dict):
            return data.get("reason")
        return getattr(data, "reason", None)

    @staticmethod
    def _log(loglevel: str, component: str, message: str) -> None:
        if loglevel in ("error", "fatal"):
            logger.error("mpv/%s: %s", component, message.strip())
        else:
            logger.debug("mpv/%s: %s", component, message.strip())

    # ------------------------------------------------------------------
    # Guarded property / command access
    # ------------------------------------------------------------------

    def _set(self, attr: str, value: object) -> None:
        try:
            setattr(self._player, attr, value)
        except Exception as exc:
            raise PlaybackEngineError(f"mpv.{attr} failed: {exc}") from exc

    def _command(self, *args: object) -> None:
        try:
            self._player.command(*args)
        except Exception as exc:
            raise PlaybackEngineError(f"mpv command {args} failed: {exc}") from exc
