"""Infrastructure layer — external system integration.

This layer wraps all interaction with yt-dlp, mpv, the filesystem and
the operating system.  Every raw third-party exception must be caught
here and re-raised as an
:class:`~ambient_player.exceptions.AmbientPlayerError` subclass, or
absorbed where the contract says so (cache and lock I/O).

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* ``yt_dlp`` and ``mpv`` are imported lazily, at call time.
"""

from ambient_player.infra.mpv_detector import LibmpvStatus, detect_libmpv, require_libmpv
from ambient_player.infra.mpv_engine import MpvPlaybackEngine
from ambient_player.infra.settings import PlayerSettings, SettingsStore, ambient_home
from ambient_player.infra.stream_store import FileResolutionCache, FileResolutionLock
from ambient_player.infra.ytdlp_extractor import YtDlpCandidateExtractor

__all__: list[str] = [
    "FileResolutionCache",
    "FileResolutionLock",
    "LibmpvStatus",
    "MpvPlaybackEngine",
    "PlayerSettings",
    "SettingsStore",
    "YtDlpCandidateExtractor",
    "ambient_home",
    "detect_libmpv",
    "require_libmpv",
]
