"""Infrastructure: libmpv detection and platform guidance.

python-mpv is only a binding; playback additionally needs the libmpv
shared library.  This module locates it without importing ``mpv`` (which
would fail hard when the library is absent) and offers
platform-specific installation guidance when it is missing.

Rules
-----
* Detection via :func:`ctypes.util.find_library` only — no loading.
* No automatic installation.
* No ``print()`` — callers handle user-facing output.
"""

from __future__ import annotations

import ctypes.util
import platform
from dataclasses import dataclass

from ambient_player.exceptions import LibmpvNotFoundError

# Library names python-mpv itself tries, per platform.
_LIBRARY_NAMES: tuple[str, ...] = ("mpv", "mpv-2", "libmpv-2", "mpv-1")


# ---------------------------------------------------------------------------
# Detection result
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class LibmpvStatus:
    """Result of a libmpv detection probe.

    Attributes
    ----------
    found : bool
        Whether a libmpv shared library was located.
    library : str | None
        Library file name as reported by the platform loader, or ``None``.
    version_hint : str
        Human-readable status string (e.g. ``"found libmpv.so.2"``).
    install_commands : tuple[str, ...]
        Suggested shell commands for installing libmpv on the current
        platform.  Empty when libmpv is already present.
    """

    found: bool
    library: str | None
    version_hint: str
    install_commands: tuple[str, ...]


# ---------------------------------------------------------------------------
# Detection logic
# ---------------------------------------------------------------------------

def detect_libmpv() -> LibmpvStatus:
    """Probe the system for a libmpv shared library.

    Returns a :class:`LibmpvStatus` regardless of whether libmpv is
    present — the caller decides whether to abort or merely warn.
    """
    for name in _LIBRARY_NAMES:
        result = ctypes.util.find_library(name)
        if result:
            return LibmpvStatus(
                found=True,
                library=result,
                version_hint=f"found {result}",
                install_commands=(),
            )

    return LibmpvStatus(
        found=False,
        library=None,
        version_hint="not found",
        install_commands=_platform_install_commands(),
    )


def require_libmpv() -> str:
    """Locate libmpv or raise :class:`LibmpvNotFoundError`."""
    status = detect_libmpv()
    if not status.found or status.library is None:
        hint_lines: list[str] = []
        if status.install_commands:
            hint_lines.append("Install libmpv using one of:")
            hint_lines.extend(f"  {cmd}" for cmd in status.install_commands)
        raise LibmpvNotFoundError(
            "libmpv is not installed or not on the library path.",
            hint="\n".join(hint_lines) if hint_lines else None,
        )
    return status.library


# ---------------------------------------------------------------------------
# Platform-specific install guidance
# ---------------------------------------------------------------------------

def _platform_install_commands() -> tuple[str, ...]:
    """Return install commands appropriate for the current OS."""
    system = platform.system().lower()
    if system == "windows":
        return (
            "winget install mpv",
            "choco install mpvio.install",
        )
    if system == "linux":
        return (
            "sudo apt install libmpv2",
            "sudo dnf install mpv-libs",
            "sudo pacman -S mpv",
        )
    if system == "darwin":
        return ("brew install mpv",)
    return ("Please install mpv from https://mpv.io/installation/",)
