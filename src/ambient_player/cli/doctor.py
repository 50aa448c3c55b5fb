"""``ambient-player doctor``: can this machine resolve and play streams?

Each check inspects one runtime prerequisite and reports a
:class:`Check` row.  Rows are rendered as a Rich table, or as aligned
plain lines on stderr when Rich is missing, followed by libmpv install
guidance when the library cannot be found.
"""

from __future__ import annotations

import os
import platform
import sys
from importlib import metadata
from typing import NamedTuple

from ambient_player.cli import exit_codes
from ambient_player.cli.console import console
from ambient_player.infra.mpv_detector import LibmpvStatus, detect_libmpv
from ambient_player.infra.settings import SettingsStore
from ambient_player.version import __version__

_MIN_PYTHON = (3, 10)
_SYSTEM_NAMES = {"Darwin": "macOS"}


class Check(NamedTuple):
    label: str
    value: str
    ok: bool = True


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def _platform_check() -> Check:
    system = platform.system()
    value = (
        f"Python {platform.python_version()} on "
        f"{_SYSTEM_NAMES.get(system, system)} {platform.release()} ({platform.machine()})"
    )
    return Check("Platform", value, sys.version_info[:2] >= _MIN_PYTHON)


def _distribution_check(label: str, distribution: str) -> Check:
    """Report an installed distribution without importing it.

    python-mpv loads libmpv on import, so importing it here would turn a
    missing shared library into an ``OSError`` instead of a table row.
    """
    try:
        return Check(label, metadata.version(distribution))
    except metadata.PackageNotFoundError:
        return Check(label, "NOT INSTALLED", ok=False)


def _ytdlp_check() -> Check:
    try:
        from yt_dlp.version import __version__ as ytdlp_version
    except ImportError:
        return Check("yt-dlp", "NOT INSTALLED", ok=False)
    return Check("yt-dlp", ytdlp_version)


def _libmpv_check(status: LibmpvStatus) -> Check:
    if status.found:
        return Check("libmpv", status.library or "found")
    return Check("libmpv", "not found", ok=False)


def _source_check(store: SettingsStore) -> Check:
    return Check("Source", store.load().source_url)


def _cache_check(store: SettingsStore) -> Check:
    """The cache directory is fine if it exists writable or can be created."""
    cache_dir = store.cache_dir
    if cache_dir.is_dir():
        entries = sum(1 for _ in cache_dir.iterdir())
        return Check("Cache", f"{cache_dir} ({entries} files)", os.access(cache_dir, os.W_OK))
    return Check("Cache", f"{cache_dir} (not created yet)")


def collect_checks(store: SettingsStore, libmpv: LibmpvStatus) -> list[Check]:
    return [
        Check("ambient-player", __version__),
        _platform_check(),
        _ytdlp_check(),
        _distribution_check("python-mpv", "python-mpv"),
        _libmpv_check(libmpv),
        _source_check(store),
        _cache_check(store),
    ]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _render(checks: list[Check]) -> None:
    try:
        from rich.table import Table
    except ModuleNotFoundError:
        console.print("ambient-player doctor")
        for check in checks:
            console.print(f"  {check.label:<16} {check.value:<48} {'OK' if check.ok else 'FAIL'}")
        return

    table = Table(title="ambient-player doctor", header_style="bold cyan", border_style="dim")
    table.add_column("Component", style="bold", min_width=14)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for check in checks:
        table.add_row(
            check.label,
            check.value,
            "[green]OK[/green]" if check.ok else "[red]FAIL[/red]",
        )
    console.print(table)


def run_doctor(store: SettingsStore | None = None) -> int:
    """Run every check and print the summary.

    Returns :data:`exit_codes.GENERAL_ERROR` when any check failed.
    """
    store = store if store is not None else SettingsStore()
    libmpv = detect_libmpv()
    checks = collect_checks(store, libmpv)
    _render(checks)

    if not libmpv.found and libmpv.install_commands:
        console.print("libmpv is not installed. Install it with one of:")
        for command in libmpv.install_commands:
            console.print(f"  {command}")

    if all(check.ok for check in checks):
        console.print("All checks passed.")
        return exit_codes.SUCCESS
    console.print("Some checks failed.")
    return exit_codes.GENERAL_ERROR
