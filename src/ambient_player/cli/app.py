"""CLI application entry point and command routing for ambient-player.

This module is the **sole error boundary** for the entire application.
It catches :class:`~ambient_player.exceptions.AmbientPlayerError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages via Rich and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — all work is delegated to the core and
  infrastructure layers.
* ``print()`` is forbidden outside the CLI layer; the console proxy is
  used exclusively.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from ambient_player.cli import exit_codes
from ambient_player.cli.console import configure_logging, console
from ambient_player.core.sources import validate_source
from ambient_player.core.stream_resolver import StreamResolver
from ambient_player.exceptions import AmbientPlayerError
from ambient_player.infra.settings import PlayerSettings, SettingsStore
from ambient_player.version import __version__

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    Commands:
    * ``ambient-player play [--source URL]``
    * ``ambient-player resolve URL [--force]``
    * ``ambient-player clear-cache``
    * ``ambient-player config show | set-source URL``
    * ``ambient-player doctor``
    """
    parser = argparse.ArgumentParser(
        prog="ambient-player",
        description="Always-on ambient video player for passive displays.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug output.",
    )
    verbosity.add_argument(
        "-q", "--quiet", action="store_true", help="Log warnings and errors only.",
    )

    commands = parser.add_subparsers(dest="command")

    play = commands.add_parser("play", help="Play the configured source until interrupted.")
    play.add_argument("--source", default=None, help="Play this URL instead of the configured one.")

    resolve = commands.add_parser("resolve", help="Resolve a source URL and print the playable URL.")
    resolve.add_argument("url", help="Video page or manifest URL.")
    resolve.add_argument(
        "--force", action="store_true", help="Ignore the cache and extract again.",
    )

    commands.add_parser("clear-cache", help="Delete every cached URL and lock.")

    config = commands.add_parser("config", help="Show or change persisted settings.")
    config_commands = config.add_subparsers(dest="config_command")
    config_commands.add_parser("show", help="Print the current settings.")
    set_source = config_commands.add_parser("set-source", help="Persist the source URL.")
    set_source.add_argument("url", help="New source URL; an empty string restores the default.")

    commands.add_parser("doctor", help="Run environment diagnostics.")
    return parser


# ---------------------------------------------------------------------------
# Wiring helpers
# ---------------------------------------------------------------------------

def _build_resolver(settings: PlayerSettings, cache_dir: Path) -> StreamResolver:
    """Assemble the resolver with its filesystem cache/lock and yt-dlp."""
    from ambient_player.infra.stream_store import FileResolutionCache, FileResolutionLock
    from ambient_player.infra.ytdlp_extractor import YtDlpCandidateExtractor

    return StreamResolver(
        YtDlpCandidateExtractor(timeout=settings.extraction_timeout_seconds),
        FileResolutionCache(cache_dir),
        FileResolutionLock(cache_dir, timeout=settings.extraction_timeout_seconds),
    )


async def _run_player(settings: PlayerSettings, cache_dir: Path) -> None:
    """Run one playback session until SIGINT/SIGTERM."""
    from ambient_player.core.playback_session import PlaybackSession
    from ambient_player.infra.mpv_engine import MpvPlaybackEngine

    session = PlaybackSession(
        settings.source_url,
        MpvPlaybackEngine,
        _build_resolver(settings, cache_dir),
        cache_expiration_seconds=settings.cache_expiration_seconds,
        max_retries=settings.max_retries,
        stall_timeout=settings.stall_timeout_seconds,
        check_interval=settings.stall_check_interval_seconds,
    )

    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, stop_requested.set)
    except (NotImplementedError, RuntimeError):
        # Windows event loops have no signal handler support.
        pass

    session.start()
    try:
        await stop_requested.wait()
    finally:
        session.stop()


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_play(store: SettingsStore, source: str | None) -> int:
    settings = store.load()
    if source is not None:
        settings = settings.with_source(validate_source(source))
    console.print(f"[bold]Playing[/bold]  {settings.source_url}")
    asyncio.run(_run_player(settings, store.cache_dir))
    return exit_codes.SUCCESS


def _handle_resolve(store: SettingsStore, url: str, force: bool) -> int:
    source = validate_source(url)
    settings = store.load()
    resolver = _build_resolver(settings, store.cache_dir)
    resolved = resolver.resolve(
        source,
        force_refresh=force,
        cache_expiration_seconds=settings.cache_expiration_seconds,
    )
    if resolved is None:
        console.print(
            "[bold red]No playable stream resolved.[/bold red] "
            "Another resolution may be running, or extraction failed; "
            "rerun with -v for details."
        )
        return exit_codes.GENERAL_ERROR
    console.out(resolved)
    return exit_codes.SUCCESS


def _handle_clear_cache(store: SettingsStore) -> int:
    _build_resolver(store.load(), store.cache_dir).clear_all()
    console.print("[green]Stream cache cleared.[/green]")
    return exit_codes.SUCCESS


def _handle_config(store: SettingsStore, args: argparse.Namespace) -> int:
    if args.config_command == "set-source":
        url = args.url.strip()
        updated = store.set_source(validate_source(url) if url else None)
        console.print(f"[green]Source set to[/green] {updated.source_url}")
        return exit_codes.SUCCESS

    settings = store.load()
    console.print(f"[bold]Settings file[/bold]  {store.path}")
    for name, value in (
        ("source_url", settings.source_url),
        ("cache_expiration_seconds", settings.cache_expiration_seconds),
        ("max_retries", settings.max_retries),
        ("stall_timeout_seconds", settings.stall_timeout_seconds),
        ("stall_check_interval_seconds", settings.stall_check_interval_seconds),
        ("extraction_timeout_seconds", settings.extraction_timeout_seconds),
    ):
        console.print(f"  {name} = {value}")
    return exit_codes.SUCCESS


def _handle_doctor(store: SettingsStore) -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from ambient_player.cli.doctor import run_doctor

    return run_doctor(store)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None, store: SettingsStore | None = None) -> int:
    """Run the ambient-player CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.
    store:
        Settings store override; defaults to the one under the
        ambient-player home directory.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS

    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    configure_logging(level)

    store = store if store is not None else SettingsStore()

    if args.command == "play":
        return _handle_play(store, args.source)
    if args.command == "resolve":
        return _handle_resolve(store, args.url, args.force)
    if args.command == "clear-cache":
        return _handle_clear_cache(store)
    if args.command == "config":
        return _handle_config(store, args)
    return _handle_doctor(store)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except AmbientPlayerError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        logger.debug("Unhandled exception", exc_info=True)
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
