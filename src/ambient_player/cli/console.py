"""CLI console and logging helpers with optional Rich support.

This module intentionally avoids module-level imports of optional UI
dependencies so bootstrap paths (``--help``, ``--version``) remain
functional even when Rich is not installed.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from ambient_player.exceptions import EnvironmentError

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_installed_handler: logging.Handler | None = None


def _load_rich_console_class() -> type[Any]:
	"""Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
	try:
		from rich.console import Console
	except ModuleNotFoundError as exc:
		raise EnvironmentError(
			"rich is not installed. Install with: pip install rich",
		) from exc
	return Console


def get_rich_console() -> Any:
	"""Create a Rich console instance targeting stderr."""
	console_class = _load_rich_console_class()
	return console_class(stderr=True)


class _ConsoleProxy:
	"""Minimal ``print``-compatible proxy with Rich fallback."""

	def print(self, *objects: object) -> None:
		"""Render with Rich when available, else plain stderr print."""
		try:
			rich_console = get_rich_console()
		except EnvironmentError:
			print(*objects, file=sys.stderr)
			return
		rich_console.print(*objects)

	def out(self, text: str) -> None:
		"""Write machine-readable *text* to stdout, unstyled."""
		print(text)


console = _ConsoleProxy()


def configure_logging(level: int = logging.INFO) -> logging.Handler:
	"""Install a single root handler: Rich when available, else plain stderr."""
	global _installed_handler
	try:
		from rich.logging import RichHandler

		handler: logging.Handler = RichHandler(
			console=get_rich_console(),
			show_path=False,
			rich_tracebacks=True,
		)
		handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
	except (ModuleNotFoundError, EnvironmentError):
		handler = logging.StreamHandler(sys.stderr)
		handler.setFormatter(logging.Formatter(_LOG_FORMAT))

	root = logging.getLogger()
	if _installed_handler is not None:
		root.removeHandler(_installed_handler)
	root.addHandler(handler)
	_installed_handler = handler
	root.setLevel(level)
	# urllib3 (pulled in by yt-dlp extras) is chatty at DEBUG.
	logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
	return handler
