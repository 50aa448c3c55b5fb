"""Allow ``python -m ambient_player`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m ambient_player`` behaves identically to the
``ambient-player`` console script.
"""

from __future__ import annotations

from ambient_player.cli.app import cli

if __name__ == "__main__":
    cli()
