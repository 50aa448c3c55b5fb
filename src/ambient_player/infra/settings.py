"""Persisted player settings.

One small JSON file holds the configured source descriptor and the
playback tunables.  Missing keys, a blank source, or an unreadable file
all fall back to defaults; the player must always have something to
play.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ambient_player.core.sources import normalize_source
from ambient_player.exceptions import SettingsError

logger = logging.getLogger(__name__)

HOME_ENV_VAR: str = "AMBIENT_PLAYER_HOME"
SETTINGS_FILE_NAME: str = "settings.json"
CACHE_DIR_NAME: str = "stream_cache"


def ambient_home() -> Path:
    """Return the private working directory (``$AMBIENT_PLAYER_HOME`` wins)."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".ambient-player"


@dataclass(frozen=True, slots=True)
class PlayerSettings:
    """Everything a playback session needs from configuration."""

    source_url: str = normalize_source(None)
    cache_expiration_seconds: float = 300.0
    max_retries: int = 3
    stall_timeout_seconds: float = 10.0
    stall_check_interval_seconds: float = 1.0
    extraction_timeout_seconds: float = 15.0

    def with_source(self, source_url: str | None) -> PlayerSettings:
        return dataclasses.replace(self, source_url=normalize_source(source_url))


class SettingsStore:
    """Reads and writes :class:`PlayerSettings` as JSON.

    Parameters
    ----------
    path:
        Settings file location; defaults to ``<home>/settings.json``.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path: Path = path if path is not None else ambient_home() / SETTINGS_FILE_NAME

    @property
    def cache_dir(self) -> Path:
        return self.path.parent / CACHE_DIR_NAME

    def load(self) -> PlayerSettings:
        """Return stored settings, filling gaps with defaults."""
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return PlayerSettings()
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, exc)
            return PlayerSettings()

        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed settings file %s", self.path)
            return PlayerSettings()
        return self._parse(raw)

    def save(self, settings: PlayerSettings) -> None:
        """Write *settings* to disk.

        Raises
        ------
        SettingsError
            When the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(dataclasses.asdict(settings), indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            raise SettingsError(
                f"Could not write settings to {self.path}: {exc}",
            ) from exc

    def set_source(self, source_url: str | None) -> PlayerSettings:
        """Persist a new source; blank resets to the default stream."""
        updated = self.load().with_source(source_url)
        self.save(updated)
        return updated

    # ------------------------------------------------------------------
    # Parsing (pure)
    # ------------------------------------------------------------------

    @staticmethod
    def _parse(raw: dict[str, Any]) -> PlayerSettings:
        defaults = PlayerSettings()
        source = raw.get("source_url")
        values: dict[str, Any] = {
            "source_url": normalize_source(source if isinstance(source, str) else None),
        }
        for field in dataclasses.fields(PlayerSettings):
            if field.name == "source_url":
                continue
            default = getattr(defaults, field.name)
            value = raw.get(field.name, default)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                if field.name in raw:
                    logger.warning("Invalid %s=%r, using %r", field.name, value, default)
                value = default
            values[field.name] = type(default)(value)
        return PlayerSettings(**values)
