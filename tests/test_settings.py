"""Tests for persisted settings (infra/settings.py)."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from ambient_player.core.sources import DEFAULT_SOURCE_URL
from ambient_player.exceptions import SettingsError
from ambient_player.infra.settings import PlayerSettings, SettingsStore, ambient_home

SOURCE = "https://www.youtube.com/watch?v=jfKfPfyJRdk"


@pytest.fixture
def store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "cfg" / "settings.json")


def _write(store: SettingsStore, payload: object) -> None:
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.path.write_text(json.dumps(payload), encoding="utf-8")


class TestHome:
    def test_env_override(self, tmp_path: Path) -> None:
        assert ambient_home() == tmp_path / "home"

    def test_default_store_lives_under_home(self, tmp_path: Path) -> None:
        store = SettingsStore()
        assert store.path == tmp_path / "home" / "settings.json"
        assert store.cache_dir == tmp_path / "home" / "stream_cache"

    def test_default_home_without_override(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path,
    ) -> None:
        monkeypatch.delenv("AMBIENT_PLAYER_HOME")
        monkeypatch.setenv("HOME", str(tmp_path))
        assert ambient_home() == tmp_path / ".ambient-player"


class TestLoad:
    def test_missing_file_gives_defaults(self, store: SettingsStore) -> None:
        settings = store.load()
        assert settings == PlayerSettings()
        assert settings.source_url == DEFAULT_SOURCE_URL
        assert settings.cache_expiration_seconds == 300.0
        assert settings.max_retries == 3
        assert settings.stall_timeout_seconds == 10.0
        assert settings.stall_check_interval_seconds == 1.0
        assert settings.extraction_timeout_seconds == 15.0

    def test_stored_values_are_used(self, store: SettingsStore) -> None:
        _write(store, {"source_url": SOURCE, "max_retries": 5, "stall_timeout_seconds": 20})
        settings = store.load()
        assert settings.source_url == SOURCE
        assert settings.max_retries == 5
        assert settings.stall_timeout_seconds == 20.0
        assert isinstance(settings.stall_timeout_seconds, float)

    @pytest.mark.parametrize("source", ["", "   ", None, 42])
    def test_blank_source_falls_back_to_default(
        self, store: SettingsStore, source: object,
    ) -> None:
        _write(store, {"source_url": source})
        assert store.load().source_url == DEFAULT_SOURCE_URL

    def test_invalid_numbers_fall_back(
        self, store: SettingsStore, caplog: pytest.LogCaptureFixture,
    ) -> None:
        _write(store, {"max_retries": -1, "cache_expiration_seconds": "soon", "stall_timeout_seconds": True})
        with caplog.at_level(logging.WARNING):
            settings = store.load()
        assert settings.max_retries == 3
        assert settings.cache_expiration_seconds == 300.0
        assert settings.stall_timeout_seconds == 10.0
        assert "Invalid max_retries" in caplog.text

    def test_corrupt_file_gives_defaults(
        self, store: SettingsStore, caplog: pytest.LogCaptureFixture,
    ) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            assert store.load() == PlayerSettings()
        assert "unreadable settings file" in caplog.text

    def test_non_object_gives_defaults(self, store: SettingsStore) -> None:
        _write(store, ["a", "list"])
        assert store.load() == PlayerSettings()


class TestSave:
    def test_set_source_round_trip(self, store: SettingsStore) -> None:
        updated = store.set_source(SOURCE)
        assert updated.source_url == SOURCE
        assert SettingsStore(store.path).load().source_url == SOURCE

    def test_set_blank_source_restores_default(self, store: SettingsStore) -> None:
        store.set_source(SOURCE)
        assert store.set_source("").source_url == DEFAULT_SOURCE_URL
        assert store.load().source_url == DEFAULT_SOURCE_URL

    def test_set_source_keeps_tunables(self, store: SettingsStore) -> None:
        _write(store, {"max_retries": 7})
        store.set_source(SOURCE)
        assert store.load().max_retries == 7

    def test_unwritable_location_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file", encoding="utf-8")
        store = SettingsStore(blocker / "settings.json")
        with pytest.raises(SettingsError, match="Could not write settings"):
            store.save(PlayerSettings())
