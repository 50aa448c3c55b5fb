"""Smoke tests — verify scaffold wiring.

These tests prove that:
* The CLI entry point is importable and callable.
* The exception hierarchy is correctly structured.
* Version is accessible.
* Exit codes are defined.
* ``cli()`` renders errors and maps them to exit codes.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from ambient_player import __version__
from ambient_player.cli import exit_codes
from ambient_player.cli.app import cli, main
from ambient_player.exceptions import (
    AmbientPlayerError,
    EnvironmentError,
    ExtractionError,
    InvalidSourceError,
    LibmpvNotFoundError,
    NetworkError,
    PlaybackEngineError,
    RateLimitedError,
    SettingsError,
    StreamNotFoundError,
    append_ytdlp_upgrade_suggestion,
)


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------

class TestVersion:
    def test_version_is_string(self) -> None:
        assert isinstance(__version__, str)

    def test_version_is_semver_like(self) -> None:
        parts = __version__.split(".")
        assert len(parts) == 3
        assert all(part.isdigit() for part in parts)


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------

class TestExceptions:
    @pytest.mark.parametrize(
        "exc_class",
        [
            InvalidSourceError,
            ExtractionError,
            RateLimitedError,
            StreamNotFoundError,
            NetworkError,
            PlaybackEngineError,
            SettingsError,
            LibmpvNotFoundError,
            EnvironmentError,
        ],
    )
    def test_all_exceptions_inherit_from_base(
        self, exc_class: type[AmbientPlayerError]
    ) -> None:
        assert issubclass(exc_class, AmbientPlayerError)

    @pytest.mark.parametrize(
        "exc_class", [RateLimitedError, StreamNotFoundError, NetworkError],
    )
    def test_extraction_failures_share_a_base(
        self, exc_class: type[ExtractionError]
    ) -> None:
        assert issubclass(exc_class, ExtractionError)

    def test_hint_is_stored(self) -> None:
        err = AmbientPlayerError("boom", hint="try this")
        assert str(err) == "boom"
        assert err.hint == "try this"

    def test_hint_defaults_to_none(self) -> None:
        assert AmbientPlayerError("boom").hint is None

    def test_upgrade_suggestion_appended_once(self) -> None:
        once = append_ytdlp_upgrade_suggestion("Extraction failed.")
        assert once.startswith("Extraction failed.\n")
        assert "pip install --upgrade yt-dlp" in once
        assert append_ytdlp_upgrade_suggestion(once) == once


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

class TestExitCodes:
    def test_success_is_zero(self) -> None:
        assert exit_codes.SUCCESS == 0

    def test_general_error_is_one(self) -> None:
        assert exit_codes.GENERAL_ERROR == 1

    def test_keyboard_interrupt_is_130(self) -> None:
        assert exit_codes.KEYBOARD_INTERRUPT == 130

    def test_unexpected_error_is_two(self) -> None:
        assert exit_codes.UNEXPECTED_ERROR == 2


# ---------------------------------------------------------------------------
# CLI routing
# ---------------------------------------------------------------------------

class TestCLIRouting:
    def test_no_args_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == exit_codes.SUCCESS
        assert "ambient-player" in capsys.readouterr().out

    def test_version_flag(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_verbose_and_quiet_are_exclusive(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["-v", "-q", "doctor"])
        assert exc_info.value.code == 2

    @patch("ambient_player.cli.doctor.run_doctor", return_value=exit_codes.SUCCESS)
    def test_doctor_returns_success(self, _mock_doc: object) -> None:
        assert main(["doctor"]) == exit_codes.SUCCESS


# ---------------------------------------------------------------------------
# Error boundary
# ---------------------------------------------------------------------------

class TestErrorBoundary:
    def _run_cli(self, monkeypatch: pytest.MonkeyPatch, error: BaseException) -> int:
        from ambient_player.cli import app as app_module

        def explode(*_args: object, **_kwargs: object) -> int:
            raise error

        monkeypatch.setattr(app_module, "main", explode)
        with pytest.raises(SystemExit) as exc_info:
            cli()
        return int(exc_info.value.code)

    def test_domain_error_shows_message_and_hint(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = self._run_cli(
            monkeypatch, InvalidSourceError("Invalid source URL: x", hint="use http"),
        )
        assert code == exit_codes.GENERAL_ERROR
        err = capsys.readouterr().err
        assert "Invalid source URL: x" in err
        assert "use http" in err

    def test_keyboard_interrupt(self, monkeypatch: pytest.MonkeyPatch) -> None:
        assert self._run_cli(monkeypatch, KeyboardInterrupt()) == exit_codes.KEYBOARD_INTERRUPT

    def test_unexpected_error(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = self._run_cli(monkeypatch, RuntimeError("kaboom"))
        assert code == exit_codes.UNEXPECTED_ERROR
        assert "RuntimeError: kaboom" in capsys.readouterr().err

    def test_success_exit_code(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from ambient_player.cli import app as app_module

        monkeypatch.setattr(app_module, "main", lambda: exit_codes.SUCCESS)
        with pytest.raises(SystemExit) as exc_info:
            cli()
        assert exc_info.value.code == exit_codes.SUCCESS
