"""Tests for the console-script entry point."""

from __future__ import annotations

import signal
from pathlib import Path

import pytest

from airwallex_cli import app as app_module
from airwallex_cli.exceptions import StoreError


@pytest.fixture(autouse=True)
def _restore_sigint():
    previous = signal.getsignal(signal.SIGINT)
    yield
    signal.signal(signal.SIGINT, previous)


class TestMain:
    def test_airwallex_error_maps_to_exit_code(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        def _raise() -> None:
            raise StoreError("account not found: prod")

        monkeypatch.setattr(app_module, "app", _raise)
        with pytest.raises(SystemExit) as exc_info:
            app_module.main()
        assert exc_info.value.code == 1
        assert "account not found: prod" in capsys.readouterr().err

    def test_keyboard_interrupt(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def _raise() -> None:
            raise KeyboardInterrupt

        monkeypatch.setattr(app_module, "app", _raise)
        with pytest.raises(SystemExit) as exc_info:
            app_module.main()
        assert exc_info.value.code == 130

    def test_unexpected_error_writes_crash_log(
        self,
        monkeypatch: pytest.MonkeyPatch,
        isolated_config: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        def _raise() -> None:
            raise RuntimeError("kaboom")

        monkeypatch.setattr(app_module, "app", _raise)
        with pytest.raises(SystemExit) as exc_info:
            app_module.main()
        assert exc_info.value.code == 1

        logs = list((isolated_config / "data" / "airwallex" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "RuntimeError: kaboom" in logs[0].read_text()
        assert "Debug log:" in capsys.readouterr().err
