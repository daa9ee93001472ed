"""Shared test fixtures for airwallex_cli.

Provides reusable fixtures for isolating config and credential
directories, managing output state, stubbing the remote credential check,
and running CLI commands. These fixtures are automatically discovered by
pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from airwallex_cli.auth.browser import BrowserLauncher
from airwallex_cli.auth.credential_store import FileSecretStore
from airwallex_cli.auth.validation import CredentialValidator
from airwallex_cli.exceptions import CredentialValidationError
from airwallex_cli.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and credentials to a temporary directory.

    Forces XDG resolution and points XDG_CONFIG_HOME and XDG_DATA_HOME at
    subdirectories of tmp_path so that tests never touch real user config
    or stored secrets. Clears AIRWALLEX_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("airwallex_cli.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("AIRWALLEX_BASE_URL", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def store(tmp_path: Path) -> FileSecretStore:
    """A file secret store rooted in a private temp directory."""
    return FileSecretStore(tmp_path / "credentials")


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeValidator(CredentialValidator):
    """Records calls and optionally rejects with a fixed message."""

    def __init__(self, error: Optional[str] = None) -> None:
        self.error = error
        self.calls: list[tuple[str, str, str, str]] = []

    def validate(
        self,
        account_name: str,
        client_id: str,
        api_key: str,
        account_id: str = "",
    ) -> None:
        self.calls.append((account_name, client_id, api_key, account_id))
        if self.error is not None:
            raise CredentialValidationError(self.error)


class RecordingLauncher(BrowserLauncher):
    """Remembers opened URLs instead of launching a browser."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.urls: list[str] = []

    def open(self, url: str) -> None:
        self.urls.append(url)
        if self.fail:
            raise RuntimeError("no display")


@pytest.fixture
def validator() -> FakeValidator:
    return FakeValidator()


@pytest.fixture
def launcher() -> RecordingLauncher:
    return RecordingLauncher()


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the duration of a test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
