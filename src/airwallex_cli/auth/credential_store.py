"""Durable secret store for Airwallex account credentials.

Stores one JSON file per account in
``~/.local/share/airwallex/credentials/<name>.json`` (XDG) or the
platform-equivalent directory. Files are written atomically with ``0o600``
permissions so that secrets are never world-readable, even momentarily.

:class:`SecretStore` is the interface the rest of the package depends on;
:class:`FileSecretStore` is the default implementation. Keys follow the
``account:<name>`` convention so that other backends (e.g. an OS keyring)
can share a namespace with unrelated items.

See Also:
    :class:`~airwallex_cli.auth.server.SetupServer` -- persists
    credentials captured by the browser flow.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from airwallex_cli.config import _atomic_write, get_credentials_dir
from airwallex_cli.exceptions import StoreError
from airwallex_cli.models import Credentials

logger = logging.getLogger(__name__)

KEY_PREFIX = "account:"
ROTATION_THRESHOLD = timedelta(days=90)
# Normalised (lower-case) form of the names accepted by validate_account_name.
_STORE_NAME_RE = re.compile(r"[a-z0-9_-]{1,64}")

_warned_accounts: set[str] = set()
_warned_lock = threading.Lock()


def credential_key(name: str) -> str:
    """Return the store key for account *name*."""
    return f"{KEY_PREFIX}{name}"


def parse_credential_key(key: str) -> Optional[str]:
    """Return the account name encoded in *key*, or ``None`` if it is not an account key."""
    if not key.startswith(KEY_PREFIX):
        return None
    rest = key[len(KEY_PREFIX):]
    if not rest.strip():
        return None
    return rest


def normalize_name(name: str) -> str:
    return name.strip().lower()


class SecretStore(ABC):
    """Key-value store of :class:`~airwallex_cli.models.Credentials` by account name."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return every stored key (``account:<name>``)."""

    @abstractmethod
    def set(self, name: str, credentials: Credentials) -> None:
        """Create or replace the credentials for *name*."""

    @abstractmethod
    def get(self, name: str) -> Credentials:
        """Return the credentials for *name*; raise :class:`StoreError` if absent."""

    @abstractmethod
    def delete(self, name: str) -> None:
        """Remove the credentials for *name*; raise :class:`StoreError` if absent."""

    def list(self) -> list[Credentials]:
        """Return all stored credentials, sorted by account name."""
        names = sorted(
            name for name in (parse_credential_key(k) for k in self.keys()) if name
        )
        return [self.get(name) for name in names]

    def exists(self, name: str) -> bool:
        try:
            self.get(name)
        except StoreError:
            return False
        return True


class FileSecretStore(SecretStore):
    """File-backed :class:`SecretStore`.

    Args:
        directory: Where credential files live. Defaults to
            :func:`~airwallex_cli.config.get_credentials_dir`.

    Example::

        store = FileSecretStore()
        store.set("production", Credentials(client_id="cid", api_key="key"))
        assert store.get("production").client_id == "cid"
    """

    def __init__(self, directory: Optional[Path] = None) -> None:
        self._dir = directory if directory is not None else get_credentials_dir()

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, name: str) -> Path:
        # Only plain names map to files, so nothing resolves outside the directory.
        if not _STORE_NAME_RE.fullmatch(name):
            raise StoreError("invalid account name")
        return self._dir / f"{name}.json"

    def keys(self) -> list[str]:
        if not self._dir.is_dir():
            return []
        return sorted(
            credential_key(p.stem)
            for p in self._dir.glob("*.json")
            if p.is_file() and _STORE_NAME_RE.fullmatch(p.stem)
        )

    def set(self, name: str, credentials: Credentials) -> None:
        name = normalize_name(name)
        if not name:
            raise StoreError("missing account name")
        if not credentials.client_id:
            raise StoreError("missing client ID")
        if not credentials.api_key:
            raise StoreError("missing API key")

        created_at = credentials.created_at or datetime.now(timezone.utc)
        payload = {
            "client_id": credentials.client_id,
            "api_key": credentials.api_key,
            "account_id": credentials.account_id,
            "created_at": created_at.isoformat(),
        }
        try:
            _atomic_write(self._path(name), json.dumps(payload, indent=2) + "\n", mode=0o600)
        except OSError as exc:
            raise StoreError(f"failed to write credentials for '{name}': {exc}") from exc

    def get(self, name: str) -> Credentials:
        name = normalize_name(name)
        if not name:
            raise StoreError("missing account name")
        path = self._path(name)
        if not path.is_file():
            raise StoreError(f"account not found: {name}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            credentials = Credentials.model_validate({**data, "name": name})
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            raise StoreError(f"cannot read credentials for '{name}': {exc}") from exc

        _warn_if_stale(credentials)
        return credentials

    def delete(self, name: str) -> None:
        name = normalize_name(name)
        if not name:
            raise StoreError("missing account name")
        path = self._path(name)
        if not path.is_file():
            raise StoreError(f"account not found: {name}")
        path.unlink()


def _warn_if_stale(credentials: Credentials) -> None:
    """Log once per process when credentials are older than the rotation threshold."""
    created = credentials.created_at
    if created is None:
        return
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    age = datetime.now(timezone.utc) - created
    if age <= ROTATION_THRESHOLD:
        return
    with _warned_lock:
        if credentials.name in _warned_accounts:
            return
        _warned_accounts.add(credentials.name)
    logger.warning(
        "Credentials for '%s' are %d days old, consider rotating them",
        credentials.name,
        age.days,
    )
