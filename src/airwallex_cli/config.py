"""Where airwallex_cli keeps its files, and how it reads its settings.

* **Directories** -- on Linux and the BSDs the XDG base directories are
  honoured (``$XDG_CONFIG_HOME/airwallex``, ``$XDG_DATA_HOME/airwallex``);
  everywhere else everything lives under ``~/.airwallex``.
* **config.json** -- one :class:`~airwallex_cli.models.GlobalConfig`
  document in the config directory. Its ``setup`` section holds the
  :class:`~airwallex_cli.models.SetupSettings` used by ``auth login``.
* **Environment** -- ``AIRWALLEX_BASE_URL`` replaces the configured API
  base URL (handy for the demo environment).

Files are replaced atomically via :func:`_atomic_write` so an interrupted
write never leaves a truncated config or credential file behind.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from airwallex_cli.exceptions import ConfigError
from airwallex_cli.models import GlobalConfig, SetupSettings

_APP_NAME = "airwallex"
_CONFIG_FILENAME = "config.json"

ENV_BASE_URL = "AIRWALLEX_BASE_URL"

# kind -> (XDG variable, default location under $HOME, subdirectory of ~/.airwallex)
_XDG_DIRS: dict[str, tuple[str, tuple[str, ...], Optional[str]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), None),
    "data": ("XDG_DATA_HOME", (".local", "share"), "data"),
}


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    """Resolve and create the application directory of the given *kind*."""
    env_var, home_segments, fallback_sub = _XDG_DIRS[kind]
    if _is_xdg_platform():
        root = os.environ.get(env_var) or str(Path.home().joinpath(*home_segments))
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
        if fallback_sub:
            path = path / fallback_sub
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json`` (created on demand)."""
    return _app_dir("config")


def get_data_dir() -> Path:
    """Directory holding credentials and crash logs (created on demand)."""
    return _app_dir("data")


def get_credentials_dir() -> Path:
    """``<data dir>/credentials``, created owner-only (``0o700``)."""
    path = get_data_dir() / "credentials"
    path.mkdir(mode=0o700, parents=True, exist_ok=True)
    return path


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* in one rename.

    The temp file lives next to *path* so ``os.replace`` stays on one
    filesystem. *mode* is applied before the first byte is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if mode is not None:
            os.fchmod(fd, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def load_global_config() -> GlobalConfig:
    """Read ``config.json``; a missing file yields defaults.

    Raises:
        ConfigError: The file is not valid JSON or does not match the model.
    """
    path = get_config_dir() / _CONFIG_FILENAME
    if not path.is_file():
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    payload = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    _atomic_write(get_config_dir() / _CONFIG_FILENAME, payload)


def load_setup_settings() -> SetupSettings:
    """Effective settings for ``auth login`` and ``auth test``.

    ``AIRWALLEX_BASE_URL`` wins over the ``setup.api_base_url`` stored in
    ``config.json``; every other field comes from the file or its default.

    Raises:
        ConfigError: ``config.json`` is invalid.
    """
    settings = load_global_config().setup
    override = os.environ.get(ENV_BASE_URL)
    if override:
        settings = settings.model_copy(update={"api_base_url": override.rstrip("/")})
    return settings
