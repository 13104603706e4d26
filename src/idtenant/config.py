"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for idtenant:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.idtenant/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- a single :class:`~idtenant.models.GlobalConfig`
  JSON file (default profile, output format, session persistence,
  extension lists).
* **Tenant profiles** -- one JSON file per tenant, each deserialised into a
  :class:`~idtenant.models.TenantProfile`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config and global config.
* **Credential resolution** -- :func:`resolve_credential` reads secrets
  from env vars, files, or interactive prompts.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from idtenant.exceptions import ConfigError
from idtenant.models import GlobalConfig, TenantProfile, canonical_host

_APP_NAME = "idtenant"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "idtenant.json"

ENV_PROFILE = "IDTENANT_PROFILE"
ENV_HOST = "IDTENANT_HOST"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/idtenant/`` (default ``~/.config/idtenant/``).
    On macOS/Windows: ``~/.idtenant/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (cached sessions, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/idtenant/`` (default ``~/.local/share/idtenant/``).
    On macOS/Windows: ``~/.idtenant/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_profiles_dir() -> Path:
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write *data* to *path* atomically using a temp file and rename.

    The temporary file lives next to *path* so that ``os.replace`` is an
    atomic rename on POSIX. When *mode* is given the temp file gets those
    permissions before any content is written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration, or defaults when the file is absent.

    Raises:
        ConfigError: If the file exists but is not valid JSON or fails
            validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    data = _read_json(path, "global config")
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Tenant profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return all profile names, sorted alphabetically."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def load_profile(name: str) -> TenantProfile:
    """Load and validate a tenant profile from disk.

    Raises:
        ConfigError: If the profile is missing or invalid.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    data = _read_json(path, f"profile '{name}'")
    try:
        return TenantProfile.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: TenantProfile) -> None:
    """Persist a profile atomically; the host is stored in canonical form."""
    profile.host = canonical_host(profile.host)
    data = profile.model_dump(mode="json")
    atomic_write(_profile_path(profile.name), json.dumps(data, indent=2) + "\n")


def delete_profile(name: str) -> None:
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load ``./idtenant.json`` if present (typically pins ``default_profile``)."""
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def resolve_config(
    cli_profile: Optional[str] = None,
    cli_host: Optional[str] = None,
) -> tuple[GlobalConfig, Optional[TenantProfile]]:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_profile``, ``cli_host``)
        2. Environment variables (``IDTENANT_PROFILE``, ``IDTENANT_HOST``)
        3. Project config (``./idtenant.json``)
        4. User config (``~/.config/idtenant/config.json``)

    When a host is given but no profile resolves, an unsaved ad-hoc profile
    named after the host is returned so callers always get request settings.

    Returns:
        A tuple of ``(global_config, active_profile_or_None)``.
    """
    global_cfg = load_global_config()

    resolved_name: Optional[str] = global_cfg.default_profile
    project = load_project_config()
    if project is not None and project.get("default_profile"):
        resolved_name = project["default_profile"]
    env_profile = os.environ.get(ENV_PROFILE)
    if env_profile:
        resolved_name = env_profile
    if cli_profile is not None:
        resolved_name = cli_profile

    profile: Optional[TenantProfile] = None
    if resolved_name is not None:
        profile = load_profile(resolved_name)

    host = cli_host or os.environ.get(ENV_HOST) or None
    if host:
        host = canonical_host(host)
        if profile is None:
            profile = TenantProfile(name=host, host=host)
        else:
            profile.host = host

    return global_cfg, profile


# --- Credential source resolution ---


def resolve_credential(source: str, prompt_text: str = "Enter credential: ") -> str:
    """Resolve a secret from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts with hidden input (requires a TTY)

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(f"Environment variable '{var_name}' is not set (source: {source})")
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for credentials: stdin is not a TTY (source: prompt)")
        return getpass.getpass(prompt_text)

    raise ConfigError(f"Unknown credential source format: {source}")
