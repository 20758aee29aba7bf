"""Client configuration, loaded once and passed explicitly."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

from torus_sdk.apitypes import API_VERSION
from torus_sdk.errors import ConfigError

VERSION = "0.1.0"
DEFAULT_REGISTRY_URI = "https://registry.torus.sh"
DEFAULT_TIMEOUT = 30.0
TORUS_ROOT_ENV_VAR = "TORUS_ROOT"
DAEMON_URL_ENV_VAR = "TORUS_DAEMON_URL"
DEBUG_ENV_VAR = "AG_DEBUG"


def default_torus_root() -> Path:
    return Path.home() / ".torus"


@dataclass(frozen=True)
class ClientConfig:
    torus_root: Path
    version: str = VERSION
    api_version: str = API_VERSION
    registry_uri: str = DEFAULT_REGISTRY_URI
    daemon_url: str | None = None
    ca_bundle_file: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    debug: bool = False

    @property
    def socket_path(self) -> Path:
        return self.torus_root / "daemon.socket"

    @property
    def pid_path(self) -> Path:
        return self.torus_root / "daemon.pid"

    @property
    def db_path(self) -> Path:
        return self.torus_root / "daemon.db"

    @property
    def config_path(self) -> Path:
        return self.torus_root / "config.toml"


def _load_toml(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")
    try:
        return tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid TOML in {path}: {exc}") from exc


def _to_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "on"}:
            return True
        if lowered in {"false", "0", "no", "off", ""}:
            return False
    raise ConfigError(f"{field_name} must be a boolean")


def _http_uri(value: Any, field_name: str) -> str:
    uri = str(value).strip()
    parsed = urlparse(uri)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigError(f"{field_name} must be an http(s) URL")
    return uri


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> ClientConfig:
    env = os.environ if environ is None else environ

    env_root = env.get(TORUS_ROOT_ENV_VAR, "").strip()
    torus_root = Path(env_root).expanduser() if env_root else default_torus_root()

    config_path = Path(path) if path else torus_root / "config.toml"
    parsed = _load_toml(config_path) if config_path.exists() else {}
    section = parsed.get("core")
    if isinstance(section, dict):
        source = section
    elif section is None:
        source = parsed
    else:
        raise ConfigError("[core] must be a table")

    registry_uri = _http_uri(source.get("registry_uri", DEFAULT_REGISTRY_URI), "registry_uri")

    env_daemon_url = env.get(DAEMON_URL_ENV_VAR, "").strip()
    raw_daemon_url = env_daemon_url or source.get("daemon_url")
    daemon_url = _http_uri(raw_daemon_url, "daemon_url") if raw_daemon_url else None

    ca_bundle_raw = source.get("ca_bundle_file")
    ca_bundle_file = str(ca_bundle_raw).strip() or None if ca_bundle_raw is not None else None

    try:
        timeout = float(source.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as exc:
        raise ConfigError("timeout must be a number") from exc
    if timeout <= 0:
        raise ConfigError("timeout must be greater than zero")

    # Any non-empty value enables debug.
    env_debug = env.get(DEBUG_ENV_VAR, "")
    debug = bool(env_debug) or _to_bool(source.get("debug", False), "debug")

    return ClientConfig(
        torus_root=torus_root,
        registry_uri=registry_uri,
        daemon_url=daemon_url,
        ca_bundle_file=ca_bundle_file,
        timeout=timeout,
        debug=debug,
    )


__all__ = ["ClientConfig", "ConfigError", "load_config", "VERSION"]
