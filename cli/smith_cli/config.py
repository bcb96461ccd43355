from __future__ import annotations

import os
import sys
import tomllib
from dataclasses import dataclass
from typing import Any

import tomli_w
from platformdirs import user_config_dir

from . import console

APP_NAME = "smith"
CONFIG_FILENAME = "config.toml"
DASHBOARD_URL_DEFAULT = "http://127.0.0.1:3000"
CONFIG_ENDPOINT_PATH = "/api/config"
ENV_DASHBOARD_URL = "SMITH_DASHBOARD_URL"
ENV_TOKEN = "SMITH_TOKEN"

_LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0"})
_warned_schemes: set[str] = set()


@dataclass
class AuthConfig:
    token: str = ""
    token_type: str = "bearer"


@dataclass
class AppConfig:
    dashboard_url: str
    auth: AuthConfig
    timeout_s: float = 15.0


def config_path() -> str:
    return os.path.join(user_config_dir(APP_NAME), CONFIG_FILENAME)


def default_config() -> AppConfig:
    return AppConfig(dashboard_url=DASHBOARD_URL_DEFAULT, auth=AuthConfig())


def normalize_base_url(raw: str | None, *, warn: bool = False) -> str:
    """Strip trailing slashes and add a scheme when missing.

    Loopback hosts get ``http://``, everything else ``https://``.
    """
    value = (raw or "").strip().rstrip("/")
    if not value or value.lower().startswith(("http://", "https://")):
        return value

    host = value.partition("/")[0].partition(":")[0].lower()
    scheme = "http" if host in _LOOPBACK_HOSTS else "https"
    normalized = f"{scheme}://{value}"
    if warn and normalized not in _warned_schemes and sys.stdout.isatty():
        _warned_schemes.add(normalized)
        console.warn(f"dashboard_url missing scheme, assuming {normalized}")
    return normalized


def ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)


def to_toml(cfg: AppConfig) -> dict[str, Any]:
    return {
        "dashboard_url": cfg.dashboard_url,
        "timeout_s": float(cfg.timeout_s),
        "auth": {
            "token": cfg.auth.token,
            "token_type": cfg.auth.token_type,
        },
    }


def from_toml(data: dict[str, Any]) -> AppConfig:
    cfg = default_config()
    dashboard_url = normalize_base_url(str(data.get("dashboard_url") or ""), warn=True)
    if dashboard_url:
        cfg.dashboard_url = dashboard_url
    timeout_raw = data.get("timeout_s")
    if timeout_raw is not None:
        try:
            timeout_s = float(timeout_raw)
        except (TypeError, ValueError):
            timeout_s = 0.0
        if timeout_s > 0:
            cfg.timeout_s = timeout_s
    auth_raw = data.get("auth") or {}
    if isinstance(auth_raw, dict):
        cfg.auth = AuthConfig(
            token=str(auth_raw.get("token") or ""),
            token_type=str(auth_raw.get("token_type") or "bearer"),
        )
    return cfg


def load_config() -> AppConfig:
    path = config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        cfg = from_toml(data)
    except FileNotFoundError:
        cfg = default_config()
    return apply_env_overrides(cfg)


def apply_env_overrides(cfg: AppConfig) -> AppConfig:
    env_url = os.getenv(ENV_DASHBOARD_URL, "").strip()
    if env_url:
        cfg.dashboard_url = normalize_base_url(env_url)
    env_token = os.getenv(ENV_TOKEN, "").strip()
    if env_token:
        cfg.auth.token = env_token
    return cfg


def config_url(cfg: AppConfig) -> str:
    base = (cfg.dashboard_url or DASHBOARD_URL_DEFAULT).rstrip("/")
    return f"{base}{CONFIG_ENDPOINT_PATH}"


def save_config(cfg: AppConfig) -> str:
    path = config_path()
    ensure_parent_dir(path)
    with open(path, "wb") as f:
        f.write(tomli_w.dumps(to_toml(cfg)).encode("utf-8"))
    os.chmod(path, 0o600)
    return path
