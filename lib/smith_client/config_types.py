from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from .errors import ConfigLoadError

FALLBACK_ORIGIN = "http://127.0.0.1:8080"
DEFAULT_CONFIG_URL = "http://127.0.0.1:3000/api/config"

_REQUIRED_ENV_KEYS = (
    "API_BASE_URL",
    "AUTH0_DOMAIN",
    "AUTH0_CLIENT_ID",
    "AUTH0_REDIRECT_URI",
    "AUTH0_AUDIENCE",
)


def parse_label_list(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_origin(raw: str) -> str:
    origin = raw.strip()
    try:
        url = httpx.URL(origin)
    except httpx.InvalidURL as e:
        raise ConfigLoadError(f"API_BASE_URL is not a valid URL: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigLoadError(f"API_BASE_URL must be an http(s) URL with a host, got {origin!r}")
    return origin


@dataclass(frozen=True)
class ServiceConfig:
    origin_url: str
    identity_domain: str
    identity_client_id: str
    identity_redirect_uri: str
    identity_audience: str
    excluded_labels: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> "ServiceConfig":
        """Validate a ``/api/config`` response body.

        The body must look like ``{"env": {"API_BASE_URL": ..., ...}}``. Every
        required key must be a non-empty string; anything else raises
        :class:`ConfigLoadError` instead of leaking malformed data further.
        """
        if not isinstance(payload, dict):
            raise ConfigLoadError(f"config response must be an object, got {type(payload).__name__}")
        env = payload.get("env")
        if not isinstance(env, dict):
            raise ConfigLoadError("config response is missing the 'env' object")

        missing = [
            key for key in _REQUIRED_ENV_KEYS
            if not isinstance(env.get(key), str) or not env[key].strip()
        ]
        if missing:
            raise ConfigLoadError(f"config response is missing required fields: {', '.join(missing)}")

        excluded = env.get("DASHBOARD_EXCLUDED_LABELS")
        if excluded is not None and not isinstance(excluded, str):
            raise ConfigLoadError("DASHBOARD_EXCLUDED_LABELS must be a string")

        return cls(
            origin_url=_parse_origin(env["API_BASE_URL"]),
            identity_domain=env["AUTH0_DOMAIN"].strip(),
            identity_client_id=env["AUTH0_CLIENT_ID"].strip(),
            identity_redirect_uri=env["AUTH0_REDIRECT_URI"].strip(),
            identity_audience=env["AUTH0_AUDIENCE"].strip(),
            excluded_labels=parse_label_list(excluded),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "origin_url": self.origin_url,
            "identity_domain": self.identity_domain,
            "identity_client_id": self.identity_client_id,
            "identity_redirect_uri": self.identity_redirect_uri,
            "identity_audience": self.identity_audience,
            "excluded_labels": list(self.excluded_labels),
        }


@dataclass(frozen=True)
class ClientConfig:
    timeout_s: float = 15.0
    client_version: str | None = None
    fallback_origin: str = FALLBACK_ORIGIN
