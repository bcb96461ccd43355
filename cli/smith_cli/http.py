from __future__ import annotations

import asyncio
from importlib import metadata
from typing import Awaitable, Callable, TypeVar

import typer

from smith_client import (
    APICallCoordinator,
    AuthError,
    AuthenticationRequired,
    SmithClient,
    SmithClientError,
    StaticTokenProvider,
)
from smith_client.config_loader import ConfigLoader, get_config_loader
from smith_client.config_types import ClientConfig

from . import console
from .config import AppConfig, config_url, normalize_base_url

T = TypeVar("T")


def cli_version() -> str:
    try:
        return metadata.version("smith-cli")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def make_loader(cfg: AppConfig, *, dashboard_url_override: str | None = None) -> ConfigLoader:
    if dashboard_url_override:
        # one-off target: do not touch the process-wide loader
        url = normalize_base_url(dashboard_url_override, warn=True)
        return ConfigLoader(f"{url}/api/config", timeout_s=cfg.timeout_s)
    return get_config_loader(config_url(cfg), timeout_s=cfg.timeout_s)


def make_client(cfg: AppConfig, *, dashboard_url_override: str | None = None) -> SmithClient:
    return SmithClient(
        StaticTokenProvider(cfg.auth.token),
        config_loader=make_loader(cfg, dashboard_url_override=dashboard_url_override),
        cfg=ClientConfig(timeout_s=cfg.timeout_s, client_version=cli_version()),
    )


def make_coordinator(client: SmithClient) -> APICallCoordinator:
    return APICallCoordinator(client.transport)


def run_with_client(client: SmithClient, fn: Callable[[SmithClient], Awaitable[T]]) -> T:
    async def _wrapped() -> T:
        try:
            return await fn(client)
        finally:
            await client.aclose()

    return asyncio.run(_wrapped())


def client_failure(action: str, e: SmithClientError) -> typer.Exit:
    if isinstance(e, AuthenticationRequired):
        console.err("Not logged in. Run `smith auth login` first.")
    elif isinstance(e, AuthError):
        console.err("Unauthorized. Token was rejected by the API.")
    else:
        console.err(f"Failed to {action}: {e}")
    return typer.Exit(code=2)
