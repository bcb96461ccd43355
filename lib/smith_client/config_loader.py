"""Process-wide loader for the dashboard service configuration.

The dashboard serves its runtime settings (API origin, identity provider
parameters) from ``GET /api/config``. Every API call needs the origin, so the
loader fetches it once and caches it. Concurrent first callers attach to the
same in-flight load instead of each issuing a request, and a failed load is
never cached: the next caller simply starts over.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable

import httpx

from .config_types import DEFAULT_CONFIG_URL, ServiceConfig
from .errors import ConfigLoadError

logger = logging.getLogger(__name__)


class ConfigView:
    """Subscriber-side view of a config load.

    Mirrors what a presentation layer renders: ``loading`` until the load
    settles, then either ``config`` or ``error``. Settles at most once.
    """

    def __init__(self, listener: Callable[["ConfigView"], None] | None = None):
        self.config: ServiceConfig | None = None
        self.error: ConfigLoadError | None = None
        self.loading = True
        self._listener = listener
        self._closed = False
        self._settled = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True
        self._listener = None
        self._settled.set()

    async def wait(self) -> "ConfigView":
        await self._settled.wait()
        return self

    def _resolve(self, config: ServiceConfig | None, error: ConfigLoadError | None) -> None:
        if self._closed or not self.loading:
            return
        self.config = config
        self.error = error
        self.loading = False
        self._settled.set()
        listener = self._listener
        self._listener = None
        if listener is not None:
            listener(self)

    def _on_load_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            self._resolve(None, ConfigLoadError("config load was cancelled"))
            return
        exc = future.exception()
        if exc is None:
            self._resolve(future.result(), None)
        elif isinstance(exc, ConfigLoadError):
            self._resolve(None, exc)
        else:
            self._resolve(None, ConfigLoadError(str(exc)))


class ConfigLoader:
    def __init__(
            self,
            config_url: str = DEFAULT_CONFIG_URL,
            *,
            timeout_s: float = 10.0,
            transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config_url = config_url
        self._timeout_s = timeout_s
        self._transport = transport
        self._config: ServiceConfig | None = None
        self._pending: asyncio.Future[ServiceConfig] | None = None
        self._generation = 0

    @property
    def cached(self) -> ServiceConfig | None:
        return self._config

    @property
    def loading(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def reset(self) -> None:
        """Forget the cached config; an in-flight load will not install its result."""
        self._generation += 1
        self._config = None
        self._pending = None

    async def get_config(self) -> ServiceConfig:
        if self._config is not None:
            return self._config
        # shield: a cancelled waiter must not cancel the load other callers share
        return await asyncio.shield(self._ensure_pending())

    def subscribe(self, listener: Callable[[ConfigView], None] | None = None) -> ConfigView:
        """Return a view that settles once with the config or the load error.

        A cached value settles the view immediately and issues no request.
        Otherwise the view attaches to the in-flight load, starting one if
        needed, which requires a running event loop.
        """
        view = ConfigView(listener)
        if self._config is not None:
            view._resolve(self._config, None)
            return view
        self._ensure_pending().add_done_callback(view._on_load_done)
        return view

    def _ensure_pending(self) -> asyncio.Future[ServiceConfig]:
        if self._pending is None:
            logger.debug("loading service config from %s", self.config_url)
            task = asyncio.ensure_future(self._load(self._generation))
            task.add_done_callback(self._log_outcome)
            self._pending = task
        return self._pending

    async def _load(self, generation: int) -> ServiceConfig:
        try:
            config = await self._fetch()
        finally:
            if generation == self._generation:
                self._pending = None
        if generation == self._generation:
            self._config = config
        return config

    async def _fetch(self) -> ServiceConfig:
        try:
            async with httpx.AsyncClient(
                    timeout=self._timeout_s,
                    transport=self._transport,
                    follow_redirects=True,
            ) as client:
                r = await client.get(self.config_url, headers={"Accept": "application/json"})
        except httpx.RequestError as e:
            raise ConfigLoadError(f"failed to fetch config from {self.config_url}: {e}") from e

        if r.status_code >= 400:
            raise ConfigLoadError(f"GET {self.config_url} failed with {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise ConfigLoadError(f"config response from {self.config_url} is not valid JSON") from e
        return ServiceConfig.from_payload(data)

    def _log_outcome(self, task: asyncio.Future) -> None:
        if task.cancelled():
            logger.warning("service config load was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("service config load failed: %s", exc)
        else:
            logger.debug("service config loaded, origin=%s", task.result().origin_url)


_loader: ConfigLoader | None = None
_loader_lock = threading.Lock()


def get_config_loader(config_url: str | None = None, **kwargs) -> ConfigLoader:
    """Return the process-wide loader, creating it on first use.

    Arguments only take effect on the call that creates the loader.
    """
    global _loader
    if _loader is None:
        with _loader_lock:
            if _loader is None:
                _loader = ConfigLoader(config_url or DEFAULT_CONFIG_URL, **kwargs)
    return _loader


def reset_config_loader() -> None:
    global _loader
    with _loader_lock:
        _loader = None
