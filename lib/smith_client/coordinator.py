"""Call-and-observe wrapper around :class:`AuthenticatedRequestClient`.

Presentation code calls :meth:`APICallCoordinator.call` and renders
:attr:`APICallCoordinator.state`; it never handles client exceptions
itself. Each call goes Idle -> Loading -> Succeeded/Failed -> Idle.

``loading`` is derived from a count of calls in flight, so it stays true
until every concurrent call has settled. ``error`` belongs to whichever call
settled last. Callers that need their own outcome use
:meth:`APICallCoordinator.call_with_result`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from .errors import AuthenticationRequired, RequestBodyError, SmithClientError
from .transport import AuthenticatedRequestClient, RequestDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallState:
    loading: bool = False
    error: str | None = None
    in_flight: int = 0


@dataclass(frozen=True)
class CallResult:
    ok: bool
    data: Any = None
    error: str | None = None
    exception: SmithClientError | None = None


class APICallCoordinator:
    def __init__(self, client: AuthenticatedRequestClient):
        self._client = client
        self._in_flight = 0
        self._error: str | None = None
        self._listeners: list[Callable[[CallState], None]] = []

    @property
    def state(self) -> CallState:
        return CallState(loading=self._in_flight > 0, error=self._error, in_flight=self._in_flight)

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> str | None:
        return self._error

    def add_listener(self, listener: Callable[[CallState], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            listener(state)

    async def call(self, method: str = "GET", path: str = "/", body: Any | None = None) -> Any | None:
        result = await self.call_with_result(method, path, body)
        return result.data if result.ok else None

    async def call_with_result(self, method: str = "GET", path: str = "/", body: Any | None = None) -> CallResult:
        descriptor = RequestDescriptor(method, path, body=body)
        try:
            self._client.ensure_authenticated()
            descriptor.encode_body()
        except (AuthenticationRequired, RequestBodyError) as e:
            self._error = e.message
            self._notify()
            return CallResult(ok=False, error=e.message, exception=e)

        self._in_flight += 1
        self._error = None
        self._notify()

        try:
            data = await self._client.send(descriptor)
        except SmithClientError as e:
            logger.debug("%s %s failed: %s", descriptor.method, descriptor.path, e)
            self._settle(e.message)
            return CallResult(ok=False, error=e.message, exception=e)
        except BaseException:
            # cancelled or a bug: the call leaves the in-flight count, error is untouched
            self._in_flight -= 1
            self._notify()
            raise

        self._settle(None)
        return CallResult(ok=True, data=data)

    def _settle(self, error: str | None) -> None:
        self._in_flight -= 1
        self._error = error
        self._notify()
