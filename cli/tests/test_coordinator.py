from __future__ import annotations

import asyncio

import httpx
import pytest

from smith_client import APICallCoordinator, AuthenticatedRequestClient, CallState, NetworkError, RequestBodyError
from smith_client.config_loader import ConfigLoader

ENV = {
    "API_BASE_URL": "https://api.example.com",
    "AUTH0_DOMAIN": "smith.eu.auth0.com",
    "AUTH0_CLIENT_ID": "client-123",
    "AUTH0_REDIRECT_URI": "https://dashboard.example.com/callback",
    "AUTH0_AUDIENCE": "https://api.example.com",
}


class _Identity:
    def __init__(self, token: str = "T", *, authenticated: bool = True):
        self.is_authenticated = authenticated
        self.token = token

    async def get_access_token(self) -> str:
        return self.token


class _Api:
    """Routes by path; a route may be gated so a test can observe the pending state."""

    def __init__(self, routes: dict[str, tuple[int, object]]):
        self.routes = routes
        self.requests: list[httpx.Request] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.reached: dict[str, asyncio.Event] = {}

    def gate(self, path: str) -> None:
        self.gates[path] = asyncio.Event()
        self.reached[path] = asyncio.Event()

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.reached:
            self.reached[path].set()
        if path in self.gates:
            await self.gates[path].wait()
        status, payload = self.routes[path]
        if isinstance(payload, Exception):
            raise payload
        return httpx.Response(status, json=payload)


def _coordinator(api: _Api, identity: _Identity | None = None, env: dict | None = None) -> APICallCoordinator:
    loader = ConfigLoader(
        "http://dashboard.test/api/config",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"env": env or ENV})),
    )
    client = AuthenticatedRequestClient(
        identity or _Identity(),
        config_loader=loader,
        transport=httpx.MockTransport(api.handler),
    )
    return APICallCoordinator(client)


def test_initial_state_is_idle() -> None:
    coordinator = _coordinator(_Api({}))
    assert coordinator.state == CallState(loading=False, error=None, in_flight=0)


def test_call_is_loading_while_pending_then_returns_payload() -> None:
    api = _Api({"/devices": (200, [{"serial_number": "SN-1"}])})
    coordinator = _coordinator(api)

    async def run():
        api.gate("/devices")
        task = asyncio.create_task(coordinator.call("GET", "/devices"))
        await api.reached["/devices"].wait()
        pending_state = coordinator.state
        api.gates["/devices"].set()
        return pending_state, await task

    pending_state, result = asyncio.run(run())

    assert pending_state.loading is True
    assert pending_state.error is None
    assert result == [{"serial_number": "SN-1"}]
    assert coordinator.state == CallState(loading=False, error=None, in_flight=0)
    request = api.requests[0]
    assert str(request.url) == "https://api.example.com/devices"
    assert request.headers["Authorization"] == "Bearer T"


def test_api_error_is_absorbed_into_state() -> None:
    api = _Api({"/devices/SN-404": (404, {"message": "not found"})})
    coordinator = _coordinator(api)

    result = asyncio.run(coordinator.call("GET", "/devices/SN-404"))

    assert result is None
    assert coordinator.state.loading is False
    assert coordinator.state.error == "not found"


def test_unauthenticated_call_sets_error_without_loading() -> None:
    api = _Api({"/devices": (200, [])})
    coordinator = _coordinator(api, _Identity(authenticated=False))
    states: list[CallState] = []
    coordinator.add_listener(states.append)

    result = asyncio.run(coordinator.call("GET", "/devices"))

    assert result is None
    assert coordinator.state == CallState(loading=False, error="User not authenticated", in_flight=0)
    assert all(not s.loading for s in states)
    assert api.requests == []


def test_network_failure_message_is_reported() -> None:
    api = _Api({"/devices": (0, httpx.ConnectError("connection refused"))})
    coordinator = _coordinator(api)

    result = asyncio.run(coordinator.call_with_result("GET", "/devices"))

    assert result.ok is False
    assert isinstance(result.exception, NetworkError)
    assert coordinator.state.error == result.error
    assert "connection refused" in result.error


def test_successful_call_clears_previous_error() -> None:
    api = _Api({"/missing": (404, {"message": "not found"}), "/devices": (200, [])})
    coordinator = _coordinator(api)

    async def run():
        await coordinator.call("GET", "/missing")
        assert coordinator.error == "not found"
        return await coordinator.call("GET", "/devices")

    assert asyncio.run(run()) == []
    assert coordinator.error is None


def test_listener_sees_every_transition() -> None:
    api = _Api({"/releases/3/deployment": (201, {"status": "in_progress"})})
    coordinator = _coordinator(api)
    states: list[CallState] = []
    remove = coordinator.add_listener(states.append)

    asyncio.run(coordinator.call("POST", "/releases/3/deployment"))
    remove()
    asyncio.run(coordinator.call("POST", "/releases/3/deployment"))

    assert [s.loading for s in states] == [True, False]
    assert states[-1].error is None


def test_concurrent_calls_keep_loading_until_all_settle() -> None:
    api = _Api({"/slow": (500, {"message": "slow failed"}), "/fast": (200, {"ok": True})})
    coordinator = _coordinator(api)

    async def run():
        api.gate("/slow")
        slow = asyncio.create_task(coordinator.call_with_result("GET", "/slow"))
        await api.reached["/slow"].wait()
        fast = await coordinator.call_with_result("GET", "/fast")
        mid_state = coordinator.state
        api.gates["/slow"].set()
        return fast, mid_state, await slow

    fast, mid_state, slow = asyncio.run(run())

    assert fast.ok and fast.data == {"ok": True}
    assert mid_state.loading is True
    assert mid_state.in_flight == 1
    assert slow.ok is False and slow.error == "slow failed"
    # last call to settle decides the shared error
    assert coordinator.state == CallState(loading=False, error="slow failed", in_flight=0)


def test_cancelled_call_leaves_in_flight_count() -> None:
    api = _Api({"/devices": (200, [])})
    coordinator = _coordinator(api)

    async def run():
        api.gate("/devices")
        task = asyncio.create_task(coordinator.call("GET", "/devices"))
        await api.reached["/devices"].wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())

    assert coordinator.state == CallState(loading=False, error=None, in_flight=0)


def test_unsupported_method_is_rejected_before_state_changes() -> None:
    coordinator = _coordinator(_Api({}))

    with pytest.raises(ValueError):
        asyncio.run(coordinator.call("TRACE", "/devices"))
    assert coordinator.state == CallState()


def test_malformed_origin_in_config_falls_back_instead_of_raising() -> None:
    api = _Api({"/devices": (200, [])})
    coordinator = _coordinator(api, env={**ENV, "API_BASE_URL": "https://api.example.com:notaport"})

    result = asyncio.run(coordinator.call("GET", "/devices"))

    assert result == []
    assert coordinator.state == CallState(loading=False, error=None, in_flight=0)
    assert str(api.requests[0].url) == "http://127.0.0.1:8080/devices"


def test_malformed_absolute_target_is_reported_as_error() -> None:
    api = _Api({})
    coordinator = _coordinator(api)

    result = asyncio.run(coordinator.call_with_result("GET", "https://api.example.com:notaport/devices"))

    assert result.ok is False
    assert isinstance(result.exception, NetworkError)
    assert coordinator.state.error == result.error
    assert coordinator.state.loading is False
    assert api.requests == []


def test_unencodable_body_is_reported_without_loading() -> None:
    api = _Api({"/releases/1/packages": (201, {})})
    coordinator = _coordinator(api)
    states: list[CallState] = []
    coordinator.add_listener(states.append)

    result = asyncio.run(coordinator.call_with_result("POST", "/releases/1/packages", {"ids": {1, 2}}))

    assert result.ok is False
    assert isinstance(result.exception, RequestBodyError)
    assert "not JSON-serialisable" in coordinator.state.error
    assert all(not s.loading for s in states)
    assert coordinator.state.in_flight == 0
    assert api.requests == []
