from __future__ import annotations

import json

import httpx
from typer.testing import CliRunner

from smith_cli import config, main
from smith_cli.auth_state import AuthContext
from smith_cli.commands import api_cmd, config_cmd, devices_cmd
from smith_client import SmithClient, StaticTokenProvider
from smith_client.config_loader import ConfigLoader

ENV = {
    "API_BASE_URL": "https://api.example.com",
    "AUTH0_DOMAIN": "smith.eu.auth0.com",
    "AUTH0_CLIENT_ID": "client-123",
    "AUTH0_REDIRECT_URI": "https://dashboard.example.com/callback",
    "AUTH0_AUDIENCE": "https://api.example.com",
    "DASHBOARD_EXCLUDED_LABELS": "env=lab",
}


def _loader() -> ConfigLoader:
    return ConfigLoader(
        "http://dashboard.test/api/config",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"env": ENV})),
    )


def _fake_client(routes: dict[str, tuple[int, object]], *, token: str = "T", seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        status, payload = routes[request.url.path]
        return httpx.Response(status, json=payload)

    def _make(*args, **kwargs):
        return SmithClient(StaticTokenProvider(token), config_loader=_loader(), transport=httpx.MockTransport(handler))

    return _make


def _app(monkeypatch, state: str = "token_present"):
    monkeypatch.setattr(main, "resolve_auth_context", lambda **_: AuthContext(state=state))
    return main._build_app()


def test_fleet_commands_hidden_without_token(monkeypatch) -> None:
    result = CliRunner().invoke(_app(monkeypatch, state="no_token"), ["--help"])
    assert result.exit_code == 0
    assert "settings" in result.output
    assert "devices" not in result.output


def test_fleet_commands_available_with_token(monkeypatch) -> None:
    result = CliRunner().invoke(_app(monkeypatch), ["--help"])
    assert result.exit_code == 0
    assert "devices" in result.output
    assert "dashboard" in result.output


def test_api_command_prints_json(monkeypatch) -> None:
    seen: list[httpx.Request] = []
    monkeypatch.setattr(api_cmd, "load_config", config.default_config)
    monkeypatch.setattr(api_cmd, "make_client", _fake_client({"/devices": (200, [{"id": 1}])}, seen=seen))

    result = CliRunner().invoke(_app(monkeypatch), ["api", "get", "/devices"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == [{"id": 1}]
    assert str(seen[0].url) == "https://api.example.com/devices"
    assert seen[0].headers["Authorization"] == "Bearer T"


def test_api_command_reports_error_from_state(monkeypatch) -> None:
    monkeypatch.setattr(api_cmd, "load_config", config.default_config)
    monkeypatch.setattr(api_cmd, "make_client", _fake_client({"/devices/x": (404, {"message": "not found"})}))

    result = CliRunner().invoke(_app(monkeypatch), ["api", "GET", "/devices/x"])

    assert result.exit_code == 2
    assert "not found" in result.output


def test_api_command_without_token(monkeypatch) -> None:
    seen: list[httpx.Request] = []
    monkeypatch.setattr(api_cmd, "load_config", config.default_config)
    monkeypatch.setattr(api_cmd, "make_client", _fake_client({}, token="", seen=seen))

    result = CliRunner().invoke(_app(monkeypatch, state="no_token"), ["api", "GET", "/devices"])

    assert result.exit_code == 2
    assert "User not authenticated" in result.output
    assert seen == []


def test_api_command_rejects_bad_json(monkeypatch) -> None:
    result = CliRunner().invoke(_app(monkeypatch), ["api", "POST", "/releases/1", "--data", "{nope"])
    assert result.exit_code == 2
    assert "not valid JSON" in result.output


def test_config_show_json(monkeypatch) -> None:
    monkeypatch.setattr(config_cmd, "load_config", config.default_config)
    monkeypatch.setattr(config_cmd, "make_loader", lambda *args, **kwargs: _loader())

    result = CliRunner().invoke(_app(monkeypatch), ["config", "show", "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["origin_url"] == "https://api.example.com"
    assert data["excluded_labels"] == ["env=lab"]


def test_config_show_failure(monkeypatch) -> None:
    broken = ConfigLoader(
        "http://dashboard.test/api/config",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"env": {}})),
    )
    monkeypatch.setattr(config_cmd, "load_config", config.default_config)
    monkeypatch.setattr(config_cmd, "make_loader", lambda *args, **kwargs: broken)

    result = CliRunner().invoke(_app(monkeypatch), ["config", "show"])

    assert result.exit_code == 2
    assert "Failed to load service config" in result.output


def test_devices_list_json(monkeypatch) -> None:
    seen: list[httpx.Request] = []
    monkeypatch.setattr(devices_cmd, "load_config", config.default_config)
    monkeypatch.setattr(
        devices_cmd,
        "make_client",
        _fake_client({"/devices": (200, [{"id": 1, "serial_number": "SN-1"}])}, seen=seen),
    )

    result = CliRunner().invoke(_app(monkeypatch), ["devices", "list", "--offline", "--label", "env=prod", "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {"items": [{"id": 1, "serial_number": "SN-1"}]}
    assert seen[0].url.params["online"] == "false"
    assert seen[0].url.params.get_list("labels") == ["env=prod"]


def test_devices_show_unauthorized(monkeypatch) -> None:
    monkeypatch.setattr(devices_cmd, "load_config", config.default_config)
    monkeypatch.setattr(devices_cmd, "make_client", _fake_client({"/devices/SN-1": (401, {"message": "jwt expired"})}))

    result = CliRunner().invoke(_app(monkeypatch), ["devices", "show", "SN-1"])

    assert result.exit_code == 2
    assert "Unauthorized" in result.output


def test_dashboard_excludes_configured_labels(monkeypatch) -> None:
    seen: list[httpx.Request] = []
    routes = {
        "/dashboard": (200, {"total_count": 3, "online_count": 2, "offline_count": 1, "outdated_count": 0, "archived_count": 0}),
        "/devices": (200, [{"id": 2, "serial_number": "SN-2", "last_seen": None}]),
    }
    monkeypatch.setattr(devices_cmd, "load_config", config.default_config)
    monkeypatch.setattr(devices_cmd, "make_client", _fake_client(routes, seen=seen))

    result = CliRunner().invoke(_app(monkeypatch), ["dashboard", "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["summary"]["total_count"] == 3
    assert data["excluded_labels"] == ["env=lab"]
    device_requests = [r for r in seen if r.url.path == "/devices"]
    assert len(device_requests) == 2
    assert all(r.url.params.get_list("exclude_labels") == ["env=lab"] for r in device_requests)


def test_auth_login_stores_token(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(config, "user_config_dir", lambda _: str(tmp_path))
    monkeypatch.delenv(config.ENV_TOKEN, raising=False)

    result = CliRunner().invoke(_app(monkeypatch, state="no_token"), ["auth", "login", "--token", "abc"])

    assert result.exit_code == 0, result.output
    assert config.load_config().auth.token == "abc"


def test_auth_status_offline(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(config, "user_config_dir", lambda _: str(tmp_path))
    monkeypatch.delenv(config.ENV_TOKEN, raising=False)

    result = CliRunner().invoke(_app(monkeypatch, state="no_token"), ["auth", "status", "--offline"])

    assert result.exit_code == 2
    assert "Not logged in" in result.output
