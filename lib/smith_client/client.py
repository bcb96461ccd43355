from __future__ import annotations

from typing import Any
from urllib.parse import quote

from .config_loader import ConfigLoader
from .config_types import ClientConfig, ServiceConfig
from .identity import IdentityProvider
from .transport import AuthenticatedRequestClient


def _seg(value: Any) -> str:
    return quote(str(value), safe="")


class SmithClient:
    def __init__(
            self,
            identity: IdentityProvider,
            *,
            config_loader: ConfigLoader | None = None,
            cfg: ClientConfig | None = None,
            transport=None,
    ):
        self._t = AuthenticatedRequestClient(
            identity,
            config_loader=config_loader,
            cfg=cfg,
            transport=transport,
        )

    @property
    def transport(self) -> AuthenticatedRequestClient:
        return self._t

    async def aclose(self) -> None:
        await self._t.aclose()

    async def __aenter__(self) -> "SmithClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request_json(
            self,
            method: str,
            path: str,
            *,
            json_body: Any | None = None,
            params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Internal helper for endpoints that should return JSON."""
        data = await self._t.request(method, path, body=json_body, params=params)
        if isinstance(data, dict):
            return data
        if isinstance(data, list):
            return {"items": data}
        return {"raw": data}

    async def service_config(self) -> ServiceConfig | None:
        loader = self._t.config_loader
        if loader is None:
            return None
        return await loader.get_config()

    # --- devices ---
    async def devices_list(
            self,
            *,
            serial_number: str | None = None,
            labels: list[str] | None = None,
            online: bool | None = None,
            approved: bool | None = None,
            archived: bool | None = None,
            outdated: bool | None = None,
            exclude_labels: list[str] | tuple[str, ...] | None = None,
            search: str | None = None,
            limit: int | None = None,
            offset: int | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if serial_number:
            params["serial_number"] = serial_number
        if labels:
            params["labels"] = list(labels)
        if exclude_labels:
            params["exclude_labels"] = list(exclude_labels)
        for key, flag in (("online", online), ("approved", approved), ("archived", archived), ("outdated", outdated)):
            if flag is not None:
                params[key] = "true" if flag else "false"
        if search:
            params["search"] = search
        if limit is not None:
            params["limit"] = int(limit)
        if offset is not None:
            params["offset"] = int(offset)
        return await self._request_json("GET", "/devices", params=params or None)

    async def device_get(self, serial: str) -> dict[str, Any]:
        return await self._request_json("GET", f"/devices/{_seg(serial)}")

    async def device_commands_list(self, serial: str) -> dict[str, Any]:
        return await self._request_json("GET", f"/devices/{_seg(serial)}/commands")

    async def device_command_issue(self, serial: str, commands: list[dict[str, Any]]) -> dict[str, Any]:
        return await self._request_json("POST", f"/devices/{_seg(serial)}/commands", json_body=commands)

    async def device_note_set(self, device_id: int, note: str | None) -> dict[str, Any]:
        return await self._request_json("PUT", f"/devices/{int(device_id)}/note", json_body={"note": note})

    async def device_approve(self, device_id: int) -> dict[str, Any]:
        return await self._request_json("POST", f"/devices/{int(device_id)}/approval")

    async def device_revoke(self, device_id: int) -> dict[str, Any]:
        return await self._request_json("DELETE", f"/devices/{int(device_id)}/approval")

    # --- dashboard ---
    async def dashboard_get(self) -> dict[str, Any]:
        return await self._request_json("GET", "/dashboard")

    # --- releases ---
    async def release_get(self, release_id: int) -> dict[str, Any]:
        return await self._request_json("GET", f"/releases/{int(release_id)}")

    async def release_publish(self, release_id: int) -> dict[str, Any]:
        return await self._request_json("POST", f"/releases/{int(release_id)}", json_body={"draft": False})

    async def release_packages_list(self, release_id: int) -> dict[str, Any]:
        return await self._request_json("GET", f"/releases/{int(release_id)}/packages")

    async def release_package_add(self, release_id: int, package_id: int) -> dict[str, Any]:
        body = {"id": int(package_id)}
        return await self._request_json("POST", f"/releases/{int(release_id)}/packages", json_body=body)

    async def release_package_remove(self, release_id: int, package_id: int) -> dict[str, Any]:
        return await self._request_json("DELETE", f"/releases/{int(release_id)}/packages/{int(package_id)}")

    async def release_deployment_get(self, release_id: int) -> dict[str, Any]:
        return await self._request_json("GET", f"/releases/{int(release_id)}/deployment")

    async def release_deploy(self, release_id: int) -> dict[str, Any]:
        return await self._request_json("POST", f"/releases/{int(release_id)}/deployment")

    # --- distributions ---
    async def distributions_list(self) -> dict[str, Any]:
        return await self._request_json("GET", "/distributions")

    async def distribution_releases(self, distribution_id: int) -> dict[str, Any]:
        return await self._request_json("GET", f"/distributions/{int(distribution_id)}/releases")
