from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlsplit

import httpx

from .config_loader import ConfigLoader
from .config_types import ClientConfig
from .errors import (
    ApiError,
    AuthError,
    AuthenticationRequired,
    ConfigLoadError,
    NetworkError,
    RequestBodyError,
    TokenAcquisitionError,
)
from .errors_utils import extract_error_message
from .identity import IdentityProvider

logger = logging.getLogger(__name__)

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


@dataclass(frozen=True)
class RequestDescriptor:
    method: str
    path: str
    body: Any | None = None
    headers: Mapping[str, str] | None = None
    params: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        method = str(self.method or "").strip().upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method!r}")
        object.__setattr__(self, "method", method)

    @property
    def sends_body(self) -> bool:
        return self.body is not None and self.method in BODY_METHODS

    def encode_body(self) -> bytes | None:
        """JSON-encode the body for POST/PUT/PATCH; other methods send none."""
        if not self.sends_body:
            return None
        try:
            return json.dumps(self.body).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise RequestBodyError(f"{self.method} {self.path} body is not JSON-serialisable: {e}") from e


def is_absolute_url(path: str) -> bool:
    parts = urlsplit(path)
    return parts.scheme.lower() in {"http", "https"} and bool(parts.netloc)


def resolve_target(origin: str, path: str) -> str:
    """Absolute URLs pass through; anything else is appended to ``origin`` as is."""
    if is_absolute_url(path):
        return path
    return f"{origin}{path}"


def build_headers(
        token: str,
        *,
        has_body: bool,
        extra: Mapping[str, str] | None = None,
        client_version: str | None = None,
) -> httpx.Headers:
    headers = httpx.Headers({"User-Agent": f"smith-client/{client_version or '0.1.0'}"})
    if has_body:
        headers["Content-Type"] = "application/json"
        headers["Accept"] = "application/json"
    if extra:
        headers.update(extra)
    # always the token fetched for this call, whatever the caller passed
    headers["Authorization"] = f"Bearer {token}"
    return headers


class AuthenticatedRequestClient:
    def __init__(
            self,
            identity: IdentityProvider,
            *,
            config_loader: ConfigLoader | None = None,
            cfg: ClientConfig | None = None,
            http_client: httpx.AsyncClient | None = None,
            transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.identity = identity
        self.config_loader = config_loader
        self._cfg = cfg or ClientConfig()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=self._cfg.timeout_s,
            transport=transport,
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "AuthenticatedRequestClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def ensure_authenticated(self) -> None:
        if not self.identity.is_authenticated:
            raise AuthenticationRequired()

    async def resolve_origin(self) -> str:
        if self.config_loader is None:
            logger.warning("no config loader configured, using fallback origin %s", self._cfg.fallback_origin)
            return self._cfg.fallback_origin
        try:
            config = await self.config_loader.get_config()
        except ConfigLoadError as e:
            logger.warning("service config unavailable (%s), using fallback origin %s", e, self._cfg.fallback_origin)
            return self._cfg.fallback_origin
        return config.origin_url

    async def _acquire_token(self) -> str:
        try:
            token = await self.identity.get_access_token()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise TokenAcquisitionError(f"Failed to obtain access token: {e}") from e
        if not isinstance(token, str) or not token:
            raise TokenAcquisitionError("Identity provider returned an empty access token")
        return token

    async def request(
            self,
            method: str,
            path: str,
            *,
            body: Any | None = None,
            headers: Mapping[str, str] | None = None,
            params: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self.send(RequestDescriptor(method, path, body=body, headers=headers, params=params))

    async def send(self, descriptor: RequestDescriptor) -> Any:
        self.ensure_authenticated()
        content = descriptor.encode_body()
        token = await self._acquire_token()
        origin = await self.resolve_origin()
        url = resolve_target(origin, descriptor.path)

        headers = build_headers(
            token,
            has_body=content is not None,
            extra=descriptor.headers,
            client_version=self._cfg.client_version,
        )
        logger.debug("%s %s", descriptor.method, url)
        try:
            r = await self._client.request(
                descriptor.method,
                url,
                params=dict(descriptor.params) if descriptor.params else None,
                headers=headers,
                content=content,
            )
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise NetworkError(str(e) or type(e).__name__) from e

        data: Any = None
        text = None
        try:
            data = r.json()
        except ValueError:
            text = r.text

        if r.status_code >= 400:
            fallback = f"{descriptor.method} {descriptor.path} failed with {r.status_code}"
            msg = extract_error_message(data, fallback)
            details = None
            if data is not None:
                details = json.dumps(data, ensure_ascii=False)
            elif text:
                details = text[:1000]

            if r.status_code in (401, 403):
                raise AuthError(r.status_code, msg, details)
            raise ApiError(r.status_code, msg, details)

        if data is not None:
            return data
        return text or None
