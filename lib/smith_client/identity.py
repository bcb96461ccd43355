from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IdentityProvider(Protocol):
    """What the client needs from the identity provider.

    ``get_access_token`` may suspend (e.g. a silent refresh) and may raise.
    """

    @property
    def is_authenticated(self) -> bool: ...

    async def get_access_token(self) -> str: ...


class StaticTokenProvider:
    """Hands out a token obtained elsewhere, e.g. stored by ``smith auth login``."""

    def __init__(self, token: str | None):
        self._token = (token or "").strip()

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    async def get_access_token(self) -> str:
        if not self._token:
            raise LookupError("no access token configured")
        return self._token
