from __future__ import annotations

import asyncio
from dataclasses import dataclass

from smith_client import ApiError, AuthError, NetworkError

from .config import AppConfig, load_config
from .http import make_client


@dataclass
class AuthContext:
    state: str
    origin: str | None = None


async def _probe(cfg: AppConfig) -> AuthContext:
    client = make_client(cfg)
    try:
        origin = await client.transport.resolve_origin()
        await client.dashboard_get()
    except AuthError:
        return AuthContext(state="invalid_token")
    except (ApiError, NetworkError):
        return AuthContext(state="unreachable")
    finally:
        await client.aclose()
    return AuthContext(state="authed", origin=origin)


def resolve_auth_context(*, check_remote: bool = True, cfg: AppConfig | None = None) -> AuthContext:
    cfg = cfg or load_config()
    if not (cfg.dashboard_url or "").strip():
        return AuthContext(state="no_dashboard_url")
    if not (cfg.auth.token or "").strip():
        return AuthContext(state="no_token")
    if not check_remote:
        return AuthContext(state="token_present")
    return asyncio.run(_probe(cfg))
