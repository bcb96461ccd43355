from __future__ import annotations

import asyncio
import json
import logging

import typer

from .. import console
from ..config import load_config
from ..http import make_client, make_coordinator

logger = logging.getLogger(__name__)


def call_api(
        method: str = typer.Argument(..., help="HTTP method: GET, POST, PUT, PATCH or DELETE."),
        path: str = typer.Argument(..., help="Path relative to the API origin, or an absolute URL."),
        data: str | None = typer.Option(None, "--data", "-d", help="JSON request body."),
        dashboard_url: str | None = typer.Option(None, "--dashboard-url", help="Override dashboard URL."),
):
    """Call the Smith API with the stored token and print the JSON response."""
    body = None
    if data is not None:
        try:
            body = json.loads(data)
        except ValueError as e:
            console.err(f"--data is not valid JSON: {e}")
            raise typer.Exit(code=2)

    cfg = load_config()
    client = make_client(cfg, dashboard_url_override=dashboard_url)
    coordinator = make_coordinator(client)
    coordinator.add_listener(lambda state: logger.debug("call state: loading=%s error=%s", state.loading, state.error))

    async def _run():
        try:
            return await coordinator.call(method, path, body)
        finally:
            await client.aclose()

    try:
        result = asyncio.run(_run())
    except ValueError as e:
        console.err(str(e))
        raise typer.Exit(code=2)

    state = coordinator.state
    if state.error:
        console.err(state.error)
        raise typer.Exit(code=2)
    if result is None:
        console.ok(f"{method.upper()} {path} succeeded.")
        return
    if isinstance(result, (dict, list)):
        console.print_json(result)
        return
    console.print(str(result))
