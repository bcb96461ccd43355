from __future__ import annotations

import asyncio

import typer
from rich.table import Table

from smith_client.config_loader import ConfigLoader, ConfigView

from .. import console
from ..config import load_config
from ..http import make_loader

app = typer.Typer(help="Inspect the service configuration served by the dashboard.")


async def _settle(loader: ConfigLoader) -> ConfigView:
    view = loader.subscribe()
    return await view.wait()


@app.command("show")
def show_config(
        json_output: bool = typer.Option(False, "--json", help="Output JSON only."),
        dashboard_url: str | None = typer.Option(None, "--dashboard-url", help="Override dashboard URL."),
):
    cfg = load_config()
    loader = make_loader(cfg, dashboard_url_override=dashboard_url)
    view = asyncio.run(_settle(loader))
    if view.error is not None or view.config is None:
        console.err(f"Failed to load service config from {loader.config_url}: {view.error}")
        raise typer.Exit(code=2)

    data = view.config.to_dict()
    if json_output:
        console.print_json(data)
        return

    table = Table(title="Service config")
    table.add_column("key", style="bold")
    table.add_column("value")
    for key, value in data.items():
        if isinstance(value, list):
            value = ", ".join(value) or "-"
        table.add_row(key, str(value))
    console.console.print(table)
