from __future__ import annotations

import typer
from rich.table import Table

from smith_client import SmithClient, SmithClientError

from .. import console
from ..config import load_config
from ..http import client_failure, make_client, run_with_client

app = typer.Typer(help="Inspect and roll out releases.")


async def _release_with_packages(client: SmithClient, release_id: int) -> dict:
    release = await client.release_get(release_id)
    packages = await client.release_packages_list(release_id)
    return {"release": release, "packages": packages.get("items") or []}


@app.command("show")
def show_release(
        release_id: int = typer.Argument(..., help="Release id."),
        json_out: bool = typer.Option(False, "--json", help="Output JSON only."),
        dashboard_url: str | None = typer.Option(None, "--dashboard-url", help="Override dashboard URL."),
):
    cfg = load_config()
    client = make_client(cfg, dashboard_url_override=dashboard_url)
    try:
        data = run_with_client(client, lambda c: _release_with_packages(c, release_id))
    except SmithClientError as e:
        raise client_failure(f"get release {release_id}", e)

    if json_out:
        console.print_json(data)
        return

    release = data["release"]
    state = "draft" if release.get("draft") else "published"
    console.console.print(f"[bold]Release {release.get('version') or release_id}[/] (id={release.get('id', release_id)}, {state})")
    table = Table(title="Packages")
    table.add_column("id", style="bold")
    table.add_column("name")
    table.add_column("version")
    for p in data["packages"]:
        table.add_row(str(p.get("id", "-")), str(p.get("name") or "-"), str(p.get("version") or "-"))
    console.console.print(table)


@app.command("publish")
def publish_release(
        release_id: int = typer.Argument(..., help="Release id."),
        dashboard_url: str | None = typer.Option(None, "--dashboard-url", help="Override dashboard URL."),
):
    cfg = load_config()
    client = make_client(cfg, dashboard_url_override=dashboard_url)
    try:
        run_with_client(client, lambda c: c.release_publish(release_id))
    except SmithClientError as e:
        raise client_failure(f"publish release {release_id}", e)
    console.ok(f"Release {release_id} published.")


@app.command("deploy")
def deploy_release(
        release_id: int = typer.Argument(..., help="Release id."),
        dashboard_url: str | None = typer.Option(None, "--dashboard-url", help="Override dashboard URL."),
):
    cfg = load_config()
    client = make_client(cfg, dashboard_url_override=dashboard_url)
    try:
        data = run_with_client(client, lambda c: c.release_deploy(release_id))
    except SmithClientError as e:
        raise client_failure(f"deploy release {release_id}", e)
    status = data.get("status") if isinstance(data, dict) else None
    console.ok(f"Deployment started for release {release_id}." + (f" Status: {status}" if status else ""))


distributions_app = typer.Typer(help="List distributions.")


@distributions_app.command("list")
def list_distributions(
        json_out: bool = typer.Option(False, "--json", help="Output JSON only."),
        dashboard_url: str | None = typer.Option(None, "--dashboard-url", help="Override dashboard URL."),
):
    cfg = load_config()
    client = make_client(cfg, dashboard_url_override=dashboard_url)
    try:
        data = run_with_client(client, lambda c: c.distributions_list())
    except SmithClientError as e:
        raise client_failure("list distributions", e)

    if json_out:
        console.print_json(data)
        return
    table = Table(title="Distributions")
    table.add_column("id", style="bold")
    table.add_column("name")
    table.add_column("architecture")
    table.add_column("description")
    for d in data.get("items") or []:
        table.add_row(
            str(d.get("id", "-")),
            str(d.get("name") or "-"),
            str(d.get("architecture") or "-"),
            str(d.get("description") or "-"),
        )
    console.console.print(table)
