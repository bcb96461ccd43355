from __future__ import annotations

import typer
from rich.table import Table

from smith_client import ConfigLoadError, SmithClient, SmithClientError

from .. import console
from ..config import load_config
from ..formatting import format_labels, format_last_seen, sort_by_last_seen
from ..http import client_failure, make_client, run_with_client

app = typer.Typer(help="Inspect devices in the fleet.")

_SUMMARY_KEYS = ("total_count", "online_count", "offline_count", "outdated_count", "archived_count")


def _device_table(title: str, items: list[dict]) -> Table:
    table = Table(title=title)
    table.add_column("id", style="bold")
    table.add_column("serial")
    table.add_column("approved")
    table.add_column("release")
    table.add_column("target")
    table.add_column("last_seen")
    table.add_column("labels")
    for d in items:
        table.add_row(
            str(d.get("id", "-")),
            str(d.get("serial_number") or "-"),
            "yes" if d.get("approved") else "no",
            str(d.get("release_id") or "-"),
            str(d.get("target_release_id") or "-"),
            format_last_seen(d.get("last_seen")),
            format_labels(d.get("labels")),
        )
    return table


@app.command("list")
def list_devices(
        label: list[str] = typer.Option([], "--label", help="Filter by label key=value (repeatable)."),
        online: bool | None = typer.Option(None, "--online/--offline", help="Filter by online status."),
        outdated: bool = typer.Option(False, "--outdated", help="Only devices not on their target release."),
        search: str | None = typer.Option(None, "--search", help="Match serial number, hostname or model."),
        limit: int = typer.Option(100, "--limit", min=1, max=1000, help="Maximum devices to return."),
        offset: int = typer.Option(0, "--offset", min=0, help="Devices to skip."),
        json_out: bool = typer.Option(False, "--json", help="Output JSON only."),
        dashboard_url: str | None = typer.Option(None, "--dashboard-url", help="Override dashboard URL."),
):
    cfg = load_config()
    client = make_client(cfg, dashboard_url_override=dashboard_url)
    try:
        data = run_with_client(
            client,
            lambda c: c.devices_list(
                labels=label or None,
                online=online,
                outdated=True if outdated else None,
                search=search,
                limit=limit,
                offset=offset,
            ),
        )
    except SmithClientError as e:
        raise client_failure("list devices", e)

    if json_out:
        console.print_json(data)
        return
    items = data.get("items") if isinstance(data, dict) else []
    console.console.print(_device_table("Devices", items or []))


@app.command("show")
def show_device(
        serial: str = typer.Argument(..., help="Device serial number."),
        json_out: bool = typer.Option(False, "--json", help="Output JSON only."),
        dashboard_url: str | None = typer.Option(None, "--dashboard-url", help="Override dashboard URL."),
):
    cfg = load_config()
    client = make_client(cfg, dashboard_url_override=dashboard_url)
    try:
        data = run_with_client(client, lambda c: c.device_get(serial))
    except SmithClientError as e:
        raise client_failure(f"get device {serial}", e)

    if json_out:
        console.print_json(data)
        return
    console.console.print(f"[bold]{data.get('serial_number') or serial}[/] (id={data.get('id', '-')})")
    console.console.print(f"approved: {'yes' if data.get('approved') else 'no'}")
    console.console.print(f"release: {data.get('release_id') or '-'} -> target: {data.get('target_release_id') or '-'}")
    console.console.print(f"last seen: {format_last_seen(data.get('last_seen'))}")
    console.console.print(f"labels: {format_labels(data.get('labels'))}")
    note = data.get("note")
    if note:
        console.console.print(f"note: {note}")


async def _dashboard_snapshot(client: SmithClient) -> dict:
    try:
        service = await client.service_config()
    except ConfigLoadError:
        service = None
    excluded = list(service.excluded_labels) if service else []
    summary = await client.dashboard_get()
    offline = await client.devices_list(online=False, exclude_labels=excluded)
    outdated = await client.devices_list(outdated=True, exclude_labels=excluded)
    return {
        "summary": summary,
        "excluded_labels": excluded,
        "offline": sort_by_last_seen(offline.get("items") or []),
        "outdated": sort_by_last_seen(outdated.get("items") or []),
    }


def dashboard(
        json_out: bool = typer.Option(False, "--json", help="Output JSON only."),
        dashboard_url: str | None = typer.Option(None, "--dashboard-url", help="Override dashboard URL."),
):
    """Fleet overview: counts plus offline and outdated devices."""
    cfg = load_config()
    client = make_client(cfg, dashboard_url_override=dashboard_url)
    try:
        snapshot = run_with_client(client, _dashboard_snapshot)
    except SmithClientError as e:
        raise client_failure("load dashboard", e)

    if json_out:
        console.print_json(snapshot)
        return

    summary = snapshot["summary"]
    table = Table(title="Fleet")
    for key in _SUMMARY_KEYS:
        table.add_column(key.removesuffix("_count"))
    table.add_row(*(str(summary.get(key, "-")) for key in _SUMMARY_KEYS))
    console.console.print(table)
    if snapshot["excluded_labels"]:
        console.info(f"Excluding labels: {', '.join(snapshot['excluded_labels'])}")
    console.console.print(_device_table("Offline", snapshot["offline"]))
    console.console.print(_device_table("Outdated", snapshot["outdated"]))
