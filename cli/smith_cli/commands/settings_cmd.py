from __future__ import annotations

import os

import typer

from .. import console
from ..config import config_path, config_url, default_config, load_config, normalize_base_url, save_config

app = typer.Typer(help="Manage local CLI settings (~/.config/smith/config.toml).")


@app.command("init")
def init_settings(
        force: bool = typer.Option(False, "--force", help="Overwrite existing config."),
        dashboard_url: str = typer.Option(
            ...,
            "--dashboard-url",
            prompt="Dashboard URL",
            help="Dashboard URL serving /api/config, like http://127.0.0.1:3000",
        ),
):
    path = config_path()
    if os.path.exists(path) and not force:
        console.info(f"Config already exists: {path}")
        console.info("Use --force to overwrite.")
        return

    cfg = default_config()
    cfg.dashboard_url = normalize_base_url(dashboard_url, warn=True)
    if not cfg.dashboard_url:
        console.err("Dashboard URL cannot be empty.")
        raise typer.Exit(code=2)
    saved = save_config(cfg)
    console.ok(f"Config written: {saved}")


@app.command("show")
def show_settings():
    cfg = load_config()
    token_state = "(set)" if (cfg.auth.token or "").strip() else "(empty)"
    console.console.print(
        f"dashboard_url={cfg.dashboard_url} config_url={config_url(cfg)} "
        f"timeout_s={cfg.timeout_s} token={token_state} token_type={cfg.auth.token_type}"
    )


@app.command("get")
def get_setting(
        key: str = typer.Argument(..., help="Setting key (dashboard_url, timeout_s)."),
):
    cfg = load_config()
    k = key.strip().lower()
    if k == "dashboard_url":
        console.console.print(cfg.dashboard_url)
        return
    if k == "timeout_s":
        console.console.print(str(cfg.timeout_s))
        return
    console.err(f"Unknown setting: {key}")
    raise typer.Exit(code=2)


@app.command("set")
def set_setting(
        dashboard_url: str | None = typer.Option(None, "--dashboard-url", help="Set dashboard URL."),
        timeout_s: float | None = typer.Option(None, "--timeout", help="Set request timeout in seconds."),
):
    cfg = load_config()
    if dashboard_url is not None:
        cfg.dashboard_url = normalize_base_url(dashboard_url, warn=True)
    if timeout_s is not None:
        if timeout_s <= 0:
            console.err("Timeout must be positive.")
            raise typer.Exit(code=2)
        cfg.timeout_s = timeout_s
    saved = save_config(cfg)
    console.ok(f"Settings updated: {saved}")
