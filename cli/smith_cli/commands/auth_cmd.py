from __future__ import annotations

import typer

from .. import console
from ..auth_state import resolve_auth_context
from ..config import load_config, save_config

app = typer.Typer(help="Auth commands.")

_STATE_MESSAGES = {
    "no_dashboard_url": "Dashboard URL is not configured. Run `smith settings init` first.",
    "no_token": "Not logged in. Run `smith auth login`.",
    "invalid_token": "Token was rejected by the API. Run `smith auth login` again.",
    "unreachable": "API is unreachable or returned an error.",
}


@app.command("login")
def login(
    token: str = typer.Option(..., "--token", prompt=True, hide_input=True, help="Bearer token issued by the identity provider."),
):
    token = token.strip()
    if not token:
        console.err("Token cannot be empty.")
        raise typer.Exit(code=2)
    cfg = load_config()
    cfg.auth.token = token
    cfg.auth.token_type = "bearer"
    save_path = save_config(cfg)
    console.ok(f"Login successful. Token saved to {save_path}.")


@app.command("logout", help="Clear the stored API token.")
def logout():
    cfg = load_config()
    cfg.auth.token = ""
    save_path = save_config(cfg)
    console.ok(f"Token cleared from {save_path}.")


@app.command("status")
def status(
    offline: bool = typer.Option(False, "--offline", help="Skip the API round trip."),
):
    ctx = resolve_auth_context(check_remote=not offline)
    if ctx.state == "authed":
        console.ok(f"Authenticated against {ctx.origin}.")
        return
    if ctx.state == "token_present":
        console.info("Token present (not verified).")
        return
    console.err(_STATE_MESSAGES.get(ctx.state, ctx.state))
    raise typer.Exit(code=2)
