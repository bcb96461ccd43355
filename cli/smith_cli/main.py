from __future__ import annotations

import typer

from .auth_state import resolve_auth_context
from .commands import api_cmd, auth_cmd, config_cmd, devices_cmd, settings_cmd
from .commands.releases_cmd import app as releases_app
from .commands.releases_cmd import distributions_app
from .logging_ import setup_logging


def _build_app() -> typer.Typer:
    app = typer.Typer(
        name="smith",
        help="smith fleet CLI",
        no_args_is_help=True,
    )

    ctx = resolve_auth_context(check_remote=False)

    # Always available
    app.add_typer(settings_cmd.app, name="settings")
    app.add_typer(auth_cmd.app, name="auth")
    app.add_typer(config_cmd.app, name="config")
    app.command("api")(api_cmd.call_api)

    if ctx.state == "token_present":
        app.command("dashboard")(devices_cmd.dashboard)
        app.add_typer(devices_cmd.app, name="devices")
        app.add_typer(releases_app, name="releases")
        app.add_typer(distributions_app, name="distributions")

    @app.callback()
    def _main(
            verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logs."),
    ):
        setup_logging(verbose)

    return app


app = _build_app()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
