"""Entry point: invoice commands, or the HTTP API with ``--mode api``."""

from enum import Enum
from typing import Optional

import typer

from hisaab.cli import app as cli_app
from hisaab.config import get_config


class RunMode(str, Enum):
    CLI = "cli"
    API = "api"


app = typer.Typer(
    help="Hisaab invoice tool - CLI or API mode.",
    no_args_is_help=False,
)
app.add_typer(cli_app, name="", help="Invoice CLI commands.")


def _serve(host: Optional[str], port: Optional[int]) -> None:
    import uvicorn

    config = get_config()
    uvicorn.run(
        "hisaab.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=False,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    mode: RunMode = typer.Option(
        RunMode.CLI,
        "--mode",
        case_sensitive=False,
        help="Run mode: cli (default) or api",
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="API bind address (default: HISAAB_API_HOST)"
    ),
    port: Optional[int] = typer.Option(
        None, "--port", min=1, max=65535, help="API port (default: HISAAB_API_PORT)"
    ),
) -> None:
    """Hisaab invoice tool - CLI or API mode."""
    if mode is RunMode.API:
        _serve(host, port)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


if __name__ == "__main__":
    app()
