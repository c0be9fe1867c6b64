"""
CLI tool for running and inspecting the chat relay.

Provides commands for starting the server under uvicorn and for viewing the
effective configuration.
"""

import copy

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from uvicorn.config import LOGGING_CONFIG

from chat_relay.settings import app_settings

# Initialize Typer app with help text
typer_app = typer.Typer(
    name="chat-relay",
    help="Chat relay CLI - Run the WebSocket chat server",
    add_completion=False,
)
console = Console()


def build_log_config() -> dict:
    """
    Uvicorn logging config with monitoring paths filtered from access logs.

    Returns:
        dict: Copy of uvicorn's default config with ExcludeMetricsFilter
        attached to the access handler.
    """
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config.setdefault("filters", {})["exclude_metrics"] = {
        "()": "chat_relay.uvicorn_filters.ExcludeMetricsFilter"
    }
    log_config["handlers"]["access"]["filters"] = ["exclude_metrics"]
    return log_config


@typer_app.command(name="serve")
def serve(
    host: str = typer.Option(
        app_settings.HOST, "--host", help="Interface to bind to"
    ),
    port: int = typer.Option(
        app_settings.PORT, "--port", "-p", help="Port to listen on"
    ),
    reload: bool = typer.Option(
        False, "--reload", help="Restart the server when code changes"
    ),
):
    """
    Start the chat relay.

    Clients connect to ws://<host>:<port><WS_PATH>.

    Example:
        python cli.py serve --port 5000
    """
    console.print(
        Panel.fit(
            f"[bold cyan]Chat relay[/bold cyan] on "
            f"[yellow]ws://{host}:{port}{app_settings.WS_PATH}[/yellow]",
            border_style="cyan",
        )
    )
    uvicorn.run(
        "chat_relay:application",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=build_log_config(),
    )


@typer_app.command(name="settings")
def show_settings():
    """
    Display a table of the effective settings.

    Values come from the environment, falling back to defaults.

    Example:
        python cli.py settings
    """
    console.print()
    table = Table("Setting", "Value", title="Chat relay settings")

    for name, value in app_settings.model_dump().items():
        table.add_row(f"[cyan]{name}[/cyan]", str(value))

    console.print(table)
    console.print()


if __name__ == "__main__":
    typer_app()
