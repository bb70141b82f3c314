"""
CLI tool for the LMS network presence service.

Provides commands for running the server and for inspecting or clearing
the connections tracked by a running instance.
"""

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Initialize Typer app with help text
typer_app = typer.Typer(
    name="presence-cli",
    help="LMS network presence CLI - Run the service and manage tracked connections",
    add_completion=False,
)
console = Console()

DEFAULT_BASE_URL = "http://localhost:8000"


def _client(base_url: str, token: str) -> httpx.Client:
    return httpx.Client(
        base_url=base_url,
        cookies={"auth-token": token},
        timeout=10.0,
    )


def _fail(response: httpx.Response) -> None:
    try:
        detail = response.json().get("error", response.text)
    except ValueError:
        detail = response.text

    console.print(f"[red]✗ {response.status_code}[/red] {detail}")
    raise typer.Exit(code=1)


@typer_app.command(name="serve")
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on changes"),
):
    """
    Run the service with uvicorn.

    Runs a single worker: the connection registry is per-process.

    Example:
        python cli.py serve --port 8000
    """
    import uvicorn

    uvicorn.run(
        "lms_presence:application",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=1,
    )


@typer_app.command(name="connections")
def connections(
    token: str = typer.Option(
        ..., "--token", "-t", envvar="LMS_AUTH_TOKEN", help="Teacher session token"
    ),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Service base URL"
    ),
):
    """
    Display a table of active connections on a running instance.

    Example:
        python cli.py connections --token "$LMS_AUTH_TOKEN"
    """
    with _client(base_url, token) as client:
        response = client.get("/api/network/connections")

    if response.status_code != 200:
        _fail(response)

    rows = response.json()["data"]

    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Active Connections[/bold cyan]", border_style="cyan"
        )
    )
    console.print()

    table = Table(
        "Session",
        "User",
        "Role",
        "IP",
        "Location",
        "VPN/Proxy",
        "Last activity",
        show_lines=True,
    )

    for row in rows:
        location = ", ".join(
            part for part in (row.get("city"), row.get("country")) if part
        )
        flags = "[yellow]yes[/yellow]" if row["is_vpn"] or row["is_proxy"] else "no"
        table.add_row(
            row["session_id"],
            row.get("user_name") or row.get("user_email") or "[dim]anonymous[/dim]",
            row.get("user_role") or "-",
            row["ip_address"],
            location or "-",
            flags,
            row["last_activity"],
        )

    console.print(table)
    console.print()
    console.print(f"[bold]Summary:[/bold] {len(rows)} active connections")
    console.print()


@typer_app.command(name="clear-connections")
def clear_connections(
    token: str = typer.Option(
        ..., "--token", "-t", envvar="LMS_AUTH_TOKEN", help="Teacher session token"
    ),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Service base URL"
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Skip the confirmation prompt"
    ),
):
    """
    Remove every tracked connection on a running instance.

    Example:
        python cli.py clear-connections --token "$LMS_AUTH_TOKEN" --yes
    """
    if not yes and not typer.confirm("Remove ALL tracked connections?"):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(code=0)

    with _client(base_url, token) as client:
        response = client.post("/api/network/connections/clear")

    if response.status_code != 200:
        _fail(response)

    deleted = response.json()["deletedCount"]
    console.print(f"[green]✓[/green] Removed {deleted} connections")


if __name__ == "__main__":
    typer_app()
