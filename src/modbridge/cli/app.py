"""Typer CLI application."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from modbridge import __version__
from modbridge.core.config import (
    ConfigValidationError,
    generate_config,
    get_config_dir,
    load_config,
    validate_config,
)
from modbridge.core.exceptions import RequestValidationError
from modbridge.core.identity import load_or_create_identity
from modbridge.core.installer import InstallOrchestrator
from modbridge.core.instances import InstanceLocator, build_status_report
from modbridge.core.models import BridgeConfig, InstallMode, InstallRequest
from modbridge.server.app import create_app

app = typer.Typer(
    name="modbridge",
    help="Local bridge that installs Minecraft modpacks for a web application",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"modbridge {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load_config_or_exit() -> BridgeConfig:
    try:
        config = load_config()
    except ConfigValidationError as e:
        console.print(f"[red]Error:[/red] Invalid config.toml: {e}")
        raise typer.Exit(code=1) from None

    errors = validate_config(config)
    for error in errors:
        console.print(f"[red]Error:[/red] {error.field}: {error.message}")
    if errors:
        raise typer.Exit(code=1)
    return config


@app.callback()
def callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
) -> None:
    """Local bridge that installs Minecraft modpacks for a web application."""
    configure_logging(verbose)


@app.command()
def serve(
    host: Annotated[
        str | None,
        typer.Option("--host", help="Address to listen on."),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Port to listen on."),
    ] = None,
) -> None:
    """Run the HTTP bridge until stopped or asked to terminate."""
    config = _load_config_or_exit()
    identity = load_or_create_identity()
    application = create_app(config, identity)

    server = uvicorn.Server(
        uvicorn.Config(
            application,
            host=host or config.host,
            port=port or config.port,
            log_config=None,
        )
    )

    def request_exit() -> None:
        server.should_exit = True

    application.state.request_exit = request_exit

    console.print(
        f"Modpack Bridge listening on http://{host or config.host}:"
        f"{port or config.port}"
    )
    server.run()


@app.command()
def status(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output in JSON format."),
    ] = False,
) -> None:
    """Show the device token and discovered Minecraft instances."""
    config = _load_config_or_exit()
    identity = load_or_create_identity()
    locator = InstanceLocator(minecraft_dir=config.minecraft_dir)
    report = build_status_report(locator, identity)

    if json_output:
        data = report.model_dump(mode="json", by_alias=True)
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    console.print(f"[bold]Modpack Bridge[/bold] {report.version} ({report.os})")
    console.print(f"Device token: {report.token}")
    console.print(f"Minecraft directory: {report.mc_path or '[dim]unknown[/dim]'}")

    if not report.instances:
        console.print("[yellow]No Minecraft instances found.[/yellow]")
        return

    table = Table(title="Instances")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Path")
    for instance in report.instances:
        table.add_row(instance.id, instance.display_name, str(instance.root_path))
    console.print(table)


@app.command()
def install(
    manifest: Annotated[
        Path,
        typer.Argument(help="JSON file with an items list or a full request."),
    ],
    instance: Annotated[
        str | None,
        typer.Option("--instance", "-i", help="Target instance id."),
    ] = None,
    game_dir: Annotated[
        Path | None,
        typer.Option("--game-dir", help="Explicit target directory."),
    ] = None,
    mode: Annotated[
        InstallMode | None,
        typer.Option("--mode", "-m", help="patch keeps files, full wipes first."),
    ] = None,
) -> None:
    """Install files listed in a manifest, as the web client would.

    Example:
        modbridge install pack.json --instance ver_fabric-1_21_4 --mode full
    """
    try:
        payload = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error:[/red] Cannot read manifest: {e}")
        raise typer.Exit(code=1) from None

    if isinstance(payload, list):
        payload = {"items": payload}
    if isinstance(payload, dict):
        if instance is not None:
            payload["instanceId"] = instance
        if game_dir is not None:
            payload["gameDir"] = str(game_dir)
        if mode is not None:
            payload["mode"] = mode.value

    config = _load_config_or_exit()

    async def _install() -> None:
        request = InstallRequest.from_payload(payload)
        async with InstallOrchestrator(config=config) as orchestrator:
            result = await orchestrator.install_files(request)

        if not result.success:
            console.print(f"[red]Error:[/red] Install failed: {result.error}")
            raise typer.Exit(code=1)

        for path in result.removed:
            console.print(f"[yellow]Removed[/yellow] {path}")
        for path in result.installed:
            console.print(f"✓ {path}", style="green")
        if result.skipped:
            console.print(
                f"[yellow]Warning:[/yellow] Skipped {result.skipped} "
                "unusable item(s)."
            )
        console.print(f"\n[bold]Installed into {result.root}[/bold]")

    try:
        asyncio.run(_install())
    except RequestValidationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from None


@app.command()
def init(
    minecraft_dir: Annotated[
        Path | None,
        typer.Option("--minecraft-dir", help="Override the .minecraft location."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing configuration file.",
        ),
    ] = False,
) -> None:
    """Create config.toml with default settings."""
    try:
        config_path = generate_config(minecraft_dir=minecraft_dir, force=force)
    except FileExistsError:
        console.print(
            "[red]Error:[/red] config.toml already exists. Use --force to overwrite."
        )
        raise typer.Exit(code=1) from None

    console.print(f"✓ Created {config_path}", style="green")
    console.print(f"Configuration stored in: {get_config_dir()}")


@app.command()
def token() -> None:
    """Print this device's identity token."""
    identity = load_or_create_identity()
    typer.echo(identity.token)
