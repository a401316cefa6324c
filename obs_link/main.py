"""
main.py — obs-link command line.

CLI:
  python run.py check                       connect, print versions and scenes
  python run.py watch                       print OBS notifications as they arrive
  python run.py call GetSceneList           send any request, print the reply
  python run.py call SetCurrentScene -f scene-name=BRB
  python run.py init-config                 create a default config.yaml
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from obs_link import __version__
from obs_link.config import Settings, reload_settings
from obs_link.core import OBSError, init_obs_client
from obs_link.events import EventKind

console = Console()
app = typer.Typer(name="obs-link", help="obs-websocket client — inspect and drive OBS from the terminal")


def setup_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def load_settings(
    config: Optional[Path],
    host: Optional[str],
    port: Optional[int],
    password: Optional[str],
) -> Settings:
    settings = reload_settings(config)
    if host:
        settings.obs.host = host
    if port:
        settings.obs.port = port
    if password is not None:
        settings.obs.password = password
    setup_logging(settings.logging.level)
    return settings


def parse_fields(fields: list[str], raw_json: Optional[str]) -> dict:
    """Merge --json and repeated --field key=value options into request fields."""
    result: dict[str, Any] = {}
    if raw_json:
        data = json.loads(raw_json)
        if not isinstance(data, dict):
            raise typer.BadParameter("--json must be a JSON object")
        result.update(data)
    for item in fields:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {item!r}")
        try:
            result[key] = json.loads(value)
        except ValueError:
            result[key] = value
    return result


def describe_event(event: Any) -> str:
    try:
        data = asdict(event)
    except TypeError:
        return repr(event)
    return ", ".join(f"{k}={getattr(v, 'value', v)}" for k, v in data.items())


# ──────────────────────────────────────────────────────────────────────────────
# CLI commands
# ──────────────────────────────────────────────────────────────────────────────

ConfigOpt = typer.Option(None, "--config", "-c", help="Path to config.yaml")
HostOpt = typer.Option(None, "--host", help="obs-websocket host")
PortOpt = typer.Option(None, "--port", "-p", help="obs-websocket port")
PasswordOpt = typer.Option(None, "--password", help="obs-websocket password")


@app.command("check")
def check_obs(
    config: Optional[Path] = ConfigOpt,
    host: Optional[str] = HostOpt,
    port: Optional[int] = PortOpt,
    password: Optional[str] = PasswordOpt,
):
    """Test obs-websocket connectivity and authentication."""
    settings = load_settings(config, host, port, password)

    async def _check():
        client = init_obs_client(settings.obs.request_timeout, settings.obs.open_timeout)
        await client.connect(settings.obs.url, settings.obs.password)
        try:
            version = await client.get_version()
            console.print(f"[green]✓ Connected to OBS[/green] at {settings.obs.url}")
            console.print(f"  OBS version:       {version['obs_studio_version']}")
            console.print(f"  WebSocket version: {version['obs_websocket_version']}")
            scenes = await client.get_scenes()
            console.print(f"  Scenes ({len(scenes)}): {', '.join(s['name'] for s in scenes)}")
            transition = await client.get_current_transition()
            console.print(f"  Transition: {transition['name']} ({transition['duration_ms']}ms)")
        finally:
            await client.disconnect()

    try:
        asyncio.run(_check())
    except OBSError as e:
        console.print(f"[red]✗ {type(e).__name__}:[/red] {e}")
        sys.exit(1)


@app.command("watch")
def watch_obs(
    config: Optional[Path] = ConfigOpt,
    host: Optional[str] = HostOpt,
    port: Optional[int] = PortOpt,
    password: Optional[str] = PasswordOpt,
):
    """Print OBS notifications until Ctrl-C or OBS exits."""
    settings = load_settings(config, host, port, password)

    async def _watch():
        client = init_obs_client(settings.obs.request_timeout, settings.obs.open_timeout)
        done = asyncio.Event()

        def show(kind: EventKind):
            def _print(event: Any) -> None:
                console.print(f"[cyan]{kind.value:<30}[/cyan] {describe_event(event)}")
            return _print

        for kind in EventKind:
            if kind not in (EventKind.CONNECTED, EventKind.DISCONNECTED):
                client.on(kind, show(kind))
        client.on_disconnect(lambda _event: done.set())

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, done.set)
            except NotImplementedError:
                pass  # Windows

        await client.connect(settings.obs.url, settings.obs.password)
        console.rule(f"[bold blue]obs-link v{__version__}[/bold blue] watching {settings.obs.url}")
        await done.wait()
        await client.disconnect()

    try:
        asyncio.run(_watch())
    except OBSError as e:
        console.print(f"[red]✗ {type(e).__name__}:[/red] {e}")
        sys.exit(1)


@app.command("call")
def call_request(
    request_type: str = typer.Argument(..., help="obs-websocket request type, e.g. GetSceneList"),
    field: list[str] = typer.Option([], "--field", "-f", help="Request field as key=value (repeatable)"),
    raw_json: Optional[str] = typer.Option(None, "--json", help="Request fields as a JSON object"),
    config: Optional[Path] = ConfigOpt,
    host: Optional[str] = HostOpt,
    port: Optional[int] = PortOpt,
    password: Optional[str] = PasswordOpt,
):
    """Send one request and print the reply."""
    settings = load_settings(config, host, port, password)
    fields = parse_fields(field, raw_json)

    async def _call():
        client = init_obs_client(settings.obs.request_timeout, settings.obs.open_timeout)
        await client.connect(settings.obs.url, settings.obs.password)
        try:
            return await client.send_request(request_type, fields)
        finally:
            await client.disconnect()

    try:
        reply = asyncio.run(_call())
    except OBSError as e:
        console.print(f"[red]✗ {type(e).__name__}:[/red] {e}")
        sys.exit(1)
    console.print_json(data=reply)


@app.command("list-events")
def list_events_cmd():
    """Print the notification kinds a subscriber can listen for."""
    from obs_link.core.dispatcher import DECODERS

    table = Table(title="Notification kinds", show_header=True)
    table.add_column("Kind", style="cyan")
    table.add_column("OBS update-type", style="green")
    for kind in EventKind:
        update_types = [u for u, (k, _) in DECODERS.items() if k is kind]
        table.add_row(kind.value, ", ".join(update_types) or "[dim](session)[/dim]")
    console.print(table)


@app.command("init-config")
def init_config(
    output: Path = typer.Option(Path("config.yaml"), "--output", "-o"),
):
    """Generate a default config.yaml."""
    s = Settings.load()
    s.to_yaml(output)
    console.print(f"[green]✓[/green] Config written to [bold]{output}[/bold]")


if __name__ == "__main__":
    app()
