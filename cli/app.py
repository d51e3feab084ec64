from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.export import default_filename, render_export
from cli.live import LiveViewer
from cli.render import (
    render_health,
    render_history,
    render_latest,
    render_reading,
    render_status,
)


class RangeOption(str, Enum):
    one_hour = "1h"
    three_hours = "3h"
    six_hours = "6h"
    all = "all"


class ExportFormat(str, Enum):
    csv = "csv"
    json = "json"


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Terminal viewer for the telemetry relay.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Relay base URL (defaults to API_BASE_URL env or http://localhost:3001).",
    ),
    ws_url: Optional[str] = typer.Option(
        None,
        "--ws-url",
        help="Live channel URL (defaults to the base URL with a ws scheme and /ws path).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, ws_url=ws_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recent reading."""
    state = _get_state(ctx)
    render_latest(state.client.get_latest())


@app.command("history")
def history_command(
    ctx: typer.Context,
    time_range: RangeOption = typer.Option(RangeOption.three_hours, "--range", "-r", help="Time window."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Keep only the newest N readings."),
) -> None:
    """List recent readings with a trend chart and summary."""
    state = _get_state(ctx)
    render_history(state.client.get_history(time_range.value, limit))


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show whether the device reported recently."""
    state = _get_state(ctx)
    render_status(state.client.get_status())


@app.command("health")
def health_command(ctx: typer.Context) -> None:
    """Show relay health."""
    state = _get_state(ctx)
    render_health(state.client.get_health())


@app.command("send")
def send_command(
    ctx: typer.Context,
    temperature: float = typer.Option(..., "--temperature", "-t", help="Degrees Celsius."),
    humidity: int = typer.Option(..., "--humidity", "-u", help="Relative humidity percentage."),
    status: Optional[str] = typer.Option(None, "--status", help="Normal or Abnormal; derived when omitted."),
    device_id: Optional[str] = typer.Option(None, "--device-id", help="Source device identifier."),
) -> None:
    """Post a reading the way the sensor device does."""
    state = _get_state(ctx)
    payload: Dict[str, Any] = {"temperature": temperature, "humidity": humidity}
    if status:
        payload["status"] = status
    if device_id:
        payload["device_id"] = device_id
    reading = state.client.send_reading(payload)
    typer.secho(f"Reading accepted. id={reading.get('id')}", fg=typer.colors.GREEN)
    render_reading(reading)


@app.command("export")
def export_command(
    ctx: typer.Context,
    fmt: ExportFormat = typer.Option(ExportFormat.csv, "--format", "-f", help="Output format."),
    time_range: RangeOption = typer.Option(RangeOption.three_hours, "--range", "-r", help="Time window."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", dir_okay=False, help="Destination file (defaults to a dated name)."
    ),
) -> None:
    """Export readings to CSV or JSON."""
    state = _get_state(ctx)
    readings = state.client.get_history(time_range.value)
    try:
        content = render_export(readings, fmt.value)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    destination = output or Path(default_filename(fmt.value))
    destination.write_text(content, encoding="utf-8")
    typer.secho(f"Exported {len(readings)} readings to {destination}", fg=typer.colors.GREEN)


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    reconnect_delay: Optional[float] = typer.Option(
        None, "--reconnect-delay", help="Seconds to wait before reopening the live channel."
    ),
    poll_interval: Optional[float] = typer.Option(
        None, "--poll-interval", help="Seconds between polls while the live channel is down."
    ),
) -> None:
    """Follow readings live, polling the API while the live channel is unavailable."""
    state = _get_state(ctx)
    config = load_config(
        base_url=state.config.base_url,
        ws_url=state.config.ws_url,
        reconnect_delay=reconnect_delay,
        poll_interval=poll_interval,
        timeout=state.config.timeout,
    )
    viewer = LiveViewer(
        client=state.client,
        config=config,
        on_reading=render_reading,
        on_notice=lambda text: typer.secho(text, fg=typer.colors.YELLOW, err=True),
    )
    typer.echo(f"Watching {config.ws_url} (Ctrl+C to stop) ...")
    try:
        viewer.run()
    except KeyboardInterrupt:
        viewer.stop()
    typer.echo(f"Received {len(viewer.state.readings)} readings.")
