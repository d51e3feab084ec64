from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

import typer

SPARK_CHARS = "▁▂▃▄▅▆▇█"


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def sparkline(values: Sequence[float]) -> str:
    if not values:
        return ""
    low, high = min(values), max(values)
    span = high - low
    last = len(SPARK_CHARS) - 1
    if span == 0:
        return SPARK_CHARS[last // 2] * len(values)
    return "".join(SPARK_CHARS[round((value - low) / span * last)] for value in values)


def status_color(status: Any) -> str:
    return typer.colors.GREEN if status == "Normal" else typer.colors.RED


def format_reading(reading: Dict[str, Any]) -> str:
    return (
        f"{reading.get('timestamp')}  {reading.get('temperature')}°C  "
        f"{reading.get('humidity')}%  {reading.get('status')}  {reading.get('device_id')}"
    )


def render_reading(reading: Dict[str, Any]) -> None:
    typer.secho(format_reading(reading), fg=status_color(reading.get("status")))


def render_latest(reading: Dict[str, Any] | None) -> None:
    echo_heading("Latest Reading")
    if reading is None:
        typer.echo("No sensor data available.")
        return
    echo_key_values(
        [
            ("id", reading.get("id")),
            ("temperature", reading.get("temperature")),
            ("humidity", reading.get("humidity")),
            ("status", reading.get("status")),
            ("device_id", reading.get("device_id")),
            ("received_at", reading.get("received_at")),
        ]
    )


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Device Status")
    connected = bool(payload.get("connected"))
    typer.secho(
        f"connected: {connected}",
        fg=typer.colors.GREEN if connected else typer.colors.RED,
    )
    echo_key_values(
        [
            ("last_update", payload.get("lastUpdate") or "never"),
            ("total_readings", payload.get("totalReadings")),
            ("uptime", payload.get("uptime")),
        ]
    )


def render_health(payload: Dict[str, Any]) -> None:
    echo_heading("Health")
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("timestamp", payload.get("timestamp")),
            ("uptime", payload.get("uptime")),
            ("last_update", payload.get("lastUpdate") or "never"),
        ]
    )


def render_history(readings: List[Dict[str, Any]]) -> None:
    echo_heading(f"History ({len(readings)} readings)")
    if not readings:
        typer.echo("No readings in this range.")
        return

    for reading in readings:
        render_reading(reading)

    temperatures = [float(r.get("temperature") or 0.0) for r in readings]
    humidities = [float(r.get("humidity") or 0) for r in readings]
    typer.echo()
    echo_heading("Trends")
    typer.echo(f"temperature {sparkline(temperatures)}  {min(temperatures)}–{max(temperatures)}°C")
    typer.echo(f"humidity    {sparkline(humidities)}  {min(humidities):.0f}–{max(humidities):.0f}%")

    normal = sum(1 for r in readings if r.get("status") == "Normal")
    typer.echo()
    echo_heading("Summary")
    echo_key_values(
        [
            ("total", len(readings)),
            ("normal", normal),
            ("abnormal", len(readings) - normal),
            ("avg_humidity", f"{round(sum(humidities) / len(humidities))}%"),
        ]
    )
