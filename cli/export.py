"""CSV and JSON export of readings fetched from the relay."""

from __future__ import annotations

import csv
import io
import json
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

CSV_HEADER = ("Timestamp", "Temperature (°C)", "Humidity (%)", "Status", "Device ID")
DEFAULT_DEVICE_ID = "ESP8266_DHT11"
FILE_PREFIX = "esp8266-dht11-data"


def _format_timestamp(value: Any) -> str:
    if not isinstance(value, str) or not value:
        return ""
    candidate = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def to_csv(readings: Iterable[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for reading in readings:
        writer.writerow(
            (
                _format_timestamp(reading.get("timestamp")),
                reading.get("temperature"),
                reading.get("humidity"),
                reading.get("status"),
                reading.get("device_id") or DEFAULT_DEVICE_ID,
            )
        )
    return buffer.getvalue()


def to_json(readings: Iterable[Dict[str, Any]]) -> str:
    return json.dumps(list(readings), indent=2)


def default_filename(fmt: str, today: Optional[date] = None) -> str:
    day = (today or date.today()).isoformat()
    return f"{FILE_PREFIX}-{day}.{fmt}"


def render_export(readings: List[Dict[str, Any]], fmt: str) -> str:
    """Serialize ``readings`` as ``csv`` or ``json``; empty data sets are refused."""
    if not readings:
        raise ValueError("No data available to export.")
    if fmt == "csv":
        return to_csv(readings)
    if fmt == "json":
        return to_json(readings)
    raise ValueError(f"Unsupported export format {fmt!r}.")
