from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

DEFAULT_BASE_URL = "http://localhost:3001"
DEFAULT_RECONNECT_DELAY = 5.0
DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_TIMEOUT = 10.0

_BASE_URL_ENV = "API_BASE_URL"
_WS_URL_ENV = "RELAY_WS_URL"
_RECONNECT_DELAY_ENV = "VIEWER_RECONNECT_DELAY"
_POLL_INTERVAL_ENV = "VIEWER_POLL_INTERVAL"
_TIMEOUT_ENV = "VIEWER_HTTP_TIMEOUT"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    ws_url: str = "ws://localhost:3001/ws"
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float = DEFAULT_TIMEOUT


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def derive_ws_url(base_url: str) -> str:
    """Map ``http(s)://host[:port]`` to ``ws(s)://host[:port]/ws``."""
    parts = urlsplit(base_url)
    scheme = "wss" if parts.scheme == "https" else "ws"
    return urlunsplit((scheme, parts.netloc, "/ws", "", ""))


def load_config(
    base_url: Optional[str] = None,
    ws_url: Optional[str] = None,
    reconnect_delay: Optional[float] = None,
    poll_interval: Optional[float] = None,
    timeout: Optional[float] = None,
) -> CLIConfig:
    url = (base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL).rstrip("/")
    live_url = ws_url or os.getenv(_WS_URL_ENV) or derive_ws_url(url)
    if reconnect_delay is None:
        reconnect_delay = _read_float(os.getenv(_RECONNECT_DELAY_ENV), DEFAULT_RECONNECT_DELAY)
    if poll_interval is None:
        poll_interval = _read_float(os.getenv(_POLL_INTERVAL_ENV), DEFAULT_POLL_INTERVAL)
    if timeout is None:
        timeout = _read_float(os.getenv(_TIMEOUT_ENV), DEFAULT_TIMEOUT)
    return CLIConfig(
        base_url=url,
        ws_url=live_url,
        reconnect_delay=reconnect_delay,
        poll_interval=poll_interval,
        timeout=timeout,
    )
