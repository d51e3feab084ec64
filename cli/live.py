"""Live terminal viewer: websocket updates with a polling fallback."""

from __future__ import annotations

import json
import threading
import time
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

import httpx
import typer
from websockets.exceptions import WebSocketException
from websockets.sync.client import connect as ws_connect

from cli.config import CLIConfig

INITIAL_HISTORY_LIMIT = 100

Connect = Callable[[str], AbstractContextManager[Iterable[Any]]]


class RelayApi(Protocol):
    def get_history(self, time_range: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]: ...

    def get_latest(self) -> Optional[Dict[str, Any]]: ...

    def get_status(self) -> Dict[str, Any]: ...


@dataclass
class ViewerState:
    readings: List[Dict[str, Any]] = field(default_factory=list)
    current: Optional[Dict[str, Any]] = None
    channel_open: bool = False
    device_connected: Optional[bool] = None
    last_update: Optional[str] = None
    error: Optional[str] = None

    def apply(self, reading: Dict[str, Any]) -> bool:
        """Record ``reading`` unless a reading with the same id was already seen."""
        self.current = reading
        reading_id = reading.get("id")
        if reading_id is not None and any(r.get("id") == reading_id for r in self.readings):
            return False
        self.readings.append(reading)
        return True


class LiveViewer:
    """Follows the relay's live channel, polling the HTTP API while it is down."""

    def __init__(
        self,
        client: RelayApi,
        config: CLIConfig,
        on_reading: Callable[[Dict[str, Any]], None],
        on_notice: Callable[[str], None],
        connect: Optional[Connect] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.config = config
        self.state = ViewerState()
        self._on_reading = on_reading
        self._on_notice = on_notice
        self._connect = connect or self._default_connect
        self._sleep = sleep
        self._clock = clock
        self._last_poll: Optional[float] = None
        self._stopped = threading.Event()

    def stop(self) -> None:
        self._stopped.set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def run(self) -> None:
        self.load_initial()
        while not self.stopped:
            try:
                with self._connect(self.config.ws_url) as connection:
                    self._channel_opened()
                    for raw in connection:
                        self.handle_message(raw)
                        if self.stopped:
                            break
            except (OSError, WebSocketException) as exc:
                self._channel_failed(exc)
            else:
                self._channel_closed()
            if self.stopped:
                break
            self.poll_if_due()
            self._sleep(self.config.reconnect_delay)

    def load_initial(self) -> None:
        try:
            readings = self.client.get_history(limit=INITIAL_HISTORY_LIMIT)
        except (httpx.HTTPError, typer.Exit):
            self.state.error = "Failed to fetch sensor data. Is the relay running?"
            self._on_notice(self.state.error)
            return
        for reading in readings:
            if self.state.apply(reading):
                self._on_reading(reading)

    def handle_message(self, raw: Any) -> None:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            self._on_notice("Ignoring malformed live message.")
            return
        if not isinstance(message, dict):
            return
        data = message.get("data")
        if message.get("type") != "sensor-data" or not isinstance(data, dict):
            return
        self.state.error = None
        self.state.last_update = data.get("received_at")
        if self.state.apply(data):
            self._on_reading(data)

    def poll_if_due(self) -> bool:
        """Poll latest reading and device status when the poll interval elapsed."""
        if self.state.channel_open:
            return False
        now = self._clock()
        if self._last_poll is not None and now - self._last_poll < self.config.poll_interval:
            return False
        self._last_poll = now

        try:
            latest = self.client.get_latest()
            status = self.client.get_status()
        except (httpx.HTTPError, typer.Exit):
            self.state.device_connected = False
            return True

        if latest is not None and self.state.apply(latest):
            self._on_reading(latest)
        self.state.device_connected = bool(status.get("connected"))
        self.state.last_update = status.get("lastUpdate") or self.state.last_update
        return True

    def _channel_opened(self) -> None:
        self.state.channel_open = True
        self.state.error = None
        self._on_notice("Live channel connected.")

    def _channel_failed(self, exc: Exception) -> None:
        self.state.channel_open = False
        self.state.error = f"Live channel unavailable ({exc}); falling back to polling."
        self._on_notice(self.state.error)

    def _channel_closed(self) -> None:
        self.state.channel_open = False
        self._on_notice(
            f"Live channel closed; reconnecting in {self.config.reconnect_delay:g}s."
        )

    def _default_connect(self, url: str) -> AbstractContextManager[Iterable[Any]]:
        return ws_connect(url, open_timeout=self.config.timeout)
