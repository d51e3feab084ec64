from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import httpx

from cli.config import CLIConfig
from cli.live import LiveViewer


def _reading(reading_id: str, temperature: float = 22.0) -> Dict[str, Any]:
    return {
        "id": reading_id,
        "temperature": temperature,
        "humidity": 40,
        "status": "Normal",
        "device_id": "ESP8266_DHT11",
        "timestamp": "2024-01-01T12:00:00Z",
        "received_at": "2024-01-01T12:00:00Z",
    }


def _message(reading: Dict[str, Any]) -> str:
    return json.dumps({"type": "sensor-data", "data": reading})


class StubApi:
    def __init__(self, history: Optional[List[Dict[str, Any]]] = None, fail: bool = False) -> None:
        self.history = history or []
        self.fail = fail
        self.latest_calls = 0
        self.status_calls = 0

    def get_history(self, time_range: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        if self.fail:
            raise httpx.ConnectError("refused")
        return list(self.history)

    def get_latest(self) -> Optional[Dict[str, Any]]:
        self.latest_calls += 1
        if self.fail:
            raise httpx.ConnectError("refused")
        return _reading("polled")

    def get_status(self) -> Dict[str, Any]:
        self.status_calls += 1
        return {"connected": True, "lastUpdate": "2024-01-01T12:00:00Z"}


class FakeTime:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def clock(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


CONFIG = CLIConfig(base_url="http://relay", ws_url="ws://relay/ws", reconnect_delay=5, poll_interval=30)


def _viewer(api: StubApi, connect, fake_time: FakeTime, received: list, notices: list) -> LiveViewer:
    return LiveViewer(
        client=api,
        config=CONFIG,
        on_reading=received.append,
        on_notice=notices.append,
        connect=connect,
        sleep=fake_time.sleep,
        clock=fake_time.clock,
    )


def test_initial_history_then_live_messages_deduplicated() -> None:
    api = StubApi(history=[_reading("1"), _reading("2")])
    fake_time = FakeTime()
    received: list = []
    notices: list = []
    viewer: LiveViewer

    @contextmanager
    def connect(url: str) -> Iterator[List[str]]:
        assert url == "ws://relay/ws"
        yield [_message(_reading("2")), "not json", _message(_reading("3")), json.dumps({"type": "ping"})]
        viewer.stop()

    viewer = _viewer(api, connect, fake_time, received, notices)
    viewer.run()

    assert [r["id"] for r in received] == ["1", "2", "3"]
    assert viewer.state.current["id"] == "3"
    assert "Live channel connected." in notices
    assert "Ignoring malformed live message." in notices
    assert api.latest_calls == 0


def test_channel_failure_polls_and_reconnects_after_delay() -> None:
    api = StubApi()
    fake_time = FakeTime()
    received: list = []
    notices: list = []
    attempts: List[float] = []
    viewer: LiveViewer

    @contextmanager
    def connect(url: str) -> Iterator[List[str]]:
        attempts.append(fake_time.now)
        if len(attempts) >= 8:
            viewer.stop()
        raise ConnectionRefusedError("no relay")
        yield []  # pragma: no cover

    viewer = _viewer(api, connect, fake_time, received, notices)
    viewer.run()

    assert attempts == [0, 5, 10, 15, 20, 25, 30, 35]
    assert set(fake_time.sleeps) == {5}
    # polled immediately after the first failure and again once 30s elapsed
    assert api.latest_calls == 2
    assert api.status_calls == 2
    assert [r["id"] for r in received] == ["polled"]
    assert viewer.state.device_connected is True
    assert viewer.state.channel_open is False
    assert "falling back to polling" in viewer.state.error


def test_unreachable_relay_is_not_fatal() -> None:
    api = StubApi(fail=True)
    fake_time = FakeTime()
    received: list = []
    notices: list = []
    viewer: LiveViewer

    @contextmanager
    def connect(url: str) -> Iterator[List[str]]:
        viewer.stop()
        raise OSError("network down")
        yield []  # pragma: no cover

    viewer = _viewer(api, connect, fake_time, received, notices)
    viewer.run()

    assert received == []
    assert notices[0].startswith("Failed to fetch sensor data")
    assert viewer.state.channel_open is False


def test_poll_skipped_while_channel_open() -> None:
    api = StubApi()
    viewer = _viewer(api, None, FakeTime(), [], [])
    viewer.state.channel_open = True

    assert viewer.poll_if_due() is False
    assert api.latest_calls == 0
