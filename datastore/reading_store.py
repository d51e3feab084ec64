from __future__ import annotations

from collections import deque
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from threading import Lock
from typing import Callable, Deque, List, Optional

from app.schemas import Reading
from models.records import ConnectivityStatus, TimeRange
from settings import get_settings

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReadingStore:
    """Bounded, insertion-ordered window of recent readings."""

    def __init__(
        self,
        max_readings: int = 1000,
        connectivity_window: float = 60.0,
        clock: Clock = utc_now,
    ) -> None:
        if max_readings <= 0:
            raise ValueError("max_readings must be positive.")
        self.max_readings = max_readings
        self.connectivity_window = timedelta(seconds=connectivity_window)
        self._clock = clock
        self._history: Deque[Reading] = deque()
        self._latest: Optional[Reading] = None
        self._last_update: Optional[datetime] = None
        self._lock = Lock()

    def now(self) -> datetime:
        return self._clock()

    def append(self, reading: Reading) -> None:
        with self._lock:
            self._history.append(reading.model_copy(deep=True))
            while len(self._history) > self.max_readings:
                self._history.popleft()
            self._latest = self._history[-1]
            self._last_update = self._clock()

    def latest(self) -> Optional[Reading]:
        with self._lock:
            if self._latest is None:
                return None
            return self._latest.model_copy(deep=True)

    def query(
        self,
        time_range: TimeRange | str | None = None,
        limit: Optional[int] = None,
    ) -> List[Reading]:
        """Return readings inside ``time_range``, keeping only the newest ``limit``."""

        window = TimeRange(time_range).window if time_range is not None else None
        with self._lock:
            items = list(self._history)
            now = self._clock()

        if window is not None:
            cutoff = now - window
            items = [item for item in items if item.received_at >= cutoff]
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return [item.model_copy(deep=True) for item in items]

    def connectivity_status(self) -> ConnectivityStatus:
        with self._lock:
            last_update = self._last_update
            total = len(self._history)
            now = self._clock()

        connected = (
            last_update is not None and now - last_update < self.connectivity_window
        )
        return ConnectivityStatus(
            connected=connected,
            last_update=last_update,
            total_readings=total,
        )

    def last_update(self) -> Optional[datetime]:
        with self._lock:
            return self._last_update

    def count(self) -> int:
        with self._lock:
            return len(self._history)


@lru_cache
def build_default_store() -> ReadingStore:
    settings = get_settings()
    return ReadingStore(
        max_readings=settings.history_limit,
        connectivity_window=settings.connectivity_window_seconds,
        clock=utc_now,
    )
