"""Read-only views over the reading store."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import List, Optional

from app.schemas import Reading
from datastore.reading_store import ReadingStore, build_default_store
from models.records import ConnectivityStatus, TimeRange
from services.errors import NotFoundError


@dataclass
class HistorySnapshot:
    readings: List[Reading] = field(default_factory=list)
    last_update: Optional[datetime] = None

    @property
    def count(self) -> int:
        return len(self.readings)


@dataclass
class HealthSnapshot:
    status: str
    timestamp: datetime
    uptime: float
    last_update: Optional[datetime]


class QueryService:

    def __init__(self, store: ReadingStore) -> None:
        self.store = store
        self._started = time.monotonic()

    def uptime(self) -> float:
        return round(time.monotonic() - self._started, 3)

    def health(self) -> HealthSnapshot:
        return HealthSnapshot(
            status="OK",
            timestamp=self.store.now(),
            uptime=self.uptime(),
            last_update=self.store.last_update(),
        )

    def latest(self) -> Reading:
        reading = self.store.latest()
        if reading is None:
            raise NotFoundError()
        return reading

    def history(
        self, time_range: TimeRange | None = None, limit: Optional[int] = None
    ) -> HistorySnapshot:
        return HistorySnapshot(
            readings=self.store.query(time_range, limit),
            last_update=self.store.last_update(),
        )

    def status(self) -> ConnectivityStatus:
        return self.store.connectivity_status()


@lru_cache
def build_default_query_service() -> QueryService:
    return QueryService(store=build_default_store())
