"""Domain values shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class TimeRange(str, Enum):
    """History windows offered to viewers."""

    one_hour = "1h"
    three_hours = "3h"
    six_hours = "6h"
    all = "all"

    @property
    def window(self) -> Optional[timedelta]:
        """Span covered by the range, ``None`` meaning unbounded."""
        if self is TimeRange.all:
            return None
        return timedelta(hours=int(self.value[:-1]))


@dataclass(slots=True)
class ConnectivityStatus:
    """Whether the device has reported recently."""

    connected: bool
    last_update: Optional[datetime]
    total_readings: int
