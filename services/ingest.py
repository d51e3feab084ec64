"""Validation and normalization of readings posted by the device."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from functools import lru_cache
from typing import Any, Mapping, Optional

from app.schemas import Reading, ReadingStatus
from datastore.reading_store import ReadingStore, build_default_store
from services.broadcaster import Broadcaster, build_default_broadcaster
from services.errors import ValidationError
from settings import get_settings

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("temperature", "humidity")


class IngestService:
    """Turns raw submissions into stored, broadcast readings."""

    def __init__(
        self,
        store: ReadingStore,
        broadcaster: Broadcaster,
        abnormal_temperature: float = 30.0,
        default_device_id: str = "ESP8266_DHT11",
    ) -> None:
        self.store = store
        self.broadcaster = broadcaster
        self.abnormal_temperature = abnormal_temperature
        self.default_device_id = default_device_id
        self._last_id = 0
        self._last_received_at: Optional[datetime] = None

    async def ingest(self, submission: Any) -> Reading:
        """Validate ``submission``, store it, and push it to live subscribers."""
        reading = self.normalize(submission)
        self.store.append(reading)
        await self.broadcaster.publish(reading)
        logger.info(
            "Received sensor data",
            extra={
                "reading_id": reading.id,
                "device_id": reading.device_id,
                "temperature": reading.temperature,
                "humidity": reading.humidity,
                "status": reading.status.value,
            },
        )
        return reading

    def normalize(self, submission: Any) -> Reading:
        if not isinstance(submission, Mapping):
            raise ValidationError(message="Request body must be a JSON object.")

        missing = [name for name in _REQUIRED_FIELDS if submission.get(name) is None]
        if missing:
            raise ValidationError(
                error="Missing required fields: temperature and humidity",
                message=f"Missing: {', '.join(missing)}",
            )

        temperature = self._parse_number("temperature", submission["temperature"])
        humidity = int(self._parse_number("humidity", submission["humidity"]))
        status = self._parse_status(submission.get("status"), temperature)

        device_raw = submission.get("device_id")
        device_id = str(device_raw).strip() if device_raw is not None else ""

        device_timestamp = submission.get("timestamp")
        received_at = self._next_received_at()
        return Reading(
            id=self._next_id(received_at),
            temperature=temperature,
            humidity=humidity,
            status=status,
            device_id=device_id or self.default_device_id,
            timestamp=received_at,
            received_at=received_at,
            device_timestamp=str(device_timestamp) if device_timestamp is not None else None,
        )

    def _parse_status(self, value: Any, temperature: float) -> ReadingStatus:
        if value is None or (isinstance(value, str) and not value.strip()):
            if temperature > self.abnormal_temperature:
                return ReadingStatus.abnormal
            return ReadingStatus.normal

        candidate = str(value).strip().lower()
        for status in ReadingStatus:
            if status.value.lower() == candidate:
                return status
        raise ValidationError(message=f"Unknown status {value!r}; expected Normal or Abnormal.")

    @staticmethod
    def _parse_number(name: str, value: Any) -> float:
        if isinstance(value, bool):
            raise ValidationError(message=f"{name} must be a number.")
        candidate = value.strip() if isinstance(value, str) else value
        try:
            parsed = float(candidate)
        except (TypeError, ValueError) as exc:
            raise ValidationError(message=f"{name} must be a number.") from exc
        if not math.isfinite(parsed):
            raise ValidationError(message=f"{name} must be a finite number.")
        return parsed

    def _next_received_at(self) -> datetime:
        now = self.store.now()
        if self._last_received_at is not None and now < self._last_received_at:
            now = self._last_received_at
        self._last_received_at = now
        return now

    def _next_id(self, received_at: datetime) -> str:
        candidate = int(received_at.timestamp() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return str(candidate)


@lru_cache
def build_default_ingest_service() -> IngestService:
    settings = get_settings()
    return IngestService(
        store=build_default_store(),
        broadcaster=build_default_broadcaster(),
        abnormal_temperature=settings.abnormal_temperature,
        default_device_id=settings.default_device_id,
    )
