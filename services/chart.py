"""Chart geometry and summary statistics for the dashboard page."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from app.schemas import Reading, ReadingStatus

TEMPERATURE_PADDING = 2.0
HUMIDITY_PADDING = 5.0


@dataclass
class ChartPoint:
    x: float
    temperature_y: float
    humidity_y: float
    reading: Reading


@dataclass
class ChartGeometry:
    """Scaled SVG coordinates for the temperature and humidity series."""

    width: int
    height: int
    temperature_path: str = ""
    humidity_path: str = ""
    points: List[ChartPoint] = field(default_factory=list)
    min_temperature: float | None = None
    max_temperature: float | None = None
    min_humidity: float | None = None
    max_humidity: float | None = None

    @property
    def empty(self) -> bool:
        return not self.points


@dataclass
class ReadingSummary:
    total: int = 0
    normal: int = 0
    abnormal: int = 0
    average_humidity: int = 0


def _scale(value: float, low: float, high: float, height: int) -> float:
    span = high - low
    if span == 0:
        return height / 2
    return round(height - ((value - low) / span) * height, 2)


def _path(coordinates: Sequence[tuple[float, float]]) -> str:
    return " ".join(
        f"{'M' if index == 0 else 'L'} {x} {y}"
        for index, (x, y) in enumerate(coordinates)
    )


def build_chart(readings: Sequence[Reading], width: int = 800, height: int = 320) -> ChartGeometry:
    geometry = ChartGeometry(width=width, height=height)
    if not readings:
        return geometry

    temperatures = [reading.temperature for reading in readings]
    humidities = [reading.humidity for reading in readings]
    geometry.min_temperature = min(temperatures) - TEMPERATURE_PADDING
    geometry.max_temperature = max(temperatures) + TEMPERATURE_PADDING
    geometry.min_humidity = min(humidities) - HUMIDITY_PADDING
    geometry.max_humidity = max(humidities) + HUMIDITY_PADDING

    last_index = len(readings) - 1
    for index, reading in enumerate(readings):
        x = round(index / last_index * width, 2) if last_index else 0.0
        geometry.points.append(
            ChartPoint(
                x=x,
                temperature_y=_scale(
                    reading.temperature,
                    geometry.min_temperature,
                    geometry.max_temperature,
                    height,
                ),
                humidity_y=_scale(
                    reading.humidity, geometry.min_humidity, geometry.max_humidity, height
                ),
                reading=reading,
            )
        )

    geometry.temperature_path = _path([(p.x, p.temperature_y) for p in geometry.points])
    geometry.humidity_path = _path([(p.x, p.humidity_y) for p in geometry.points])
    return geometry


def summarize(readings: Sequence[Reading]) -> ReadingSummary:
    summary = ReadingSummary(total=len(readings))
    for reading in readings:
        if reading.status is ReadingStatus.normal:
            summary.normal += 1
        else:
            summary.abnormal += 1
    if readings:
        summary.average_humidity = round(sum(r.humidity for r in readings) / len(readings))
    return summary
