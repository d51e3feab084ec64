"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ReadingStatus(str, Enum):
    """Health classification attached to every reading."""

    normal = "Normal"
    abnormal = "Abnormal"


class Reading(BaseModel):
    """One normalized sensor observation as stored and pushed to viewers."""

    id: str = Field(..., description="Process-unique id derived from ingestion time.")
    temperature: float = Field(..., description="Degrees Celsius.")
    humidity: int = Field(..., description="Relative humidity percentage.")
    status: ReadingStatus
    device_id: str
    timestamp: datetime = Field(..., description="Server ingestion time used for charting.")
    received_at: datetime = Field(..., description="Server ingestion time used for ordering.")
    device_timestamp: Optional[str] = Field(
        default=None, description="Timestamp reported by the device, informational only."
    )


class LiveMessage(BaseModel):
    """Envelope pushed over the live channel."""

    type: str = "sensor-data"
    data: Reading


class IngestResponse(BaseModel):
    success: bool = True
    message: str = "Data received successfully"
    data: Reading


class LatestResponse(BaseModel):
    success: bool = True
    data: Reading
    lastUpdate: Optional[datetime] = None


class HistoryResponse(BaseModel):
    success: bool = True
    data: List[Reading] = Field(default_factory=list)
    count: int = Field(..., ge=0)
    lastUpdate: Optional[datetime] = None


class StatusResponse(BaseModel):
    success: bool = True
    connected: bool
    lastUpdate: Optional[datetime] = None
    totalReadings: int = Field(..., ge=0)
    uptime: float = Field(..., description="Seconds since the service started.")


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    uptime: float
    lastUpdate: Optional[datetime] = None


class ServiceInfo(BaseModel):
    message: str
    health: str
    api: str
    websocket: str
    dashboard: str
