"""HTTP route definitions for the relay."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from app.schemas import (
    HealthResponse,
    HistoryResponse,
    IngestResponse,
    LatestResponse,
    ServiceInfo,
    StatusResponse,
)
from models.records import TimeRange
from services.errors import InternalError, RelayError
from services.ingest import IngestService, build_default_ingest_service
from services.query import QueryService, build_default_query_service

logger = logging.getLogger(__name__)

router = APIRouter()


def get_ingest_service() -> IngestService:
    return build_default_ingest_service()


def get_query_service() -> QueryService:
    return build_default_query_service()


@router.post(
    "/api/sensor-data",
    response_model=IngestResponse,
    summary="Accept a reading from the sensor device.",
)
async def submit_reading(
    payload: Any = Body(None, description="{temperature, humidity, status?, timestamp?, device_id?}"),
    ingest: IngestService = Depends(get_ingest_service),
) -> IngestResponse:
    try:
        reading = await ingest.ingest(payload)
    except RelayError:
        raise
    except Exception as exc:
        logger.exception("Error processing sensor data")
        raise InternalError(message=str(exc)) from exc
    return IngestResponse(data=reading)


@router.get(
    "/api/sensor-data/latest",
    response_model=LatestResponse,
    summary="Most recent reading.",
)
async def latest_reading(
    query: QueryService = Depends(get_query_service),
) -> LatestResponse:
    reading = query.latest()
    return LatestResponse(data=reading, lastUpdate=query.store.last_update())


@router.get(
    "/api/sensor-data",
    response_model=HistoryResponse,
    summary="Recent readings, optionally filtered by time range and limited.",
)
async def reading_history(
    time_range: Optional[TimeRange] = Query(None, alias="timeRange"),
    limit: Optional[int] = Query(None, ge=1, description="Keep only the newest N readings."),
    query: QueryService = Depends(get_query_service),
) -> HistoryResponse:
    snapshot = query.history(time_range, limit)
    return HistoryResponse(
        data=snapshot.readings,
        count=snapshot.count,
        lastUpdate=snapshot.last_update,
    )


@router.get(
    "/api/status",
    response_model=StatusResponse,
    summary="Whether the device has reported within the connectivity window.",
)
async def connection_status(
    query: QueryService = Depends(get_query_service),
) -> StatusResponse:
    connectivity = query.status()
    return StatusResponse(
        connected=connectivity.connected,
        lastUpdate=connectivity.last_update,
        totalReadings=connectivity.total_readings,
        uptime=query.uptime(),
    )


@router.get(
    "/api/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(
    query: QueryService = Depends(get_query_service),
) -> HealthResponse:
    health = query.health()
    return HealthResponse(
        status=health.status,
        timestamp=health.timestamp,
        uptime=health.uptime,
        lastUpdate=health.last_update,
    )


@router.get(
    "/",
    response_model=ServiceInfo,
    summary="Root endpoint lists the service entry points.",
)
async def root() -> ServiceInfo:
    return ServiceInfo(
        message="Telemetry relay",
        health="/api/health",
        api="/api/sensor-data",
        websocket="/ws",
        dashboard="/ui",
    )
