from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from models.records import TimeRange
from services.chart import build_chart, summarize
from services.query import QueryService, build_default_query_service


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

REFRESH_SECONDS = 30


def get_query_service() -> QueryService:
    return build_default_query_service()


router = APIRouter(include_in_schema=False)


@router.get("/ui", name="ui_dashboard", response_class=HTMLResponse)
async def ui_dashboard(
    request: Request,
    time_range: TimeRange = Query(TimeRange.three_hours, alias="timeRange"),
    theme: str = Query("light", pattern="^(light|dark)$"),
    query: QueryService = Depends(get_query_service),
) -> HTMLResponse:
    readings = query.history(time_range).readings
    current = query.store.latest()
    return templates.TemplateResponse(
        request,
        "ui/index.html",
        {
            "current": current,
            "connectivity": query.status(),
            "chart": build_chart(readings),
            "summary": summarize(readings),
            "time_range": time_range,
            "time_ranges": list(TimeRange),
            "theme": theme,
            "refresh_seconds": REFRESH_SECONDS,
        },
    )
