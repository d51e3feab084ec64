"""Request logging middleware."""

from __future__ import annotations

import logging

from fastapi import Request

logger = logging.getLogger("app.requests")


async def log_requests(request: Request, call_next):
    """Log only failed requests (4xx, 5xx)."""
    response = await call_next(request)
    if response.status_code >= 400:
        logger.warning(
            "%s %s",
            request.method,
            request.url.path,
            extra={"path": request.url.path, "status_code": response.status_code},
        )
    return response
