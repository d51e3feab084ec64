from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the relay API."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_history(
        self, time_range: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if time_range:
            params["timeRange"] = time_range
        if limit is not None:
            params["limit"] = limit
        payload = self._get("/api/sensor-data", params=params)
        data = payload.get("data")
        if not isinstance(data, list):
            raise typer.BadParameter("Unexpected response payload when fetching history.")
        return data

    def get_latest(self) -> Optional[Dict[str, Any]]:
        """Return the latest reading, or ``None`` when nothing was ingested yet."""
        try:
            response = self._client.get("/api/sensor-data/latest")
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json().get("data")

    def get_status(self) -> Dict[str, Any]:
        return self._get("/api/status")

    def get_health(self) -> Dict[str, Any]:
        return self._get("/api/health")

    def send_reading(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._client.post("/api/sensor-data", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        data = response.json().get("data")
        if not isinstance(data, dict):
            raise typer.BadParameter("Unexpected response payload when sending a reading.")
        return data

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("message") or data.get("error")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
