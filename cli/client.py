from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        headers = {"X-User-Id": config.user_id} if config.user_id else {}
        self._client = httpx.Client(
            base_url=config.base_url,
            headers=headers,
            timeout=config.timeout,
        )

    def close(self) -> None:
        self._client.close()

    def list_devices(self) -> List[Dict[str, Any]]:
        payload = self._request("GET", "/api/devices")
        return list(payload.get("devices") or [])

    def link_device(self, name: str, password: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/api/devices",
            json={"deviceName": name, "devicePassword": password},
        )

    def get_analytics(self, device: str, duration: str) -> Dict[str, Any]:
        return self._request(
            "GET", f"/api/device-data/{device}/analytics", params={"duration": duration}
        )

    def get_readings(self, device: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/api/device-data/{device}")

    def get_trends(self, device: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._request(
            "GET", f"/api/device-data/{device}/trends", params=_drop_none(limit=limit)
        )

    def get_batch(self, device: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._request(
            "GET", f"/api/device-data/{device}/batch", params=_drop_none(limit=limit)
        )

    def get_graph(self, device: str, duration: str, points: Optional[int] = None) -> Dict[str, Any]:
        return self._request(
            "GET",
            f"/api/device-data/{device}/graph",
            params=_drop_none(duration=duration, points=points),
        )

    def get_timeseries(
        self, device: str, limit: Optional[int] = None, series_format: str = "simple"
    ) -> Dict[str, Any]:
        return self._request(
            "GET",
            f"/api/device-data/{device}/timeseries",
            params=_drop_none(limit=limit, format=series_format),
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        message: str | None = None
        try:
            data = exc.response.json()
            message = data.get("message")
        except Exception:  # noqa: BLE001 - best effort parsing
            message = exc.response.text.strip()
        text = (
            f"Request failed with status {exc.response.status_code}: {message or 'no message provided.'}"
        )
        typer.secho(text, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _drop_none(**params: Any) -> Dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}
