from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _fmt(value: Any) -> str:
    return "-" if value is None else str(value)


def render_devices(devices: List[Dict[str, Any]]) -> None:
    echo_heading("Devices")
    if not devices:
        typer.echo("No devices linked.")
        return
    for device in devices:
        typer.echo(f"  - [{device.get('id')}] {device.get('deviceName')} (since {device.get('createdAt')})")


def render_analytics(payload: Dict[str, Any]) -> None:
    echo_heading(f"Analytics ({payload.get('duration')})")
    echo_key_values(
        [
            ("start", payload.get("start")),
            ("end", payload.get("end")),
            ("readings", payload.get("readingCount")),
        ]
    )
    typer.echo()
    echo_heading("Temperature")
    echo_key_values(
        [
            ("avg", _fmt(payload.get("avgTemperature"))),
            ("min", _fmt(payload.get("minTemperature"))),
            ("max", _fmt(payload.get("maxTemperature"))),
        ]
    )
    typer.echo()
    echo_heading("Humidity")
    echo_key_values(
        [
            ("avg", _fmt(payload.get("avgHumidity"))),
            ("min", _fmt(payload.get("minHumidity"))),
            ("max", _fmt(payload.get("maxHumidity"))),
        ]
    )


def render_points(title: str, points: List[Dict[str, Any]], time_key: str) -> None:
    echo_heading(title)
    if not points:
        typer.echo("No data points.")
        return
    for point in points:
        typer.echo(
            f"  {point.get(time_key)}  temperature={_fmt(point.get('temperature'))}"
            f"  humidity={_fmt(point.get('humidity'))}"
        )


def render_graph(payload: Dict[str, Any]) -> None:
    render_points(
        f"Graph ({payload.get('duration')}, {payload.get('points')} points, "
        f"interval {payload.get('intervalMs')} ms)",
        payload.get("data") or [],
        "timestamp",
    )


def render_statistics(statistics: Dict[str, Any]) -> None:
    echo_heading("Statistics")
    echo_key_values((key, _fmt(value)) for key, value in statistics.items())


def render_timeseries(payload: Dict[str, Any]) -> None:
    if "labels" in payload:
        datasets = payload.get("datasets") or {}
        points = [
            {"time": label, "temperature": temperature, "humidity": humidity}
            for label, temperature, humidity in zip(
                payload.get("labels") or [],
                datasets.get("temperature") or [],
                datasets.get("humidity") or [],
            )
        ]
    else:
        points = payload.get("data") or []
    render_points("Timeseries", points, "time")
    typer.echo()
    render_statistics(payload.get("statistics") or {})
