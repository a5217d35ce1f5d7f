from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_analytics,
    render_devices,
    render_graph,
    render_points,
    render_timeseries,
)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Query device telemetry from the sensor telemetry service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    user: Optional[str] = typer.Option(
        None,
        "--user",
        "-u",
        help="User identity sent as X-User-Id (defaults to CLI_USER_ID env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, user_id=user, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("devices")
def devices_command(ctx: typer.Context) -> None:
    """List devices linked to the current user."""
    state = _get_state(ctx)
    render_devices(state.client.list_devices())


@app.command("link")
def link_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Device name."),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Link a device to the current user using its credentials."""
    state = _get_state(ctx)
    payload = state.client.link_device(name, password)
    device = payload.get("device") or {}
    typer.secho(
        f"{payload.get('message')}. id={device.get('id')} name={device.get('deviceName')}",
        fg=typer.colors.GREEN,
    )


@app.command("analytics")
def analytics_command(
    ctx: typer.Context,
    device: str = typer.Argument(..., help="Device id or name."),
    duration: str = typer.Option("24h", "--duration", "-d", help="1h, 24h, 7d or 30d."),
) -> None:
    """Show summary statistics for a recent window."""
    state = _get_state(ctx)
    render_analytics(state.client.get_analytics(device, duration))


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    device: str = typer.Argument(..., help="Device id or name."),
) -> None:
    """Show every stored reading, newest first."""
    state = _get_state(ctx)
    render_points("Readings", state.client.get_readings(device), "createdAt")


@app.command("trends")
def trends_command(
    ctx: typer.Context,
    device: str = typer.Argument(..., help="Device id or name."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
) -> None:
    """Show the latest readings, oldest first."""
    state = _get_state(ctx)
    render_points("Trend", state.client.get_trends(device, limit), "createdAt")


@app.command("batch")
def batch_command(
    ctx: typer.Context,
    device: str = typer.Argument(..., help="Device id or name."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
) -> None:
    """Show the latest readings, newest first."""
    state = _get_state(ctx)
    render_points("Batch", state.client.get_batch(device, limit), "createdAt")


@app.command("graph")
def graph_command(
    ctx: typer.Context,
    device: str = typer.Argument(..., help="Device id or name."),
    duration: str = typer.Option("24h", "--duration", "-d", help="1h, 24h, 7d or 30d."),
    points: Optional[int] = typer.Option(None, "--points", "-p", min=1),
) -> None:
    """Show bucketed averages across a window."""
    state = _get_state(ctx)
    render_graph(state.client.get_graph(device, duration, points))


@app.command("timeseries")
def timeseries_command(
    ctx: typer.Context,
    device: str = typer.Argument(..., help="Device id or name."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1),
    chart: bool = typer.Option(False, "--chart/--simple", help="Request the chart encoding."),
) -> None:
    """Show the latest readings with statistics."""
    state = _get_state(ctx)
    payload = state.client.get_timeseries(device, limit, "chart" if chart else "simple")
    render_timeseries(payload)
