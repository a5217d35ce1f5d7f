"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from app.schemas import (
    AnalyticsResponse,
    ChartSeries,
    DeviceInfo,
    DeviceListItem,
    DeviceListResponse,
    GraphResponse,
    LinkDeviceRequest,
    LinkDeviceResponse,
    MessageResponse,
    ReadingOut,
    SeriesFormat,
    TabularSeries,
    TrendPoint,
)
from services.devices import DeviceService, build_default_device_service
from services.errors import (
    DataNotFoundError,
    DeviceAccessError,
    DeviceAlreadyLinkedError,
    InvalidCredentialsError,
    InvalidDurationError,
)
from services.telemetry import TelemetryService, build_default_service

router = APIRouter()
devices_router = APIRouter(prefix="/api/devices", tags=["devices"])
device_data_router = APIRouter(prefix="/api/device-data", tags=["device-data"])


def get_telemetry() -> TelemetryService:
    return build_default_service()


def get_devices() -> DeviceService:
    return build_default_device_service()


def get_current_user(
    user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """Identity established by the upstream authentication layer."""
    if user_id is None or not user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, missing user identity.",
        )
    return user_id.strip()


def _not_found(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@device_data_router.get(
    "/{device_id}",
    response_model=List[ReadingOut],
    summary="All readings for a device, newest first.",
)
async def get_device_data(
    device_id: str,
    user_id: str = Depends(get_current_user),
    telemetry: TelemetryService = Depends(get_telemetry),
) -> List[ReadingOut]:
    try:
        return telemetry.list_readings(device_id, user_id)
    except (DeviceAccessError, DataNotFoundError) as exc:
        raise _not_found(exc) from exc


@device_data_router.get(
    "/{device_id}/analytics",
    response_model=AnalyticsResponse,
    summary="Temperature and humidity statistics over a recent window.",
)
async def get_analytics(
    device_id: str,
    duration: str = Query("24h", description="1h, 24h, 7d or 30d; anything else means 24h."),
    user_id: str = Depends(get_current_user),
    telemetry: TelemetryService = Depends(get_telemetry),
) -> AnalyticsResponse:
    try:
        return telemetry.analytics(device_id, user_id, duration=duration)
    except (DeviceAccessError, DataNotFoundError) as exc:
        raise _not_found(exc) from exc


@device_data_router.get(
    "/{device_id}/trends",
    response_model=List[TrendPoint],
    summary="Latest readings in chronological order.",
)
async def get_trends(
    device_id: str,
    limit: Optional[int] = Query(None, ge=1),
    user_id: str = Depends(get_current_user),
    telemetry: TelemetryService = Depends(get_telemetry),
) -> List[TrendPoint]:
    try:
        return telemetry.trends(device_id, user_id, limit=limit)
    except (DeviceAccessError, DataNotFoundError) as exc:
        raise _not_found(exc) from exc


@device_data_router.get(
    "/{device_id}/batch",
    response_model=List[TrendPoint],
    summary="Latest readings, newest first.",
)
async def get_batch(
    device_id: str,
    limit: Optional[int] = Query(None, ge=1),
    user_id: str = Depends(get_current_user),
    telemetry: TelemetryService = Depends(get_telemetry),
) -> List[TrendPoint]:
    try:
        return telemetry.batch(device_id, user_id, limit=limit)
    except (DeviceAccessError, DataNotFoundError) as exc:
        raise _not_found(exc) from exc


@device_data_router.get(
    "/{device_id}/graph",
    response_model=GraphResponse,
    summary="Bucketed averages across a duration window.",
)
async def get_graph(
    device_id: str,
    duration: str = Query("24h", description="One of 1h, 24h, 7d, 30d."),
    points: Optional[int] = Query(None, ge=1, description="Number of buckets."),
    user_id: str = Depends(get_current_user),
    telemetry: TelemetryService = Depends(get_telemetry),
) -> GraphResponse:
    try:
        return telemetry.graph(device_id, user_id, duration=duration, points=points)
    except InvalidDurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except (DeviceAccessError, DataNotFoundError) as exc:
        raise _not_found(exc) from exc


@device_data_router.get(
    "/{device_id}/timeseries",
    response_model=Union[ChartSeries, TabularSeries],
    summary="Latest readings shaped as a table or chart series.",
)
async def get_timeseries(
    device_id: str,
    limit: Optional[int] = Query(None, ge=1),
    series_format: str = Query("simple", alias="format", description="simple or chart"),
    user_id: str = Depends(get_current_user),
    telemetry: TelemetryService = Depends(get_telemetry),
) -> Union[ChartSeries, TabularSeries]:
    shape = SeriesFormat.chart if series_format == SeriesFormat.chart.value else SeriesFormat.simple
    try:
        return telemetry.timeseries(device_id, user_id, limit=limit, series_format=shape)
    except (DeviceAccessError, DataNotFoundError) as exc:
        raise _not_found(exc) from exc


@devices_router.post(
    "",
    response_model=LinkDeviceResponse,
    summary="Link a provisioned device to the current user.",
)
async def link_device(
    payload: LinkDeviceRequest,
    user_id: str = Depends(get_current_user),
    devices: DeviceService = Depends(get_devices),
) -> LinkDeviceResponse:
    try:
        device = devices.link_device(user_id, payload.device_name, payload.device_password)
    except InvalidCredentialsError as exc:
        raise _not_found(exc) from exc
    except DeviceAlreadyLinkedError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return LinkDeviceResponse(
        message="Device linked successfully",
        device=DeviceInfo(id=device.id, device_name=device.name),
    )


@devices_router.get(
    "",
    response_model=DeviceListResponse,
    summary="Devices linked to the current user.",
)
async def list_devices(
    user_id: str = Depends(get_current_user),
    devices: DeviceService = Depends(get_devices),
) -> DeviceListResponse:
    return DeviceListResponse(
        devices=[
            DeviceListItem(id=device.id, device_name=device.name, created_at=device.created_at)
            for device in devices.list_devices(user_id)
        ]
    )


@devices_router.delete(
    "/{device_id}",
    response_model=MessageResponse,
    summary="Delete a device owned by the current user.",
)
async def delete_device(
    device_id: str,
    user_id: str = Depends(get_current_user),
    devices: DeviceService = Depends(get_devices),
) -> MessageResponse:
    try:
        devices.delete_device(user_id, device_id)
    except DeviceAccessError as exc:
        raise _not_found(exc) from exc
    return MessageResponse(message="Device deleted successfully")


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "healthy"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "healthy", "detail": "See /health for service status."}
