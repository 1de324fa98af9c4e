"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    AlarmEvent,
    CalibrationStatus,
    CoThresholdsUpdate,
    DeviceCommands,
    DeviceDocument,
    HistoryRecord,
    IngestResponse,
    SensorSnapshot,
)
from services.ingest import DeviceIngestService, build_default_ingest_service

router = APIRouter()


def get_ingest_service() -> DeviceIngestService:
    return build_default_ingest_service()


@router.post(
    "/devices/{device_id}/data",
    response_model=IngestResponse,
    summary="Accept a sensor update from a device and evaluate alarms.",
)
async def post_device_data(
    device_id: str,
    snapshot: SensorSnapshot,
    service: DeviceIngestService = Depends(get_ingest_service),
) -> IngestResponse:
    evaluation = service.ingest(device_id, snapshot)
    return IngestResponse(
        co_status=evaluation.co_status,
        aqi_status=evaluation.aqi_status,
        fire_risk=evaluation.fire_risk,
        alert_level=evaluation.alert_level,
        notifications=evaluation.notifications,
    )


@router.get(
    "/devices/{device_id}",
    response_model=DeviceDocument,
    summary="Fetch the current state and stored settings of a device.",
)
async def get_device(
    device_id: str,
    service: DeviceIngestService = Depends(get_ingest_service),
) -> DeviceDocument:
    return service.get_device(device_id)


@router.get(
    "/devices/{device_id}/history",
    response_model=list[AlarmEvent],
    summary="Most recent alarm events, newest first.",
)
async def get_alarm_history(
    device_id: str,
    service: DeviceIngestService = Depends(get_ingest_service),
) -> list[AlarmEvent]:
    return service.alarm_history(device_id)


@router.delete(
    "/devices/{device_id}/history",
    summary="Remove all alarm events of a device.",
)
async def delete_alarm_history(
    device_id: str,
    service: DeviceIngestService = Depends(get_ingest_service),
) -> dict[str, int | bool]:
    removed = service.clear_alarm_history(device_id)
    return {"success": True, "removed": removed}


@router.get(
    "/devices/{device_id}/gas-history",
    response_model=list[HistoryRecord],
    summary="Gas sensor history within a time range, newest first.",
)
async def get_gas_history(
    device_id: str,
    time_range: str = Query("24h", alias="range", description="One of 24h, 7d or 30d."),
    service: DeviceIngestService = Depends(get_ingest_service),
) -> list[HistoryRecord]:
    return service.gas_history(device_id, time_range)


@router.post(
    "/devices/{device_id}/co-thresholds",
    response_model=DeviceCommands,
    summary="Update CO thresholds; values are clamped to their allowed ranges.",
)
async def post_co_thresholds(
    device_id: str,
    update: CoThresholdsUpdate,
    service: DeviceIngestService = Depends(get_ingest_service),
) -> DeviceCommands:
    return service.update_co_thresholds(
        device_id,
        warning=update.warning,
        danger=update.danger,
        critical=update.critical,
    )


@router.get(
    "/devices/{device_id}/commands",
    response_model=DeviceCommands,
    summary="Pending commands polled by the device; one-shot commands are cleared.",
)
async def get_device_commands(
    device_id: str,
    service: DeviceIngestService = Depends(get_ingest_service),
) -> DeviceCommands:
    return service.poll_commands(device_id)


@router.post(
    "/devices/{device_id}/calibrate",
    summary="Ask the device to recalibrate its gas sensors on the next poll.",
)
async def post_calibrate(
    device_id: str,
    service: DeviceIngestService = Depends(get_ingest_service),
) -> dict[str, str | bool]:
    try:
        service.request_calibration(device_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return {"success": True, "message": "Calibration command sent to device"}


@router.get(
    "/devices/{device_id}/calibration-status",
    response_model=CalibrationStatus,
    summary="Calibration reference values and pending state.",
)
async def get_calibration_status(
    device_id: str,
    service: DeviceIngestService = Depends(get_ingest_service),
) -> CalibrationStatus:
    try:
        return service.calibration_status(device_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
