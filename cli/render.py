from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

from services.classifier import gas_level, temperature_level

_ALERT_COLORS = {
    "fire_risk": typer.colors.RED,
    "critical": typer.colors.RED,
    "danger": typer.colors.YELLOW,
    "warning": typer.colors.YELLOW,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def echo_notifications(notifications: List[Dict[str, Any]]) -> None:
    if not notifications:
        typer.echo("No notifications.")
        return
    for notification in notifications:
        typer.secho(
            f"  - [{notification.get('tag')}] {notification.get('title')} {notification.get('body')}",
            fg=typer.colors.RED,
        )


def render_ingest_result(payload: Dict[str, Any]) -> None:
    echo_heading("Evaluation")
    echo_key_values(
        [
            ("coStatus", payload.get("coStatus")),
            ("aqiStatus", payload.get("aqiStatus")),
            ("fireRisk", payload.get("fireRisk")),
            ("alertLevel", payload.get("alertLevel")),
        ]
    )
    typer.echo()
    echo_heading("Notifications")
    echo_notifications(payload.get("notifications") or [])


def _reading_bands(record: Dict[str, Any]) -> str:
    parts = []
    gas = record.get("gas")
    if gas is not None:
        parts.append(f"Gas {gas}% ({gas_level(gas).value})")
    temperature = record.get("temperature")
    if temperature is not None:
        parts.append(f"Temp {temperature}°C ({temperature_level(temperature).value})")
    return "  ".join(parts)


def render_gas_history(records: List[Dict[str, Any]], time_range: str) -> None:
    echo_heading(f"Gas History ({time_range})")
    if not records:
        typer.echo("No records in range.")
        return
    for record in records:
        level = record.get("alertLevel") or "none"
        line = (
            f"{record.get('timestamp')}  CO {record.get('coPpm')} PPM ({record.get('coStatus')})  "
            f"AQI {record.get('aqi')} ({record.get('aqiStatus')})  alert={level}"
        )
        bands = _reading_bands(record)
        if bands:
            line = f"{line}  {bands}"
        typer.secho(line, fg=_ALERT_COLORS.get(level))
