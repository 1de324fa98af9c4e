from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from app.schemas import DeviceState, IngestResponse, SensorSnapshot
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import echo_heading, render_gas_history, render_ingest_result
from models.thresholds import ThresholdSet
from services.orchestrator import AlertOrchestrator


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the gas alarm service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON: {exc}") from exc


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="JSON sensor payload."),
) -> None:
    """Post one sensor payload as the device would and show the evaluation."""
    state = _get_state(ctx)
    payload = _load_json(file)
    if not isinstance(payload, dict):
        raise typer.BadParameter("Sensor payload must be a JSON object.")
    typer.echo(f"Sending update for {device_id} to {state.config.base_url} ...")
    result = state.client.send_snapshot(device_id, payload)
    render_ingest_result(result)


@app.command("gas-history")
def gas_history_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    time_range: str = typer.Option("24h", "--range", "-r", help="One of 24h, 7d or 30d."),
) -> None:
    """Show recorded gas sensor history for a device."""
    state = _get_state(ctx)
    records = state.client.gas_history(device_id, time_range)
    render_gas_history(records, time_range)


@app.command("replay")
def replay_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="JSON array of sensor payloads."),
    device_id: str = typer.Option("replay", "--device-id", help="Device id recorded on events."),
) -> None:
    """Evaluate a recorded sequence of payloads locally, without the service.

    Each payload may carry a ``timestamp`` (ISO 8601) used as the evaluation time.
    """
    items = _load_json(file)
    if not isinstance(items, list):
        raise typer.BadParameter("Replay file must contain a JSON array.")

    orchestrator = AlertOrchestrator()
    thresholds = ThresholdSet()
    state = DeviceState()
    for index, item in enumerate(items, start=1):
        try:
            snapshot = SensorSnapshot.model_validate(item)
        except ValidationError as exc:
            raise typer.BadParameter(f"Payload #{index} is invalid: {exc}") from exc
        now = None
        if isinstance(item, dict) and item.get("timestamp"):
            try:
                now = datetime.fromisoformat(str(item["timestamp"]).replace("Z", "+00:00"))
            except ValueError as exc:
                raise typer.BadParameter(f"Payload #{index} has an invalid timestamp.") from exc

        evaluation = orchestrator.evaluate(device_id, state, snapshot, thresholds, now=now)
        state = evaluation.state

        echo_heading(f"#{index}")
        response = IngestResponse(
            co_status=evaluation.co_status,
            aqi_status=evaluation.aqi_status,
            fire_risk=evaluation.fire_risk,
            alert_level=evaluation.alert_level,
            notifications=evaluation.notifications,
        )
        render_ingest_result(response.model_dump(mode="json", by_alias=True))
        typer.echo()
