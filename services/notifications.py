"""Notification payload builders and the outbound dispatcher.

Payloads follow the Web Push notification options used by the dashboard
service worker. Actual delivery happens outside this service; the
dispatcher only records and logs what would be sent.
"""

from __future__ import annotations

import logging
from collections import deque
from threading import Lock
from typing import Deque, Dict, Optional, TypeVar

from app.schemas import AlarmEvent, NotificationPayload
from models.status import AlarmTrigger

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SHORT_PATTERN = [200, 100, 200]
_LONG_PATTERN = [300, 100, 300, 100, 300]

# Per-device cap; the oldest queued messages are dropped first.
OUTBOX_LIMIT = 100

_TRIGGER_LABELS = {
    AlarmTrigger.gas: "Gas",
    AlarmTrigger.temperature: "Temp",
    AlarmTrigger.both: "Gas+Temp",
}

_SMS_HEADLINES = {
    AlarmTrigger.gas: "GAS DETECTED",
    AlarmTrigger.temperature: "HIGH TEMP",
    AlarmTrigger.both: "GAS + HIGH TEMP",
}


def _fmt(value: Optional[float], digits: int) -> str:
    if value is None:
        return "--"
    return f"{value:.{digits}f}"


def fire_alarm_notification(
    trigger: AlarmTrigger, gas: Optional[float], temperature: Optional[float]
) -> NotificationPayload:
    label = _TRIGGER_LABELS.get(trigger, "Gas+Temp")
    return NotificationPayload(
        title="🔥 FIRE ALARM!",
        body=f"{label} - {_fmt(gas, 1)}%, {_fmt(temperature, 1)}°C",
        vibrate=list(_SHORT_PATTERN),
        tag="fire-alarm",
        require_interaction=True,
    )


def fire_risk_notification(
    co_ppm: Optional[float], temperature: Optional[float], gas: Optional[float]
) -> NotificationPayload:
    return NotificationPayload(
        title="🚨 FIRE RISK DETECTED!",
        body=(
            f"Multiple sensors triggered: CO {_fmt(co_ppm, 0)} PPM, "
            f"Temp {_fmt(temperature, 1)}°C, Gas {_fmt(gas, 1)}%"
        ),
        vibrate=list(_LONG_PATTERN),
        tag="fire-risk",
        require_interaction=True,
    )


def co_danger_notification(co_ppm: Optional[float]) -> NotificationPayload:
    return NotificationPayload(
        title="⚠️ CO DANGER!",
        body=f"Carbon Monoxide at {_fmt(co_ppm, 0)} PPM - Ventilate immediately!",
        vibrate=list(_SHORT_PATTERN),
        tag="co-danger",
        require_interaction=True,
    )


def co_critical_notification(co_ppm: Optional[float]) -> NotificationPayload:
    return NotificationPayload(
        title="🚨 CO CRITICAL!",
        body=f"Carbon Monoxide at {_fmt(co_ppm, 0)} PPM - EVACUATE NOW!",
        vibrate=list(_LONG_PATTERN),
        tag="co-critical",
        require_interaction=True,
    )


def build_alarm_sms(event: AlarmEvent) -> str:
    """Plain text SMS body for an alarm event."""
    headline = _SMS_HEADLINES.get(event.trigger, "FIRE ALARM")
    return (
        f"🔥 {headline}!\n"
        f"Gas: {_fmt(event.gas, 1)}%\n"
        f"Temp: {_fmt(event.temperature, 1)}°C\n"
        "Check your Fire Alarm System now!"
    )


class NotificationDispatcher:
    """Collects outgoing payloads per device for the external senders."""

    def __init__(self, limit: int = OUTBOX_LIMIT) -> None:
        self.limit = limit
        self._outbox: Dict[str, Deque[NotificationPayload]] = {}
        self._sms_outbox: Dict[str, Deque[str]] = {}
        self._lock = Lock()

    def send(self, device_id: str, payload: NotificationPayload) -> None:
        with self._lock:
            self._queue(self._outbox, device_id).append(payload)
        logger.warning(
            "Notification queued: %s",
            payload.title,
            extra={"device_id": device_id, "tag": payload.tag},
        )

    def send_alarm_sms(self, device_id: str, event: AlarmEvent) -> None:
        message = build_alarm_sms(event)
        with self._lock:
            self._queue(self._sms_outbox, device_id).append(message)
        logger.warning(
            "Alarm SMS queued",
            extra={"device_id": device_id, "trigger": event.trigger.value},
        )

    def sent(self, device_id: str) -> list[NotificationPayload]:
        with self._lock:
            return list(self._outbox.get(device_id, ()))

    def sent_sms(self, device_id: str) -> list[str]:
        with self._lock:
            return list(self._sms_outbox.get(device_id, ()))

    def _queue(self, outbox: Dict[str, Deque[T]], device_id: str) -> Deque[T]:
        queue = outbox.get(device_id)
        if queue is None:
            queue = outbox[device_id] = deque(maxlen=self.limit)
        return queue
