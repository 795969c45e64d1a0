"""
Edge-triggered alerting on parameter transitions.

An alert is raised only when a parameter moves from its normal range to out
of range between two consecutive observations, so a value that stays
abnormal does not flood the notification log.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from smart_toilet.domain.models import (
    Alert,
    AlertSeverity,
    CombinedRecord,
    Parameter,
    VerdictStatus,
)
from smart_toilet.services.classification import classify_parameter

logger = structlog.get_logger(__name__)

MONITORED_PARAMETERS: tuple[Parameter, ...] = tuple(Parameter)

SEVERITY_BY_STATUS: dict[VerdictStatus, AlertSeverity] = {
    VerdictStatus.ABNORMAL: "Warning",
    VerdictStatus.SLIGHTLY_ABNORMAL: "Alert",
    VerdictStatus.DEHYDRATION: "Alert",
}


def detect_transition_alerts(
    previous: Mapping[Parameter, Any],
    current: Mapping[Parameter, Any],
    timestamp: datetime | None = None,
) -> list[Alert]:
    """
    Compare two observations and alert on every normal -> not-normal edge.

    Parameters without a usable value on either side are skipped.
    """
    timestamp = timestamp or datetime.now(UTC)
    alerts: list[Alert] = []

    for parameter in MONITORED_PARAMETERS:
        before = classify_parameter(parameter, previous.get(parameter))
        after = classify_parameter(parameter, current.get(parameter))

        if before.normal is None or after.normal is None:
            continue
        if not (before.normal and not after.normal):
            continue

        alert = Alert(
            parameter=parameter,
            parameter_name=after.label,
            current_value=after.display_value,
            normal_range_description=after.reference_range,
            status=after.status,
            severity=SEVERITY_BY_STATUS[after.status],
            timestamp=timestamp,
        )
        alerts.append(alert)
        logger.info(
            "transition_alert",
            parameter=parameter.value,
            status=after.status.value,
            severity=alert.severity,
            value=after.display_value,
        )

    return alerts


def notification_document(alert: Alert) -> dict[str, Any]:
    """Document stored in the per-user notification log."""
    return {
        "message": alert.message,
        "timestamp": alert.timestamp,
        "isRead": False,
        "type": alert.severity,
        "sensorName": alert.parameter_name,
    }


class SessionTracker:
    """
    Caller-held memory of what has been seen per user.

    Keeps the reconciler pure: deduplication of per-session side effects and
    the "previous" side of transition detection both live here. Readings are
    carried forward per parameter, so a hardware-only record does not erase
    the last known chemistry result.
    """

    def __init__(self) -> None:
        self._records: dict[str, CombinedRecord] = {}
        self._known: dict[str, dict[Parameter, Any]] = {}

    def is_new(self, user_id: str, record_id: str) -> bool:
        last = self._records.get(user_id)
        return last is None or last.id != record_id

    def previous(self, user_id: str) -> CombinedRecord | None:
        return self._records.get(user_id)

    def known_readings(self, user_id: str) -> dict[Parameter, Any]:
        """Last usable raw value of every parameter seen for the user."""
        return dict(self._known.get(user_id, {}))

    def remember(self, user_id: str, record: CombinedRecord) -> None:
        self._records[user_id] = record
        known = self._known.setdefault(user_id, {})
        for parameter, raw in record.raw_readings().items():
            if classify_parameter(parameter, raw).normal is not None:
                known[parameter] = raw

    def forget(self, user_id: str) -> None:
        self._records.pop(user_id, None)
        self._known.pop(user_id, None)
