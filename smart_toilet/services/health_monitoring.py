"""
Health monitoring service: report tree in, history and notifications out.

Pipeline per observation:
1. Reconcile the latest record from the user's report tree
2. Append it to the history log once per new session
3. Detect normal -> abnormal transitions against the last known readings
4. Push one notification per transition
"""

import asyncio
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

import structlog

from smart_toilet.config import AppConfig, MonitoringConfig, get_config
from smart_toilet.domain.models import Alert, CombinedRecord, OverallStatus, ParameterVerdict
from smart_toilet.services.alerts import SessionTracker, detect_transition_alerts
from smart_toilet.services.classification import classify_record, overall_status
from smart_toilet.services.reconciler import (
    TimeRange,
    filter_records,
    latest_record,
    reconcile_reports,
)
from smart_toilet.services.sources import (
    NotificationSink,
    RecordLog,
    ReportSource,
    Result,
    StoreUnavailableError,
)

logger = structlog.get_logger(__name__)


@dataclass
class MonitoringUpdate:
    """Outcome of observing a new latest session for a user."""

    user_id: str
    record: CombinedRecord
    verdicts: list[ParameterVerdict]
    overall_status: OverallStatus
    alerts: list[Alert] = field(default_factory=list)
    history_appended: bool = False
    notifications_sent: int = 0


def _reports_node(user_tree: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
    if not isinstance(user_tree, Mapping):
        return None
    reports = user_tree.get("Reports")
    return reports if isinstance(reports, Mapping) else None


class HealthMonitoringService:
    """
    Orchestrates reconciliation, history logging and transition alerts.

    The "previously seen session" lives in the injected SessionTracker, so a
    service can be rebuilt without losing it and tests can pre-seed it.
    """

    def __init__(
        self,
        source: ReportSource,
        record_log: RecordLog,
        notifications: NotificationSink,
        tracker: SessionTracker | None = None,
        config: AppConfig | MonitoringConfig | None = None,
    ) -> None:
        if config is None:
            config = get_config()
        self.config: MonitoringConfig = (
            config.monitoring if isinstance(config, AppConfig) else config
        )
        self.source = source
        self.record_log = record_log
        self.notifications = notifications
        self.tracker = tracker or SessionTracker()
        self.logger = logger.bind(component="health_monitoring")
        self._is_running = False

    async def process_snapshot(
        self, user_id: str, user_tree: Mapping[str, Any] | None
    ) -> MonitoringUpdate | None:
        """
        Handle one snapshot of `Users/{uid}`.

        Returns None when the tree holds no record or the latest record was
        already processed.
        """
        record = latest_record(_reports_node(user_tree))
        if record is None:
            self.logger.debug("no_records", user_id=user_id)
            return None
        if not self.tracker.is_new(user_id, record.id):
            return None

        previous = self.tracker.known_readings(user_id)
        verdicts = classify_record(record)
        update = MonitoringUpdate(
            user_id=user_id,
            record=record,
            verdicts=verdicts,
            overall_status=overall_status(verdicts),
        )

        try:
            await self.record_log.append(user_id, record)
            update.history_appended = True
            self.logger.info("record_appended", user_id=user_id, record_id=record.id)
        except Exception as e:
            self.logger.error(
                "record_append_failed", user_id=user_id, record_id=record.id, error=str(e)
            )

        # Diffed per parameter against the last known value, not the last record
        update.alerts = detect_transition_alerts(previous, record.raw_readings())

        for alert in update.alerts:
            try:
                await self.notifications.notify(user_id, alert)
                update.notifications_sent += 1
            except Exception as e:
                self.logger.error(
                    "notification_failed",
                    user_id=user_id,
                    parameter=alert.parameter.value,
                    error=str(e),
                )

        self.tracker.remember(user_id, record)
        self.logger.info(
            "session_processed",
            user_id=user_id,
            record_id=record.id,
            has_chemistry=record.has_chemistry,
            overall_status=update.overall_status,
            alerts=len(update.alerts),
        )
        return update

    async def refresh(self, user_id: str) -> Result[MonitoringUpdate | None, Exception]:
        """Fetch the user's tree and process it; store failures come back as Result.err."""
        try:
            user_tree = await self.source.fetch_user_tree(user_id)
        except StoreUnavailableError as e:
            self.logger.warning("report_fetch_failed", user_id=user_id, error=str(e))
            return Result.err(e)

        return Result.ok(await self.process_snapshot(user_id, user_tree))

    async def records(
        self,
        user_id: str,
        time_range: TimeRange | None = None,
        custom_date: date | None = None,
        now: datetime | None = None,
    ) -> Result[list[CombinedRecord], Exception]:
        """All reconciled records of a user inside a time window, newest first."""
        try:
            user_tree = await self.source.fetch_user_tree(user_id)
        except StoreUnavailableError as e:
            self.logger.warning("report_fetch_failed", user_id=user_id, error=str(e))
            return Result.err(e)

        records = reconcile_reports(_reports_node(user_tree))
        return Result.ok(
            filter_records(
                records,
                time_range=time_range or self.config.default_time_range,
                custom_date=custom_date,
                now=now,
            )
        )

    async def watch(self, user_id: str) -> AsyncIterator[MonitoringUpdate]:
        """
        Poll the user's tree and yield an update for every new session.

        Fetch failures are logged and retried on the next tick.
        """
        interval = self.config.poll_interval_seconds
        self.logger.info("watch_starting", user_id=user_id, interval_seconds=interval)
        self._is_running = True

        try:
            while self._is_running:
                started = datetime.now(UTC)

                result = await self.refresh(user_id)
                update = result.unwrap_or(None)
                if update is not None:
                    yield update

                elapsed = (datetime.now(UTC) - started).total_seconds()
                sleep_time = max(0, interval - elapsed)
                if sleep_time > 0 and self._is_running:
                    await asyncio.sleep(sleep_time)

        except asyncio.CancelledError:
            self.logger.info("watch_cancelled", user_id=user_id)
            raise
        finally:
            self._is_running = False

    async def stop(self) -> None:
        """Stop any running watch loop after its current tick."""
        self.logger.info("stopping_health_monitoring")
        self._is_running = False
