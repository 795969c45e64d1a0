"""
Services for the smart toilet health pipeline.

This package contains reading normalization, classification, session
reconciliation, transition alerts, reporting and the monitoring service.
"""

from .alerts import SessionTracker, detect_transition_alerts
from .classification import classify_parameter, classify_record, overall_status
from .health_monitoring import HealthMonitoringService, MonitoringUpdate
from .reconciler import filter_records, latest_record, reconcile_day, reconcile_reports
from .sources import (
    NotificationInbox,
    NotificationSink,
    ProfileStore,
    RecordLog,
    ReportSource,
    Result,
    StoreUnavailableError,
)

__all__ = [
    "HealthMonitoringService",
    "MonitoringUpdate",
    "NotificationInbox",
    "NotificationSink",
    "ProfileStore",
    "RecordLog",
    "ReportSource",
    "Result",
    "SessionTracker",
    "StoreUnavailableError",
    "classify_parameter",
    "classify_record",
    "detect_transition_alerts",
    "filter_records",
    "latest_record",
    "overall_status",
    "reconcile_day",
    "reconcile_reports",
]
