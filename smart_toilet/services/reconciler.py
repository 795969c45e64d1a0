"""
Session reconciliation: pairs hardware sessions with chemistry sessions.

The device and the dipstick reader write their sessions independently, so a
hardware session rarely shares a key or timestamp with its chemistry result.
Each hardware session is paired with the nearest medical session captured at
or after it on the same day. Medical sessions that no hardware session picks
stay orphaned and are never surfaced as records of their own.

Everything here is a pure function over a snapshot of the user's report tree.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta
from typing import Any, Literal

import structlog

from smart_toilet.domain.models import ChemistrySession, CombinedRecord, DailyReport

logger = structlog.get_logger(__name__)

DATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

TimeRange = Literal["today", "weekly", "monthly"]

# Days before today included by each range, counted from the start of the day
_RANGE_LOOKBACK_DAYS: dict[str, int] = {"today": 0, "weekly": 6, "monthly": 29}


def _nearest_subsequent(
    hardware_timestamp: datetime,
    medical_candidates: list[tuple[ChemistrySession, datetime]],
) -> tuple[ChemistrySession, datetime] | None:
    """Medical session with the smallest non-negative delta; first key wins ties."""
    best: tuple[ChemistrySession, datetime] | None = None
    best_delta: timedelta | None = None

    for session, medical_timestamp in medical_candidates:
        delta = medical_timestamp - hardware_timestamp
        if delta < timedelta(0):
            continue
        if best_delta is None or delta < best_delta:
            best, best_delta = (session, medical_timestamp), delta

    return best


def reconcile_day(daily_report: DailyReport) -> list[CombinedRecord]:
    """
    Produce one CombinedRecord per hardware session with a parseable timestamp.

    Returns records newest first. Hardware sessions whose timestamp cannot be
    parsed are dropped; an empty medical map yields records without chemistry.
    """
    medical_candidates: list[tuple[ChemistrySession, datetime]] = []
    for key in sorted(daily_report.medical_sessions):
        session = daily_report.medical_sessions[key]
        medical_timestamp = session.timestamp
        if medical_timestamp is None:
            logger.debug(
                "medical_session_unparseable",
                date=daily_report.date,
                session_key=key,
                time=session.time,
            )
            continue
        medical_candidates.append((session, medical_timestamp))

    records: list[CombinedRecord] = []
    matched_medical_keys: set[str] = set()

    for key in sorted(daily_report.hardware_sessions):
        hardware = daily_report.hardware_sessions[key]
        hardware_timestamp = hardware.timestamp
        if hardware_timestamp is None:
            logger.debug(
                "hardware_session_dropped",
                date=daily_report.date,
                session_key=key,
                time=hardware.time,
            )
            continue

        match = _nearest_subsequent(hardware_timestamp, medical_candidates)
        medical, medical_timestamp = match if match else (None, None)
        if medical is not None:
            matched_medical_keys.add(medical.session_key)

        records.append(
            CombinedRecord(
                id=CombinedRecord.make_id(
                    daily_report.date, key, medical.session_key if medical else None
                ),
                date=daily_report.date,
                timestamp=hardware_timestamp,
                hardware_session_key=key,
                medical_session_key=medical.session_key if medical else None,
                medical_timestamp=medical_timestamp,
                sensor=dict(hardware.readings),
                chemistry=dict(medical.readings) if medical else {},
            )
        )

    orphaned = len(daily_report.medical_sessions) - len(matched_medical_keys)
    if orphaned:
        logger.debug("orphaned_medical_sessions", date=daily_report.date, count=orphaned)

    # sort is stable, so equal timestamps keep ascending session-key order
    return sorted(records, key=lambda record: record.timestamp, reverse=True)


def _daily_reports(reports: Mapping[str, Any] | None) -> list[DailyReport]:
    if not isinstance(reports, Mapping):
        return []
    return [
        DailyReport.from_node(date_key, node)
        for date_key, node in reports.items()
        if DATE_KEY_PATTERN.match(str(date_key)) and isinstance(node, Mapping)
    ]


def reconcile_reports(reports: Mapping[str, Any] | None) -> list[CombinedRecord]:
    """Reconcile every day under `Users/{uid}/Reports`, newest record first."""
    records: list[CombinedRecord] = []
    for daily_report in sorted(_daily_reports(reports), key=lambda report: report.date):
        records.extend(reconcile_day(daily_report))
    return sorted(records, key=lambda record: record.timestamp, reverse=True)


def latest_record(reports: Mapping[str, Any] | None) -> CombinedRecord | None:
    """Most recent record of the latest day that has one."""
    for daily_report in sorted(
        _daily_reports(reports), key=lambda report: report.date, reverse=True
    ):
        records = reconcile_day(daily_report)
        if records:
            return records[0]
    return None


def filter_records(
    records: Iterable[CombinedRecord],
    time_range: TimeRange | None = "weekly",
    custom_date: date | None = None,
    now: datetime | None = None,
) -> list[CombinedRecord]:
    """
    Keep records inside a time window, newest first.

    A custom date overrides the range and keeps only that calendar day.
    Without either, the weekly window applies.
    """
    if custom_date is not None:
        kept = [record for record in records if record.timestamp.date() == custom_date]
    else:
        now = now or datetime.now()
        lookback = _RANGE_LOOKBACK_DAYS[time_range or "weekly"]
        start = datetime.combine(now.date() - timedelta(days=lookback), time.min)
        kept = [record for record in records if record.timestamp >= start]

    return sorted(kept, key=lambda record: record.timestamp, reverse=True)
