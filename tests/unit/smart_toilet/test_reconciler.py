"""
Tests for session reconciliation.

Covers:
- Cardinality preservation (one record per parseable hardware session)
- Nearest-subsequent pairing and tie handling
- Earlier medical sessions never being selected
- Partial records for an empty medical map
- Multi-day reconciliation, latest record lookup and time-range filtering
"""

from datetime import date, datetime

from hypothesis import given
from hypothesis import strategies as st

from smart_toilet.domain.models import CombinedRecord, DailyReport
from smart_toilet.services.reconciler import (
    filter_records,
    latest_record,
    reconcile_day,
    reconcile_reports,
)

DAY = "2024-05-01"


def _hardware(time: str | None, **readings: object) -> dict:
    node: dict = {"sensorData": readings or {"ph_value_sensor": 6.5}}
    if time is not None:
        node["metadata"] = {"time": time}
    return node


def _medical(time: str | None, **readings: object) -> dict:
    node: dict = {"Chemistry_Result": readings or {"chem_protein": "neg"}}
    if time is not None:
        node["metadata"] = {"time": time}
    return node


def _day(hardware: dict, medical: dict | None = None, day: str = DAY) -> DailyReport:
    return DailyReport.from_node(
        day, {"Hardware_Sessions": hardware, "Medical_Sessions": medical or {}}
    )


class TestReconcileDay:
    def test_pairs_with_nearest_subsequent_medical_session(self) -> None:
        report = _day(
            {"h1": _hardware("08:00:00")},
            {
                "m_far": _medical("09:00:00"),
                "m_near": _medical("08:05:00"),
                "m_before": _medical("07:59:59"),
            },
        )

        [record] = reconcile_day(report)

        assert record.medical_session_key == "m_near"
        assert record.medical_timestamp == datetime(2024, 5, 1, 8, 5, 0)
        assert record.chemistry == {"chem_protein": "neg"}

    def test_same_second_medical_session_qualifies(self) -> None:
        report = _day({"h1": _hardware("08:00:00")}, {"m1": _medical("08:00:00")})
        assert reconcile_day(report)[0].medical_session_key == "m1"

    def test_medical_session_earlier_than_every_hardware_session_is_never_selected(self) -> None:
        report = _day(
            {"h1": _hardware("10:00:00"), "h2": _hardware("12:00:00")},
            {"m_early": _medical("09:00:00")},
        )

        records = reconcile_day(report)

        assert len(records) == 2
        assert all(record.medical_session_key is None for record in records)

    def test_empty_medical_map_yields_partial_record(self) -> None:
        report = _day({"h1": _hardware("08:00:00")})

        [record] = reconcile_day(report)

        assert record.chemistry == {}
        assert record.medical_session_key is None
        assert record.has_chemistry is False
        assert record.id == f"{DAY}_h1_nomed"

    def test_medical_session_may_be_shared_by_several_hardware_sessions(self) -> None:
        report = _day(
            {"h1": _hardware("08:00:00"), "h2": _hardware("08:10:00")},
            {"m1": _medical("08:30:00")},
        )

        records = reconcile_day(report)

        assert {record.medical_session_key for record in records} == {"m1"}

    def test_delta_tie_picks_first_medical_key(self) -> None:
        report = _day(
            {"h1": _hardware("08:00:00")},
            {"m_b": _medical("08:05:00"), "m_a": _medical("08:05:00")},
        )
        assert reconcile_day(report)[0].medical_session_key == "m_a"

    def test_unparseable_hardware_session_is_dropped(self) -> None:
        report = _day(
            {
                "good": _hardware("08:00:00"),
                "no_meta": _hardware(None),
                "garbage": _hardware("25:61:00"),
            }
        )

        records = reconcile_day(report)

        assert [record.hardware_session_key for record in records] == ["good"]

    def test_unparseable_medical_session_is_ignored(self) -> None:
        report = _day(
            {"h1": _hardware("08:00:00")},
            {"bad": _medical("not-a-time"), "m1": _medical("08:20:00")},
        )
        assert reconcile_day(report)[0].medical_session_key == "m1"

    def test_records_are_newest_first_with_stable_ties(self) -> None:
        report = _day(
            {
                "a": _hardware("08:00:00"),
                "c": _hardware("09:00:00"),
                "b": _hardware("09:00:00"),
            }
        )

        keys = [record.hardware_session_key for record in reconcile_day(report)]

        assert keys == ["b", "c", "a"]

    def test_non_mapping_leaves_are_ignored(self) -> None:
        report = DailyReport.from_node(
            DAY,
            {
                "Hardware_Sessions": {"h1": _hardware("08:00:00"), "junk": "oops"},
                "Medical_Sessions": None,
            },
        )
        assert len(reconcile_day(report)) == 1

    def test_record_identity_uses_both_keys(self) -> None:
        report = _day({"h1": _hardware("08:00:00")}, {"m1": _medical("08:01:00")})
        record = reconcile_day(report)[0]
        assert record.id == f"{DAY}_h1_m1"
        assert record.timestamp == datetime(2024, 5, 1, 8, 0, 0)


_times = st.builds(
    lambda h, m, s: f"{h:02d}:{m:02d}:{s:02d}",
    st.integers(0, 23),
    st.integers(0, 59),
    st.integers(0, 59),
)


@given(
    hardware_times=st.lists(st.one_of(_times, st.none(), st.just("bad")), max_size=12),
    medical_times=st.lists(_times, max_size=12),
)
def test_reconcile_day_properties(hardware_times: list, medical_times: list) -> None:
    """Property: one record per parseable hardware session, paired to the nearest later one."""
    hardware = {f"h{i:02d}": _hardware(t) for i, t in enumerate(hardware_times)}
    medical = {f"m{i:02d}": _medical(t) for i, t in enumerate(medical_times)}

    records = reconcile_day(_day(hardware, medical))

    parseable = [t for t in hardware_times if t not in (None, "bad")]
    assert len(records) == len(parseable)

    medical_stamps = [datetime.strptime(f"{DAY} {t}", "%Y-%m-%d %H:%M:%S") for t in medical_times]
    for record in records:
        later = [stamp for stamp in medical_stamps if stamp >= record.timestamp]
        if not later:
            assert record.medical_session_key is None
        else:
            assert record.medical_timestamp == min(later)
            assert record.medical_timestamp >= record.timestamp

    timestamps = [record.timestamp for record in records]
    assert timestamps == sorted(timestamps, reverse=True)


def _reports() -> dict:
    return {
        "2024-04-30": {"Hardware_Sessions": {"h1": _hardware("22:00:00")}},
        "2024-05-01": {
            "Hardware_Sessions": {"h1": _hardware("07:00:00"), "h2": _hardware("19:00:00")},
            "Medical_Sessions": {"m1": _medical("19:02:00")},
        },
        "2024-05-02": {"Medical_Sessions": {"m1": _medical("06:00:00")}},
        "not-a-date": {"Hardware_Sessions": {"h1": _hardware("01:00:00")}},
    }


class TestMultiDay:
    def test_reconcile_reports_spans_days_newest_first(self) -> None:
        records = reconcile_reports(_reports())

        assert [record.id for record in records] == [
            "2024-05-01_h2_m1",
            "2024-05-01_h1_m1",
            "2024-04-30_h1_nomed",
        ]

    def test_medical_sessions_do_not_cross_days(self) -> None:
        reports = {
            "2024-05-01": {"Hardware_Sessions": {"h1": _hardware("23:59:00")}},
            "2024-05-02": {"Medical_Sessions": {"m1": _medical("00:01:00")}},
        }
        [record] = reconcile_reports(reports)
        assert record.medical_session_key is None

    def test_latest_record_skips_days_without_hardware(self) -> None:
        record = latest_record(_reports())
        assert record is not None
        assert record.id == "2024-05-01_h2_m1"

    def test_latest_record_of_empty_tree(self) -> None:
        assert latest_record(None) is None
        assert latest_record({}) is None


def _record_at(stamp: datetime) -> CombinedRecord:
    day = stamp.strftime("%Y-%m-%d")
    return CombinedRecord(
        id=CombinedRecord.make_id(day, stamp.strftime("%H%M%S"), None),
        date=day,
        timestamp=stamp,
        hardware_session_key=stamp.strftime("%H%M%S"),
    )


class TestFilterRecords:
    now = datetime(2024, 5, 31, 12, 0, 0)
    records = [
        _record_at(datetime(2024, 5, 31, 8, 0)),
        _record_at(datetime(2024, 5, 30, 23, 0)),
        _record_at(datetime(2024, 5, 25, 0, 0)),
        _record_at(datetime(2024, 5, 24, 23, 59)),
        _record_at(datetime(2024, 5, 2, 0, 0)),
        _record_at(datetime(2024, 5, 1, 23, 0)),
    ]

    def test_today(self) -> None:
        kept = filter_records(self.records, "today", now=self.now)
        assert [record.timestamp.day for record in kept] == [31]

    def test_weekly_includes_six_days_back(self) -> None:
        kept = filter_records(self.records, "weekly", now=self.now)
        assert [record.timestamp.day for record in kept] == [31, 30, 25]

    def test_monthly_includes_twenty_nine_days_back(self) -> None:
        kept = filter_records(self.records, "monthly", now=self.now)
        assert [record.timestamp.day for record in kept] == [31, 30, 25, 24, 2]

    def test_custom_date_overrides_range(self) -> None:
        kept = filter_records(self.records, "today", custom_date=date(2024, 5, 24), now=self.now)
        assert [record.timestamp.day for record in kept] == [24]

    def test_default_is_weekly(self) -> None:
        assert filter_records(self.records, None, now=self.now) == filter_records(
            self.records, "weekly", now=self.now
        )
