"""Tests for per-day, per-month and per-department attendance aggregation."""
from __future__ import annotations

import datetime

import pytest

from portal_analytics.analysis.attendance import (
    AttendanceCalendar,
    aggregate_attendance,
    aggregate_attendance_by_month,
    attendance_rate,
    overall_totals,
    round_percent,
    summarize_departments,
)
from portal_analytics.records import (
    AttendanceKey,
    AttendanceStatus,
    Attendee,
    RawAttendanceRecord,
)

D1 = datetime.date(2024, 3, 1)
D2 = datetime.date(2024, 3, 2)


def _record(day, department, *statuses, record_id="rec"):
    return RawAttendanceRecord(
        record_id=record_id,
        department=department,
        date=day,
        attendees=[
            Attendee(student_id=f"s{i}", status=AttendanceStatus.parse(s))
            for i, s in enumerate(statuses)
        ],
    )


def test_single_record_counts():
    records = [_record(D1, "CS", "present", "present", "absent")]

    out = aggregate_attendance(records)

    agg = out[AttendanceKey(D1, "CS")]
    assert (agg.present, agg.absent, agg.late, agg.excused, agg.total) == (
        2,
        1,
        0,
        0,
        3,
    )


def test_day_without_record_has_no_entry():
    calendar = AttendanceCalendar.from_records(
        [_record(D1, "CS", "present", "present", "absent")]
    )
    assert calendar.get("2024-03-02", "CS") is None
    assert not calendar.has_record(D2)
    assert calendar.has_record("2024-03-01")


def test_total_equals_sum_of_counters():
    records = [
        _record(D1, "CS", "present", "late", "excused", "absent", "PRESENT"),
        _record(D1, "CS", "late", "unknown"),
        _record(D2, "EE", "absent"),
    ]
    for agg in aggregate_attendance(records).values():
        assert agg.total == agg.present + agg.absent + agg.late + agg.excused


def test_unknown_status_is_not_counted():
    out = aggregate_attendance([_record(D1, "CS", "present", "teleported")])
    agg = out[AttendanceKey(D1, "CS")]
    assert agg.total == 1
    assert agg.present == 1


def test_records_for_same_key_accumulate():
    records = [
        _record(D1, "CS", "present", record_id="a"),
        _record(D1, "CS", "absent", "late", record_id="b"),
    ]
    out = aggregate_attendance(records)
    assert len(out) == 1
    assert out[AttendanceKey(D1, "CS")].total == 3


def test_departments_on_same_day_stay_separate():
    records = [
        _record(D1, "CS", "present", "present"),
        _record(D1, "EE", "absent"),
    ]
    out = aggregate_attendance(records)

    assert set(out) == {AttendanceKey(D1, "CS"), AttendanceKey(D1, "EE")}
    assert out[AttendanceKey(D1, "CS")].present == 2
    assert out[AttendanceKey(D1, "EE")].absent == 1


def test_filter_department():
    records = [_record(D1, "CS", "present"), _record(D1, "EE", "absent")]
    out = aggregate_attendance(records, "EE")
    assert list(out) == [AttendanceKey(D1, "EE")]


def test_empty_filter_means_all_departments():
    records = [_record(D1, "CS", "present"), _record(D1, "EE", "absent")]
    assert len(aggregate_attendance(records, "")) == 2


def test_calendar_combined_is_explicit():
    calendar = AttendanceCalendar.from_records(
        [
            _record(D1, "CS", "present", "present"),
            _record(D1, "EE", "absent", "late"),
        ]
    )

    combined = calendar.combined(D1)

    assert combined is not None
    assert (combined.present, combined.absent, combined.late, combined.total) == (
        2,
        1,
        1,
        4,
    )
    assert len(calendar.for_day(D1)) == 2
    assert calendar.combined(D2) is None


def test_calendar_days_and_departments():
    calendar = AttendanceCalendar.from_records(
        [
            _record(D2, "EE", "present"),
            _record(D1, "CS", "present"),
        ]
    )
    assert calendar.days() == [D1, D2]
    assert calendar.departments() == ["EE", "CS"]
    assert AttendanceKey(D1, "CS") in calendar
    assert len(calendar) == 2


def test_calendar_rejects_unparseable_day():
    calendar = AttendanceCalendar.from_records([_record(D1, "CS", "present")])
    assert calendar.get("not-a-date", "CS") is None
    assert calendar.for_day("garbage") == []


def test_attendance_rate():
    out = aggregate_attendance([_record(D1, "CS", "present", "present", "absent")])
    assert attendance_rate(out[AttendanceKey(D1, "CS")]) == pytest.approx(200 / 3)


def test_attendance_rate_for_empty_day_is_none():
    out = aggregate_attendance([_record(D1, "CS")])
    assert attendance_rate(out[AttendanceKey(D1, "CS")]) is None


@pytest.mark.parametrize(
    "value, expected", [(66.5, 67), (66.49, 66), (0.5, 1), (100.0, 100), (0, 0)]
)
def test_round_percent_is_half_up(value, expected):
    assert round_percent(value) == expected


def test_aggregate_by_month():
    records = [
        _record(D1, "CS", "present", "absent"),
        _record(datetime.date(2024, 3, 20), "CS", "present"),
        _record(datetime.date(2024, 4, 2), "CS", "late"),
        _record(D1, "EE", "excused"),
    ]

    out = aggregate_attendance_by_month(records)

    assert list(out) == [("2024-03", "CS"), ("2024-04", "CS"), ("2024-03", "EE")]
    march = out[("2024-03", "CS")]
    assert (march.present, march.absent, march.total) == (2, 1, 3)
    assert out[("2024-04", "CS")].late == 1


def test_summarize_departments():
    records = [
        _record(D1, "CS", "present", "present", "absent"),
        _record(D2, "CS", "late"),
        _record(D1, "EE", "absent"),
    ]

    summaries = {
        s.department: s
        for s in summarize_departments(records, {"CS": 40, "ME": 12})
    }

    cs = summaries["CS"]
    assert cs.student_count == 40
    assert cs.record_count == 2
    assert cs.total_sessions == 4
    assert cs.attendance_rate == 50
    assert cs.absentee_rate == 25
    assert cs.late_rate == 25

    assert summaries["EE"].student_count == 0
    assert summaries["EE"].absentee_rate == 100

    me = summaries["ME"]
    assert (me.record_count, me.total_sessions, me.attendance_rate) == (0, 0, 0)


def test_overall_totals():
    records = [
        _record(D1, "CS", "present", "present", "absent", "late"),
        _record(D2, "EE", "excused"),
    ]

    totals = overall_totals(records)

    assert totals.record_count == 2
    assert totals.counts.total == 5
    assert totals.present_rate == pytest.approx(40.0)
    assert totals.absent_rate == pytest.approx(20.0)
    assert totals.late_or_excused_rate == pytest.approx(40.0)


def test_overall_totals_empty():
    totals = overall_totals([])
    assert totals.record_count == 0
    assert totals.present_rate == 0


def test_calendar_lookups_return_copies():
    calendar = AttendanceCalendar.from_records(
        [_record(D1, "CS", "present", "absent")]
    )

    calendar.get(D1, "CS").add(AttendanceStatus.PRESENT, 5)
    calendar.for_day(D1)[0].add(AttendanceStatus.LATE)
    calendar.aggregates[AttendanceKey(D1, "CS")].add(AttendanceStatus.ABSENT)

    stored = calendar.get(D1, "CS")
    assert (stored.present, stored.absent, stored.late, stored.total) == (1, 1, 0, 2)


def test_calendar_does_not_share_input_aggregates():
    aggregates = aggregate_attendance([_record(D1, "CS", "present")])
    calendar = AttendanceCalendar(aggregates)

    aggregates[AttendanceKey(D1, "CS")].add(AttendanceStatus.ABSENT)

    assert calendar.get(D1, "CS").total == 1
