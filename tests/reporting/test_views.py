"""Tests for chart series, drill-down groups and calendar views."""
from __future__ import annotations

import datetime

import pytest

from portal_analytics.analysis.attendance import AttendanceCalendar
from portal_analytics.analysis.ratings import aggregate_ratings
from portal_analytics.records import (
    AttendanceStatus,
    Attendee,
    QuestionAggregate,
    QuestionResponse,
    RatingDistribution,
    RawAttendanceRecord,
)
from portal_analytics.reporting.views import (
    ALL_QUESTIONS,
    build_attendance_series,
    build_chart_series,
    build_comments_overview,
    build_drilldown,
    build_month_grid,
    build_question_series,
)


def _row(qid, rating, comment=None, anon="Student A"):
    return QuestionResponse(
        question_id=qid,
        question_text=f"Text {qid}",
        rating=rating,
        text_response=comment,
        student_anon_id=anon,
        submitted_at=None,
    )


def _calendar():
    def rec(day, dept, *statuses):
        return RawAttendanceRecord(
            f"{dept}-{day}",
            dept,
            datetime.date(2024, 3, day),
            [Attendee(f"s{i}", s) for i, s in enumerate(statuses)],
        )

    P, A, L = AttendanceStatus.PRESENT, AttendanceStatus.ABSENT, AttendanceStatus.LATE
    return AttendanceCalendar.from_records(
        [rec(1, "CS", P, P, A), rec(1, "EE", L), rec(3, "CS", A, A)]
    )


def test_chart_series_order_and_labels():
    series = build_chart_series(RatingDistribution(excellent=2, average=1, poor=1))

    assert series.labels == ["Excellent", "Good", "Average", "Poor"]
    assert series.data == [2, 0, 1, 1]
    assert series.total == 4
    assert not series.is_empty


def test_chart_series_empty_state():
    series = build_chart_series(RatingDistribution())
    assert series.data == [0, 0, 0, 0]
    assert series.is_empty


def test_chart_series_matches_aggregates():
    rows = [_row("Q1", r) for r in (5, 4.5, 3, 1, None)]
    distribution, _ = aggregate_ratings(rows)
    series = build_chart_series(distribution)
    assert series.total == distribution.total == 4


def test_question_series_rounds_for_display():
    aggregates = [
        QuestionAggregate("Q1", "Clarity", 3.375, 4, 4),
        QuestionAggregate("Q2", "Pace", 4.16, 2, 2),
    ]
    series = build_question_series(aggregates)
    assert series.to_dict() == {"labels": ["Clarity", "Pace"], "data": [3.4, 4.2]}


def test_drilldown_all_groups_in_first_seen_order():
    rows = [_row("Q2", 1), _row("Q1", 5), _row("Q2", 3, anon="Student B")]

    groups = build_drilldown(rows, ALL_QUESTIONS)

    assert [g.question_id for g in groups] == ["Q2", "Q1"]
    assert [r.student_anon_id for r in groups[0].responses] == [
        "Student A",
        "Student B",
    ]
    assert groups[0].average_rating == 2.0
    assert build_drilldown(rows) == groups


def test_drilldown_single_question():
    rows = [_row("Q1", 5), _row("Q2", 1)]
    groups = build_drilldown(rows, "Q2")
    assert len(groups) == 1
    assert groups[0].question_text == "Text Q2"


def test_drilldown_unknown_question_is_empty():
    assert build_drilldown([_row("Q1", 5)], "nope") == []


def test_drilldown_group_without_ratings():
    groups = build_drilldown([_row("Q1", None, "just text")])
    assert groups[0].average_rating is None


def test_comments_overview_keeps_only_commented():
    rows = [_row("Q1", 5, "Great"), _row("Q1", 4), _row("Q2", 3)]

    overview = build_comments_overview(rows)

    assert len(overview) == 1
    assert [r.text_response for r in overview[0].responses] == ["Great"]


def test_attendance_series_per_department_and_combined():
    calendar = _calendar()
    days = [datetime.date(2024, 3, d) for d in (1, 2, 3)]

    cs = build_attendance_series(calendar, days, "CS")
    assert cs["present"] == [2, 0, 0]
    assert cs["absent"] == [1, 0, 2]

    combined = build_attendance_series(calendar, days)
    assert combined["late"] == [1, 0, 0]
    assert combined["present"] == [2, 0, 0]
    assert set(combined) == {"present", "absent", "late", "excused"}


def test_month_grid():
    cells = build_month_grid(_calendar(), 2024, 3, "CS")

    assert len(cells) == 31
    assert cells[0].taken
    assert cells[0].percentage == 67
    assert not cells[1].taken
    assert cells[1].percentage is None
    assert cells[2].percentage == 0


@pytest.mark.parametrize("department, expected", [(None, 50), ("EE", 0)])
def test_month_grid_first_day(department, expected):
    cells = build_month_grid(_calendar(), 2024, 3, department)
    assert cells[0].percentage == expected


def test_month_grid_february_leap_year():
    assert len(build_month_grid(_calendar(), 2024, 2)) == 29


def test_view_builders_are_idempotent():
    rows = [_row("Q1", 5, "Nice"), _row("Q2", 2), _row("Q1", None)]
    distribution, aggregates = aggregate_ratings(rows)

    assert build_chart_series(distribution) == build_chart_series(distribution)
    assert build_question_series(aggregates) == build_question_series(aggregates)
    assert build_drilldown(rows) == build_drilldown(rows)


def test_drilldown_partitions_all_responses():
    rows = [_row(f"Q{i % 3}", i % 5 + 1, anon=f"Student {i}") for i in range(10)]

    groups = build_drilldown(rows, ALL_QUESTIONS)

    flattened = [r for g in groups for r in g.responses]
    assert len(flattened) == len(rows)
    assert sorted(flattened, key=rows.index) == rows
    assert all(
        r.question_id == g.question_id for g in groups for r in g.responses
    )


def test_question_series_rounds_exact_halves_up():
    _, aggregates = aggregate_ratings([_row("Q1", r) for r in (5, 4, 4, 4)])

    assert aggregates[0].average_rating == 4.25
    assert build_question_series(aggregates).data == [4.3]
