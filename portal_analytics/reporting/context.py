"""Context dataclasses for rendering feedback and attendance reports.

This module defines typed containers holding every value the Jinja2
templates in ``portal_analytics/reporting/templates`` expect.

Keeping *context building* apart from *template rendering* lets the business
rules (rounding, caps, fallbacks) be unit-tested without template strings,
and lets other outputs (JSON, HTML) reuse the same context objects.
"""
from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from datetime import datetime as _dt
from datetime import timezone as _tz
from typing import Any, Dict, List, Sequence

from portal_analytics.analysis.attendance import attendance_rate, round_percent
from portal_analytics.analysis.insights import (
    build_attendance_analysis_payload,
    build_feedback_analysis_payload,
    generate_attendance_insights,
    generate_feedback_insights,
)
from portal_analytics.analysis.ratings import (
    DEFAULT_RUBRIC,
    RatingRubric,
    needs_improvement,
    round_rating,
    top_rated,
)
from portal_analytics.analysis.student_attendance import (
    analyze_student_attendance,
    attendance_suggestions,
    student_history,
)
from portal_analytics.records import RawAttendanceRecord
from portal_analytics.reporting import config
from portal_analytics.reporting.models import ProcessedAttendance, ProcessedFeedback
from portal_analytics.reporting.views import build_chart_series, build_comments_overview

__all__ = [
    "FeedbackStats",
    "FeedbackReportContext",
    "AttendanceReportContext",
    "StudentAttendanceContext",
    "build_feedback_report_context",
    "build_attendance_report_context",
    "build_student_attendance_context",
]

logger = logging.getLogger(__name__)

INSIGHTS_FALLBACK = (
    "Sorry, the automated analysis could not be generated right now. "
    "Please try again later."
)


@dataclass(slots=True)
class FeedbackStats:
    """Headline numbers displayed above the feedback charts."""

    total_responses: int
    total_rated: int
    satisfaction_rate: int
    average_rating: str  # one decimal, e.g. "4.2"

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        """Return a *plain* ``dict`` representation suitable for Jinja."""
        return asdict(self)


@dataclass(slots=True)
class FeedbackReportContext:
    """Container with all fields used by the feedback report template."""

    department: str
    form_title: str
    date: str  # ISO-8601 date string (UTC)
    stats: FeedbackStats

    distribution: List[Dict[str, Any]] = field(default_factory=list)
    question_ratings: List[Dict[str, Any]] = field(default_factory=list)
    top_rated: List[Dict[str, Any]] = field(default_factory=list)
    needs_improvement: List[Dict[str, Any]] = field(default_factory=list)
    comments: List[Dict[str, Any]] = field(default_factory=list)

    insights: str = ""
    version: str = "1"

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        """Return a *plain* ``dict`` (recursively) for Jinja rendering."""
        return asdict(self)

    __call__ = to_dict


@dataclass(slots=True)
class AttendanceReportContext:
    """Container with all fields used by the attendance report template."""

    department: str
    date: str
    record_count: int
    present_rate: int
    absent_rate: int
    late_or_excused_rate: int

    departments: List[Dict[str, Any]] = field(default_factory=list)
    days: List[Dict[str, Any]] = field(default_factory=list)

    insights: str = ""
    version: str = "1"

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        return asdict(self)

    __call__ = to_dict


def _today() -> str:
    return _dt.now(tz=_tz.utc).strftime("%Y-%m-%d")


def _question_rows(aggregates) -> List[Dict[str, Any]]:
    return [
        {"question": a.question_text, "rating": round_rating(a.average_rating)}
        for a in aggregates
    ]


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------
def build_feedback_report_context(
    processed: ProcessedFeedback,
    *,
    department: str,
    form_title: str = "All Forms",
    include_insights: bool = False,
    rubric: RatingRubric = DEFAULT_RUBRIC,
) -> FeedbackReportContext:
    """Convert ``ProcessedFeedback`` into :class:`FeedbackReportContext`.

    The function is *pure* unless *include_insights* is set; insight
    failures are swallowed and replaced by a fixed notice so rendering always
    succeeds.
    """

    series = build_chart_series(processed.distribution, rubric)
    total = processed.distribution.total
    distribution = [
        {
            "label": label,
            "count": int(count),
            "percent": round_percent(count / total * 100) if total else 0,
        }
        for label, count in zip(series.labels, series.data)
    ]

    # Cap comments per question to keep reports readable
    comments = [
        {
            "question": group.question_text,
            "comments": [r.text_response for r in group.responses][
                : config.MAX_COMMENTS
            ],
        }
        for group in build_comments_overview(processed.normalized)
    ]

    insights = ""
    if include_insights:
        payload = build_feedback_analysis_payload(
            processed, department=department, form_title=form_title
        )
        try:
            insights = generate_feedback_insights(payload)
        except Exception as exc:  # noqa: BLE001 – insights are optional
            logger.warning("Feedback insights failed for %s: %s", department, exc)
            insights = INSIGHTS_FALLBACK

    summary = processed.summary
    return FeedbackReportContext(
        department=department,
        form_title=form_title,
        date=_today(),
        stats=FeedbackStats(
            total_responses=processed.response_count,
            total_rated=summary.total_rated,
            satisfaction_rate=round_percent(summary.satisfaction_rate),
            average_rating=f"{round_rating(summary.overall_average):.1f}",
        ),
        distribution=distribution,
        question_ratings=_question_rows(processed.questions),
        top_rated=_question_rows(top_rated(processed.questions, config.TOP_QUESTIONS)),
        needs_improvement=_question_rows(
            needs_improvement(processed.questions, config.TOP_QUESTIONS)
        ),
        comments=comments,
        insights=insights,
        version=os.getenv("REPORT_VERSION", "0.1"),
    )


def build_attendance_report_context(
    processed: ProcessedAttendance,
    *,
    include_insights: bool = False,
    students_total: int = 0,
) -> AttendanceReportContext:
    """Convert ``ProcessedAttendance`` into :class:`AttendanceReportContext`."""

    days: List[Dict[str, Any]] = []
    for key in sorted(processed.calendar.aggregates):
        aggregate = processed.calendar.get(key.date, key.department)
        rate = attendance_rate(aggregate)
        days.append(
            {
                "date": key.date.isoformat(),
                "department": key.department,
                "present": aggregate.present,
                "absent": aggregate.absent,
                "late": aggregate.late,
                "excused": aggregate.excused,
                "total": aggregate.total,
                "percentage": round_percent(rate) if rate is not None else 0,
            }
        )

    insights = ""
    if include_insights:
        payload = build_attendance_analysis_payload(
            processed, students_total=students_total
        )
        try:
            insights = generate_attendance_insights(payload)
        except Exception as exc:  # noqa: BLE001 – insights are optional
            logger.warning(
                "Attendance insights failed for %s: %s",
                processed.department or "all departments",
                exc,
            )
            insights = INSIGHTS_FALLBACK

    totals = processed.totals
    return AttendanceReportContext(
        department=processed.department or "All Departments",
        date=_today(),
        record_count=totals.record_count,
        present_rate=round_percent(totals.present_rate),
        absent_rate=round_percent(totals.absent_rate),
        late_or_excused_rate=round_percent(totals.late_or_excused_rate),
        departments=[
            {
                "department": d.department,
                "records": d.record_count,
                "sessions": d.total_sessions,
                "attendance_rate": d.attendance_rate,
                "absentee_rate": d.absentee_rate,
                "late_rate": d.late_rate,
            }
            for d in processed.departments
        ],
        days=days,
        insights=insights,
        version=os.getenv("REPORT_VERSION", "0.1"),
    )


@dataclass(slots=True)
class StudentAttendanceContext:
    """Container with all fields used by the student attendance template."""

    student_id: str
    date: str
    total_classes: int
    present: int
    absent: int
    late: int
    excused: int
    percentage: str  # one decimal, e.g. "83.3"
    max_consecutive_absences: int

    courses: List[Dict[str, Any]] = field(default_factory=list)
    monthly: List[Dict[str, Any]] = field(default_factory=list)
    suggestions: List[Dict[str, Any]] = field(default_factory=list)

    version: str = "1"

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        return asdict(self)

    __call__ = to_dict


def build_student_attendance_context(
    records: Sequence[RawAttendanceRecord], student_id: str
) -> StudentAttendanceContext:
    """Analyse *student_id*'s attendance across *records* for rendering."""

    analysis = analyze_student_attendance(student_history(records, student_id))
    return StudentAttendanceContext(
        student_id=student_id,
        date=_today(),
        total_classes=analysis.total_classes,
        present=analysis.present,
        absent=analysis.absent,
        late=analysis.late,
        excused=analysis.excused,
        percentage=f"{analysis.percentage:.1f}",
        max_consecutive_absences=analysis.max_consecutive_absences,
        courses=[
            {
                "course": course,
                "total": data.total,
                "present": data.present,
                "percentage": f"{data.percentage:.1f}",
            }
            for course, data in analysis.courses.items()
        ],
        monthly=[
            {"month": month, "present": count}
            for month, count in analysis.monthly_present
        ],
        suggestions=[asdict(s) for s in attendance_suggestions(analysis)],
        version=os.getenv("REPORT_VERSION", "0.1"),
    )
