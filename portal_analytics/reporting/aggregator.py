"""Aggregate raw portal data into :class:`ProcessedFeedback` / :class:`ProcessedAttendance`."""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence

from portal_analytics.analysis.attendance import (
    AttendanceCalendar,
    aggregate_attendance,
    aggregate_attendance_by_month,
    overall_totals,
    summarize_departments,
)
from portal_analytics.analysis.normalize import normalize
from portal_analytics.analysis.ratings import (
    DEFAULT_RUBRIC,
    RatingRubric,
    aggregate_ratings,
    summarize_ratings,
)
from portal_analytics.records import RawAttendanceRecord, RawFeedbackResponse
from portal_analytics.reporting.models import ProcessedAttendance, ProcessedFeedback

logger = logging.getLogger(__name__)


def process_feedback(
    raw_responses: Sequence[RawFeedbackResponse],
    question_texts: Optional[Mapping[str, str]] = None,
    rubric: RatingRubric = DEFAULT_RUBRIC,
) -> ProcessedFeedback:
    """Normalize *raw_responses* and compute every rating aggregate.

    The function is read-only; it does not mutate its inputs.
    """
    normalized = normalize(raw_responses, question_texts)
    distribution, questions = aggregate_ratings(normalized, rubric)
    summary = summarize_ratings(distribution, questions)

    logger.debug(
        "Processed %d feedback responses into %d answers (%d rated)",
        len(raw_responses),
        len(normalized),
        distribution.total,
    )
    return ProcessedFeedback(
        normalized=normalized,
        distribution=distribution,
        questions=questions,
        summary=summary,
        response_count=len(raw_responses),
    )


def process_attendance(
    records: Sequence[RawAttendanceRecord],
    department: Optional[str] = None,
    student_counts: Optional[Mapping[str, int]] = None,
) -> ProcessedAttendance:
    """Build the calendar index and roll-ups for *records*.

    With a *department* only its records feed the calendar, monthly counts and
    totals; the per-department summary always covers every department present.
    """
    scoped: List[RawAttendanceRecord] = [
        r for r in records if not department or r.department == department
    ]
    return ProcessedAttendance(
        records=scoped,
        calendar=AttendanceCalendar(aggregate_attendance(scoped)),
        monthly=aggregate_attendance_by_month(scoped),
        departments=summarize_departments(records, student_counts),
        totals=overall_totals(scoped),
        department=department or "",
    )
