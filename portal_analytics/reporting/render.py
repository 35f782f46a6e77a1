"""Render feedback and attendance reports using Jinja2 templates."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader

from portal_analytics.records import RawAttendanceRecord
from portal_analytics.reporting.context import (
    AttendanceReportContext,
    FeedbackReportContext,
    StudentAttendanceContext,
    build_attendance_report_context,
    build_feedback_report_context,
    build_student_attendance_context,
)
from portal_analytics.reporting.models import ProcessedAttendance, ProcessedFeedback

logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).parent / "templates"

# Markdown output: HTML escaping would mangle apostrophes in comments.
_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_feedback_context(context: FeedbackReportContext) -> str:
    template = _env.get_template("feedback_report.md.j2")
    return template.render(**context.to_dict())


def render_attendance_context(context: AttendanceReportContext) -> str:
    template = _env.get_template("attendance_report.md.j2")
    return template.render(**context.to_dict())


def render_feedback_report(
    processed: ProcessedFeedback,
    *,
    department: str,
    form_title: str = "All Forms",
    include_insights: bool = False,
) -> str:
    """Render a markdown feedback report from ``ProcessedFeedback``."""

    context = build_feedback_report_context(
        processed,
        department=department,
        form_title=form_title,
        include_insights=include_insights,
    )
    text = render_feedback_context(context)
    logger.debug(
        "Feedback report rendered for department=%s form=%s len=%d",
        department,
        form_title,
        len(text),
    )
    return text


def render_attendance_report(
    processed: ProcessedAttendance,
    *,
    include_insights: bool = False,
    students_total: int = 0,
) -> str:
    """Render a markdown attendance report from ``ProcessedAttendance``."""

    context = build_attendance_report_context(
        processed, include_insights=include_insights, students_total=students_total
    )
    text = render_attendance_context(context)
    logger.debug(
        "Attendance report rendered for department=%s len=%d",
        context.department,
        len(text),
    )
    return text


def render_student_attendance_context(context: StudentAttendanceContext) -> str:
    template = _env.get_template("student_attendance.md.j2")
    return template.render(**context.to_dict())


def render_student_attendance_report(
    records: Sequence[RawAttendanceRecord], student_id: str
) -> str:
    """Render one student's attendance summary and suggestions."""

    context = build_student_attendance_context(records, student_id)
    text = render_student_attendance_context(context)
    logger.debug(
        "Student attendance report rendered for %s (%d classes)",
        student_id,
        context.total_classes,
    )
    return text
