"""Per-student attendance analytics and improvement suggestions."""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from portal_analytics.analysis.attendance import month_key
from portal_analytics.records import AttendanceStatus, RawAttendanceRecord
from portal_analytics.reporting import config


@dataclass(frozen=True)
class StudentAttendanceEntry:
    date: datetime.date
    department: str
    status: AttendanceStatus
    remark: str = ""


@dataclass(slots=True)
class CourseAttendance:
    total: int = 0
    present: int = 0

    @property
    def percentage(self) -> float:
        return self.present / self.total * 100 if self.total else 0.0


@dataclass(slots=True)
class StudentAttendanceAnalysis:
    total_classes: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    courses: Dict[str, CourseAttendance] = field(default_factory=dict)
    monthly_present: List[Tuple[str, int]] = field(default_factory=list)
    max_consecutive_absences: int = 0

    @property
    def percentage(self) -> float:
        return self.present / self.total_classes * 100 if self.total_classes else 0.0


@dataclass(frozen=True)
class Suggestion:
    id: str
    kind: str  # "warning" | "improvement"
    message: str
    description: str


def student_history(
    records: Sequence[RawAttendanceRecord], student_id: str
) -> List[StudentAttendanceEntry]:
    """Return *student_id*'s entries across *records*, oldest first."""
    entries = [
        StudentAttendanceEntry(
            date=record.date,
            department=record.department,
            status=attendee.status,
            remark=attendee.remark,
        )
        for record in records
        for attendee in record.attendees
        if attendee.student_id == student_id and attendee.status is not None
    ]
    # stable: same-day entries keep record order
    return sorted(entries, key=lambda e: e.date)


def analyze_student_attendance(
    entries: Sequence[StudentAttendanceEntry],
) -> StudentAttendanceAnalysis:
    analysis = StudentAttendanceAnalysis(total_classes=len(entries))
    monthly: Dict[str, int] = {}
    streak = 0

    for entry in sorted(entries, key=lambda e: e.date):
        setattr(analysis, entry.status.value, getattr(analysis, entry.status.value) + 1)

        course = analysis.courses.setdefault(
            entry.department or "Unknown", CourseAttendance()
        )
        course.total += 1

        month = month_key(entry.date)
        monthly.setdefault(month, 0)
        if entry.status is AttendanceStatus.PRESENT:
            course.present += 1
            monthly[month] += 1

        if entry.status is AttendanceStatus.ABSENT:
            streak += 1
            analysis.max_consecutive_absences = max(
                analysis.max_consecutive_absences, streak
            )
        else:
            streak = 0

    analysis.monthly_present = list(monthly.items())
    return analysis


def attendance_suggestions(analysis: StudentAttendanceAnalysis) -> List[Suggestion]:
    """Advice shown on the student attendance page, most urgent first."""
    if not analysis.total_classes:
        return []

    suggestions: List[Suggestion] = []
    percentage = analysis.percentage

    if percentage < config.MIN_ATTENDANCE_PERCENT:
        suggestions.append(
            Suggestion(
                id="low-attendance",
                kind="warning",
                message="Your attendance is below the required threshold",
                description=(
                    f"Your current attendance is {percentage:.1f}%, which is below the "
                    f"{config.MIN_ATTENDANCE_PERCENT:g}% requirement. Please improve your "
                    "attendance to avoid academic penalties."
                ),
            )
        )

    for course, data in analysis.courses.items():
        if data.percentage < config.MIN_COURSE_ATTENDANCE_PERCENT:
            suggestions.append(
                Suggestion(
                    id=f"course-{course}",
                    kind="warning",
                    message=f"Low attendance in {course}",
                    description=(
                        f"Your attendance in {course} is only {data.percentage:.1f}%. "
                        "Consider attending more classes for this course."
                    ),
                )
            )

    if analysis.max_consecutive_absences >= config.MAX_CONSECUTIVE_ABSENCES:
        suggestions.append(
            Suggestion(
                id="consecutive-absences",
                kind="warning",
                message="Pattern of consecutive absences detected",
                description=(
                    f"You have been absent for {analysis.max_consecutive_absences} "
                    "classes in a row. Regular attendance is important for academic success."
                ),
            )
        )

    if config.MIN_ATTENDANCE_PERCENT <= percentage < config.EXCELLENT_ATTENDANCE_PERCENT:
        suggestions.append(
            Suggestion(
                id="improve-attendance",
                kind="improvement",
                message="Good attendance, but room for improvement",
                description=(
                    "Your attendance is satisfactory, but improving it further could "
                    "help you keep up with course material."
                ),
            )
        )
    elif percentage >= config.EXCELLENT_ATTENDANCE_PERCENT:
        suggestions.append(
            Suggestion(
                id="excellent-attendance",
                kind="improvement",
                message="Excellent attendance record",
                description="Keep up the good work! Your consistent attendance shows dedication.",
            )
        )
    return suggestions
