"""Data structures for reporting pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from portal_analytics.analysis.attendance import (
    AttendanceCalendar,
    AttendanceCounts,
    AttendanceTotals,
    DepartmentAttendanceSummary,
)
from portal_analytics.analysis.ratings import RatingSummary
from portal_analytics.records import (
    QuestionAggregate,
    QuestionResponse,
    RatingDistribution,
    RawAttendanceRecord,
)


@dataclass(slots=True)
class ProcessedFeedback:
    """Normalized feedback plus its aggregates, ready for views and reports."""

    normalized: List[QuestionResponse]
    distribution: RatingDistribution
    questions: List[QuestionAggregate]
    summary: RatingSummary
    response_count: int = 0

    @property
    def has_ratings(self) -> bool:
        return self.distribution.total > 0


@dataclass(slots=True)
class ProcessedAttendance:
    """Attendance records with every roll-up the dashboards need."""

    records: List[RawAttendanceRecord]
    calendar: AttendanceCalendar
    monthly: Dict[Tuple[str, str], AttendanceCounts]
    departments: List[DepartmentAttendanceSummary]
    totals: AttendanceTotals
    department: str = ""
