"""Attendance aggregation by day, month and department.

Aggregates are always keyed by ``(date, department)`` so that an
"all departments" view never silently merges two departments into one
bucket; callers that want a combined figure ask for it explicitly via
:meth:`AttendanceCalendar.combined`.
"""
from __future__ import annotations

import datetime
import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from portal_analytics.records import (
    AttendanceDayAggregate,
    AttendanceKey,
    AttendanceStatus,
    RawAttendanceRecord,
    parse_day,
)

logger = logging.getLogger(__name__)

DayLike = Union[datetime.date, str]


def round_percent(value: float) -> int:
    """Round a percentage half-up, the way the dashboards display it."""
    return math.floor(value + 0.5)


def _matches(record: RawAttendanceRecord, department: Optional[str]) -> bool:
    return not department or record.department == department


def _accumulate(target: AttendanceDayAggregate, record: RawAttendanceRecord) -> None:
    for attendee in record.attendees:
        if attendee.status is None:
            logger.debug(
                "Skipping attendee %s with unknown status in record %s",
                attendee.student_id,
                record.record_id,
            )
            continue
        target.add(attendee.status)


def aggregate_attendance(
    records: Sequence[RawAttendanceRecord], filter_department: Optional[str] = None
) -> Dict[AttendanceKey, AttendanceDayAggregate]:
    """Bucket attendee statuses per ``(date, department)``.

    Several records for the same key accumulate.  A day without a record has
    no entry at all, which callers must render as "not taken".
    """
    out: Dict[AttendanceKey, AttendanceDayAggregate] = {}
    for record in records:
        if not _matches(record, filter_department):
            continue
        key = AttendanceKey(record.date, record.department)
        aggregate = out.get(key)
        if aggregate is None:
            aggregate = out[key] = AttendanceDayAggregate(
                date=record.date, department=record.department
            )
        _accumulate(aggregate, record)
    return out


def attendance_rate(aggregate: AttendanceDayAggregate) -> Optional[float]:
    """Percentage of attendees marked present, or *None* for an empty day."""
    if aggregate.total == 0:
        return None
    return aggregate.present / aggregate.total * 100


def sum_aggregates(
    aggregates: Iterable[AttendanceDayAggregate], *, department: str = ""
) -> Optional[AttendanceDayAggregate]:
    """Add several aggregates of the same day together (*None* if there are none)."""
    combined: Optional[AttendanceDayAggregate] = None
    for aggregate in aggregates:
        if combined is None:
            combined = AttendanceDayAggregate(date=aggregate.date, department=department)
        for status in AttendanceStatus:
            count = aggregate.count(status)
            if count:
                combined.add(status, count)
    return combined


class AttendanceCalendar:
    """Read-only per-day index over :func:`aggregate_attendance` output.

    Built once per data set so every visible calendar cell is a dictionary
    lookup rather than a scan of the records.  Lookups hand out copies, so
    mutating a returned aggregate never changes the index.
    """

    def __init__(self, aggregates: Mapping[AttendanceKey, AttendanceDayAggregate]):
        self._aggregates: Dict[AttendanceKey, AttendanceDayAggregate] = {
            key: replace(agg) for key, agg in aggregates.items()
        }
        self._by_day: Dict[datetime.date, List[AttendanceDayAggregate]] = {}
        for aggregate in self._aggregates.values():
            self._by_day.setdefault(aggregate.date, []).append(aggregate)

    @classmethod
    def from_records(
        cls,
        records: Sequence[RawAttendanceRecord],
        filter_department: Optional[str] = None,
    ) -> "AttendanceCalendar":
        return cls(aggregate_attendance(records, filter_department))

    def __len__(self) -> int:
        return len(self._aggregates)

    def __contains__(self, key: object) -> bool:
        return key in self._aggregates

    @property
    def aggregates(self) -> Dict[AttendanceKey, AttendanceDayAggregate]:
        return {key: replace(agg) for key, agg in self._aggregates.items()}

    def days(self) -> List[datetime.date]:
        return sorted(self._by_day)

    def departments(self) -> List[str]:
        seen: Dict[str, None] = {}
        for key in self._aggregates:
            seen.setdefault(key.department, None)
        return list(seen)

    def get(self, day: DayLike, department: str) -> Optional[AttendanceDayAggregate]:
        parsed = parse_day(day)
        if parsed is None:
            return None
        aggregate = self._aggregates.get(AttendanceKey(parsed, department))
        return replace(aggregate) if aggregate is not None else None

    def for_day(self, day: DayLike) -> List[AttendanceDayAggregate]:
        parsed = parse_day(day)
        if parsed is None:
            return []
        return [replace(agg) for agg in self._by_day.get(parsed, [])]

    def has_record(self, day: DayLike) -> bool:
        return bool(self.for_day(day))

    def combined(self, day: DayLike) -> Optional[AttendanceDayAggregate]:
        """Explicit cross-department total for *day*; *None* when nothing was taken."""
        return sum_aggregates(self.for_day(day))


# ---------------------------------------------------------------------------
# Monthly / department roll-ups
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class AttendanceCounts:
    """Status counters without a date, for month and department roll-ups."""

    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    total: int = 0

    def add(self, status: AttendanceStatus, count: int = 1) -> None:
        setattr(self, status.value, getattr(self, status.value) + count)
        self.total += count

    def rate(self, *statuses: AttendanceStatus) -> float:
        """Percentage (0..100) of attendees in any of *statuses*; 0 when empty."""
        if not self.total:
            return 0.0
        return sum(getattr(self, s.value) for s in statuses) / self.total * 100


def month_key(day: datetime.date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def aggregate_attendance_by_month(
    records: Sequence[RawAttendanceRecord], filter_department: Optional[str] = None
) -> Dict[Tuple[str, str], AttendanceCounts]:
    """Counts per ``("YYYY-MM", department)`` in first-seen order."""
    out: Dict[Tuple[str, str], AttendanceCounts] = {}
    for record in records:
        if not _matches(record, filter_department):
            continue
        counts = out.setdefault(
            (month_key(record.date), record.department), AttendanceCounts()
        )
        for attendee in record.attendees:
            if attendee.status is not None:
                counts.add(attendee.status)
    return out


@dataclass(frozen=True)
class DepartmentAttendanceSummary:
    department: str
    student_count: int
    record_count: int
    total_sessions: int
    attendance_rate: int
    absentee_rate: int
    late_rate: int


def summarize_departments(
    records: Sequence[RawAttendanceRecord],
    student_counts: Optional[Mapping[str, int]] = None,
) -> List[DepartmentAttendanceSummary]:
    """Per-department totals with rounded integer rates.

    Departments listed in *student_counts* but without records still appear
    (with zero sessions), mirroring the HOD attendance overview.
    """
    student_counts = student_counts or {}
    counts: Dict[str, AttendanceCounts] = {}
    record_counts: Dict[str, int] = {}
    for department in student_counts:
        counts.setdefault(department, AttendanceCounts())
        record_counts.setdefault(department, 0)
    for record in records:
        dept_counts = counts.setdefault(record.department, AttendanceCounts())
        record_counts[record.department] = record_counts.get(record.department, 0) + 1
        for attendee in record.attendees:
            if attendee.status is not None:
                dept_counts.add(attendee.status)

    return [
        DepartmentAttendanceSummary(
            department=department,
            student_count=student_counts.get(department, 0),
            record_count=record_counts[department],
            total_sessions=c.total,
            attendance_rate=round_percent(c.rate(AttendanceStatus.PRESENT)),
            absentee_rate=round_percent(c.rate(AttendanceStatus.ABSENT)),
            late_rate=round_percent(c.rate(AttendanceStatus.LATE)),
        )
        for department, c in counts.items()
    ]


@dataclass(frozen=True)
class AttendanceTotals:
    """Dashboard headline figures over a set of records."""

    record_count: int
    counts: AttendanceCounts

    @property
    def present_rate(self) -> float:
        return self.counts.rate(AttendanceStatus.PRESENT)

    @property
    def absent_rate(self) -> float:
        return self.counts.rate(AttendanceStatus.ABSENT)

    @property
    def late_or_excused_rate(self) -> float:
        return self.counts.rate(AttendanceStatus.LATE, AttendanceStatus.EXCUSED)


def overall_totals(records: Sequence[RawAttendanceRecord]) -> AttendanceTotals:
    counts = AttendanceCounts()
    for record in records:
        for attendee in record.attendees:
            if attendee.status is not None:
                counts.add(attendee.status)
    return AttendanceTotals(record_count=len(records), counts=counts)
