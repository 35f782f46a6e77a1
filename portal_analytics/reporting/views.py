"""Chart-ready series and drill-down groupings.

Everything here is a pure projection of aggregator output, cheap enough to
call on every render.
"""
from __future__ import annotations

import calendar
import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from portal_analytics.analysis.attendance import (
    AttendanceCalendar,
    attendance_rate,
    round_percent,
)
from portal_analytics.analysis.ratings import (
    BUCKET_KEYS,
    DEFAULT_RUBRIC,
    RatingRubric,
    round_rating,
)
from portal_analytics.records import (
    AttendanceDayAggregate,
    AttendanceStatus,
    QuestionAggregate,
    QuestionResponse,
    RatingDistribution,
)

ALL_QUESTIONS = "all"


@dataclass(frozen=True)
class ChartSeries:
    labels: List[str] = field(default_factory=list)
    data: List[float] = field(default_factory=list)

    @property
    def total(self) -> float:
        return sum(self.data)

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to plot (render the empty state)."""
        return self.total == 0

    def to_dict(self) -> Dict[str, list]:
        return {"labels": list(self.labels), "data": list(self.data)}


@dataclass(frozen=True)
class DrilldownGroup:
    question_id: str
    question_text: str
    responses: List[QuestionResponse]

    @property
    def average_rating(self) -> Optional[float]:
        ratings = [r.rating for r in self.responses if r.rating is not None]
        return sum(ratings) / len(ratings) if ratings else None


@dataclass(frozen=True)
class MonthCell:
    day: datetime.date
    aggregate: Optional[AttendanceDayAggregate]

    @property
    def taken(self) -> bool:
        return self.aggregate is not None

    @property
    def percentage(self) -> Optional[int]:
        """Rounded present percentage; *None* when attendance was not taken."""
        if self.aggregate is None:
            return None
        rate = attendance_rate(self.aggregate)
        return round_percent(rate) if rate is not None else 0


def build_chart_series(
    distribution: RatingDistribution, rubric: RatingRubric = DEFAULT_RUBRIC
) -> ChartSeries:
    """Distribution counts in Excellent/Good/Average/Poor order."""
    counts = distribution.as_dict()
    return ChartSeries(
        labels=rubric.labels(), data=[counts[key] for key in BUCKET_KEYS]
    )


def build_question_series(aggregates: Sequence[QuestionAggregate]) -> ChartSeries:
    """Question texts with averages rounded to one decimal."""
    return ChartSeries(
        labels=[a.question_text for a in aggregates],
        data=[round_rating(a.average_rating) for a in aggregates],
    )


def _group_by_question(
    normalized: Sequence[QuestionResponse],
) -> Dict[str, List[QuestionResponse]]:
    groups: Dict[str, List[QuestionResponse]] = {}
    for item in normalized:
        groups.setdefault(item.question_id, []).append(item)
    return groups


def build_drilldown(
    normalized: Sequence[QuestionResponse], filter_question_id: Optional[str] = None
) -> List[DrilldownGroup]:
    """Group responses by question, optionally keeping a single question.

    ``"all"`` or *None* returns every group in first-seen order.  An id with no
    responses yields an empty list.
    """
    groups = _group_by_question(normalized)
    if filter_question_id not in (None, ALL_QUESTIONS):
        items = groups.get(filter_question_id)  # type: ignore[arg-type]
        if not items:
            return []
        groups = {filter_question_id: items}  # type: ignore[dict-item]
    return [
        DrilldownGroup(
            question_id=question_id,
            question_text=items[0].question_text,
            responses=list(items),
        )
        for question_id, items in groups.items()
    ]


def build_comments_overview(
    normalized: Sequence[QuestionResponse],
) -> List[DrilldownGroup]:
    """Per question, only the responses that carry a comment."""
    overview: List[DrilldownGroup] = []
    for group in build_drilldown(normalized):
        commented = [r for r in group.responses if r.text_response]
        if commented:
            overview.append(
                DrilldownGroup(
                    question_id=group.question_id,
                    question_text=group.question_text,
                    responses=commented,
                )
            )
    return overview


def build_attendance_series(
    attendance: AttendanceCalendar,
    days: Sequence[datetime.date],
    department: Optional[str] = None,
) -> Dict[str, List[int]]:
    """Per-status count series over *days* (zero for days without a record)."""
    series: Dict[str, List[int]] = {status.value: [] for status in AttendanceStatus}
    for day in days:
        aggregate = (
            attendance.get(day, department) if department else attendance.combined(day)
        )
        for status in AttendanceStatus:
            series[status.value].append(aggregate.count(status) if aggregate else 0)
    return series


def build_month_grid(
    attendance: AttendanceCalendar,
    year: int,
    month: int,
    department: Optional[str] = None,
) -> List[MonthCell]:
    """One cell per day of *month*; departments are summed when none is given."""
    _, days_in_month = calendar.monthrange(year, month)
    cells: List[MonthCell] = []
    for day_number in range(1, days_in_month + 1):
        day = datetime.date(year, month, day_number)
        aggregate = (
            attendance.get(day, department) if department else attendance.combined(day)
        )
        cells.append(MonthCell(day=day, aggregate=aggregate))
    return cells
