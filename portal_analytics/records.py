"""Typed records exchanged between the portal API and the aggregators.

Raw records mirror the JSON the backend returns (camelCase keys, Mongo style
``_id`` fields).  Parsing is tolerant: missing or oddly-typed fields become
``None`` so the aggregators can decide what to skip.  Derived records are
frozen, pure projections that are recomputed whenever the raw input changes.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Union

logger = logging.getLogger(__name__)

RawValue = Union[int, float, str, None]


class AttendanceStatus(str, Enum):
    """The four attendance buckets, in display order."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"

    @classmethod
    def parse(cls, value: Any) -> Optional["AttendanceStatus"]:
        """Return the matching status (case-insensitive) or *None*."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Mapping):
        # populated Mongo references arrive as nested documents
        return _as_str(_first(value, "_id", "id"))
    text = str(value)
    return text if text else None


def parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed); *None* if unusable."""
    if isinstance(value, datetime.datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_day(value: Any) -> Optional[datetime.date]:
    """Reduce a date or timestamp to its calendar day."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return datetime.date.fromisoformat(value.strip().split("T", 1)[0])
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Raw feedback
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class RawAnswer:
    """One answer inside a submitted feedback response."""

    question_id: Optional[str]
    question_text: Optional[str] = None
    response: RawValue = None
    comments: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RawAnswer":
        response = payload.get("response")
        if not isinstance(response, (int, float, str)) or isinstance(response, bool):
            response = None
        comments = payload.get("comments")
        question_text = payload.get("questionText")
        return cls(
            question_id=_as_str(payload.get("questionId")),
            question_text=question_text if isinstance(question_text, str) else None,
            response=response,
            comments=comments if isinstance(comments, str) else None,
        )


@dataclass(slots=True)
class RawFeedbackResponse:
    """One student's submission to one feedback form."""

    response_id: str
    submitted_at: Optional[datetime.datetime] = None
    answers: List[RawAnswer] = field(default_factory=list)

    @classmethod
    def from_dict(
        cls, payload: Mapping[str, Any], *, index: int = 0
    ) -> "RawFeedbackResponse":
        raw_answers = payload.get("answers")
        answers = [
            RawAnswer.from_dict(item)
            for item in (raw_answers if isinstance(raw_answers, list) else [])
            if isinstance(item, Mapping)
        ]
        return cls(
            response_id=_as_str(_first(payload, "id", "_id", "responseId"))
            or f"response-{index}",
            submitted_at=parse_timestamp(payload.get("submittedAt")),
            answers=answers,
        )


def parse_feedback_results(payload: Any) -> List[RawFeedbackResponse]:
    """Convert a ``/api/feedback-results`` body into raw responses.

    Anything other than ``{"responses": [...]}`` yields an empty list.
    """
    if not isinstance(payload, Mapping):
        return []
    items = payload.get("responses")
    if not isinstance(items, list):
        return []
    return [
        RawFeedbackResponse.from_dict(item, index=index)
        for index, item in enumerate(items)
        if isinstance(item, Mapping)
    ]


def question_text_map(forms: Any) -> Dict[str, str]:
    """Build a ``question_id → text`` lookup from feedback form metadata."""
    texts: Dict[str, str] = {}
    if not isinstance(forms, list):
        return texts
    for form in forms:
        if not isinstance(form, Mapping):
            continue
        for question in form.get("questions") or []:
            if not isinstance(question, Mapping):
                continue
            qid = _as_str(_first(question, "_id", "id"))
            text = _first(question, "text", "question")
            if qid and isinstance(text, str) and qid not in texts:
                texts[qid] = text
    return texts


# ---------------------------------------------------------------------------
# Raw attendance
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Attendee:
    student_id: Optional[str]
    status: Optional[AttendanceStatus]
    remark: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Attendee":
        remark = payload.get("remark")
        return cls(
            student_id=_as_str(_first(payload, "studentId", "student")),
            status=AttendanceStatus.parse(payload.get("status")),
            remark=remark if isinstance(remark, str) else "",
        )


@dataclass(slots=True)
class RawAttendanceRecord:
    """One attendance-taking event for a department on a given day."""

    record_id: str
    department: str
    date: datetime.date
    attendees: List[Attendee] = field(default_factory=list)

    @classmethod
    def from_dict(
        cls, payload: Mapping[str, Any], *, index: int = 0
    ) -> Optional["RawAttendanceRecord"]:
        """Return the parsed record, or *None* when it has no usable date."""
        day = parse_day(payload.get("date"))
        if day is None:
            logger.debug("Skipping attendance record without a valid date: %r", payload)
            return None
        raw_attendees = payload.get("attendees")
        return cls(
            record_id=_as_str(_first(payload, "_id", "id")) or f"record-{index}",
            department=_as_str(payload.get("department")) or "",
            date=day,
            attendees=[
                Attendee.from_dict(item)
                for item in (raw_attendees if isinstance(raw_attendees, list) else [])
                if isinstance(item, Mapping)
            ],
        )


def parse_attendance_records(payload: Any) -> List[RawAttendanceRecord]:
    """Convert a ``/api/attendance`` body into raw records."""
    if not isinstance(payload, list):
        return []
    records: List[RawAttendanceRecord] = []
    for index, item in enumerate(payload):
        if not isinstance(item, Mapping):
            continue
        record = RawAttendanceRecord.from_dict(item, index=index)
        if record is not None:
            records.append(record)
    return records


# ---------------------------------------------------------------------------
# Derived records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class QuestionResponse:
    """A single answer, normalized and anonymized for reporting."""

    question_id: str
    question_text: str
    rating: Optional[float]
    text_response: Optional[str]
    student_anon_id: str
    submitted_at: Optional[datetime.datetime]
    response_id: str = ""
    answer_text: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RatingDistribution:
    """Counts of rated answers per rubric bucket."""

    excellent: int = 0
    good: int = 0
    average: int = 0
    poor: int = 0

    @property
    def total(self) -> int:
        return self.excellent + self.good + self.average + self.poor

    def as_dict(self) -> Dict[str, int]:
        return {
            "excellent": self.excellent,
            "good": self.good,
            "average": self.average,
            "poor": self.poor,
        }


@dataclass(frozen=True, slots=True)
class QuestionAggregate:
    question_id: str
    question_text: str
    average_rating: float
    response_count: int
    rated_count: int = 0


class AttendanceKey(NamedTuple):
    date: datetime.date
    department: str


@dataclass(slots=True)
class AttendanceDayAggregate:
    """Status counts for one ``(date, department)`` pair.

    ``total`` is only ever changed through :meth:`add`, which keeps it equal
    to the sum of the four status counters.
    """

    date: datetime.date
    department: str
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    total: int = 0

    @property
    def key(self) -> AttendanceKey:
        return AttendanceKey(self.date, self.department)

    def add(self, status: AttendanceStatus, count: int = 1) -> None:
        if status is AttendanceStatus.PRESENT:
            self.present += count
        elif status is AttendanceStatus.ABSENT:
            self.absent += count
        elif status is AttendanceStatus.LATE:
            self.late += count
        else:
            self.excused += count
        self.total += count

    def count(self, status: AttendanceStatus) -> int:
        return getattr(self, status.value)
