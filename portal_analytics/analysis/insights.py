"""OpenAI-generated narrative insights for feedback and attendance reports.

The payload builders reproduce the JSON summaries the portal's "AI Analysis"
buttons send; the generators turn them into a short markdown paragraph.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from portal_analytics.analysis.ratings import round_rating
from portal_analytics.openai_client import complete_chat
from portal_analytics.records import AttendanceStatus
from portal_analytics.reporting import config
from portal_analytics.reporting.models import ProcessedAttendance, ProcessedFeedback
from portal_analytics.reporting.views import build_comments_overview

_logger = logging.getLogger(__name__)

_FEEDBACK_SYSTEM_PROMPT = (
    "You are an academic quality analyst. You receive aggregated, anonymized "
    "student feedback for one department: a rating distribution, average "
    "ratings per question and student comments. Write a concise analysis "
    "(<=200 words, neutral tone) covering overall satisfaction, strongest and "
    "weakest areas, and two or three concrete recommendations for teachers. "
    "Never mention individual students."
)

_ATTENDANCE_SYSTEM_PROMPT = (
    "You are an academic attendance analyst. You receive per-department "
    "attendance rates and recent attendance sessions. Write a concise analysis "
    "(<=200 words, neutral tone) highlighting departments with low attendance, "
    "notable trends and two or three actionable recommendations."
)


def build_feedback_analysis_payload(
    processed: ProcessedFeedback, *, department: str, form_title: str
) -> Dict[str, Any]:
    """Summarize *processed* into the JSON-able payload sent for analysis."""
    distribution = processed.distribution
    return {
        "totalResponses": distribution.total,
        "ratingDistribution": distribution.as_dict() if distribution.total else None,
        "questionRatings": [
            {"question": q.question_text, "rating": round_rating(q.average_rating)}
            for q in processed.questions
        ],
        "textualFeedback": [
            {
                "question": group.question_text,
                "comments": [r.text_response for r in group.responses],
            }
            for group in build_comments_overview(processed.normalized)
        ],
        "formTitle": form_title,
        "department": department or "Unknown Department",
    }


def build_attendance_analysis_payload(
    processed: ProcessedAttendance, *, students_total: int = 0
) -> Dict[str, Any]:
    recent: List[Dict[str, Any]] = []
    for record in processed.records[: config.RECENT_TRENDS]:
        statuses = [a.status for a in record.attendees]
        recent.append(
            {
                "date": record.date.isoformat(),
                "department": record.department,
                "totalStudents": len(record.attendees),
                "presentCount": statuses.count(AttendanceStatus.PRESENT),
                "absentCount": statuses.count(AttendanceStatus.ABSENT),
                "lateCount": statuses.count(AttendanceStatus.LATE),
            }
        )
    return {
        "totalStudents": students_total,
        "totalRecords": len(processed.records),
        "departmentData": [
            {
                "department": d.department,
                "studentCount": d.student_count,
                "recordCount": d.record_count,
                "attendanceRate": d.attendance_rate,
                "absenteeRate": d.absentee_rate,
                "lateRate": d.late_rate,
                "totalSessions": d.total_sessions,
            }
            for d in processed.departments
        ],
        "recentTrends": recent,
    }


def _generate(
    system_prompt: str,
    payload: Dict[str, Any],
    *,
    max_tokens: int,
    temperature: float,
    max_length_chars: int,
) -> str:
    messages = [
        {"role": "system", "content": system_prompt},
        {
            "role": "user",
            "content": "Here is the aggregated data as JSON:\n"
            + json.dumps(payload, ensure_ascii=False, indent=2),
        },
    ]

    attempts = 0
    while attempts < 2:
        attempts += 1
        try:
            content = complete_chat(
                messages, temperature=temperature, max_tokens=max_tokens
            ).strip()
            if len(content) > max_length_chars:
                content = content[:max_length_chars].rstrip() + "…"
            return content
        except Exception as exc:  # noqa: BLE001
            _logger.warning("Insight generation attempt %d failed: %s", attempts, exc)
            if attempts >= 2:
                raise RuntimeError("OpenAI insight generation failed") from exc
    return ""


def generate_feedback_insights(
    payload: Dict[str, Any],
    *,
    max_tokens: int = 350,
    temperature: float = 0.4,
    max_length_chars: int = 1500,
) -> str:
    """Narrative analysis of a feedback payload; ``""`` when nothing was rated.

    Raises RuntimeError after two failed attempts.
    """
    if not payload.get("totalResponses"):
        return ""
    return _generate(
        _FEEDBACK_SYSTEM_PROMPT,
        payload,
        max_tokens=max_tokens,
        temperature=temperature,
        max_length_chars=max_length_chars,
    )


def generate_attendance_insights(
    payload: Dict[str, Any],
    *,
    max_tokens: int = 350,
    temperature: float = 0.4,
    max_length_chars: int = 1500,
) -> str:
    """Narrative analysis of an attendance payload; ``""`` without records."""
    if not payload.get("totalRecords"):
        return ""
    return _generate(
        _ATTENDANCE_SYSTEM_PROMPT,
        payload,
        max_tokens=max_tokens,
        temperature=temperature,
        max_length_chars=max_length_chars,
    )
