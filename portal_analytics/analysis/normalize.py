"""Turn raw feedback submissions into anonymized :class:`QuestionResponse` rows."""
from __future__ import annotations

import logging
import math
import re
from typing import List, Mapping, Optional, Sequence

from portal_analytics.records import QuestionResponse, RawFeedbackResponse, RawValue

logger = logging.getLogger(__name__)

# A plain decimal number, optionally signed, optionally with an exponent.
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def anonymized_label(index: int) -> str:
    """Return the display label for the *index*-th response.

    ``0 → "Student A"``, ``25 → "Student Z"``, ``26 → "Student A1"``.
    """
    cycle = index // 26
    return f"Student {chr(65 + index % 26)}{cycle if cycle > 0 else ''}"


def parse_rating(value: RawValue) -> Optional[float]:
    """Return *value* as a finite rating, or *None* when it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not _DECIMAL_RE.fullmatch(text):
            return None
        parsed = float(text)
        return parsed if math.isfinite(parsed) else None
    return None


def _blank_to_none(text: Optional[str]) -> Optional[str]:
    if text is None or not text.strip():
        return None
    return text


def normalize(
    raw_responses: Sequence[RawFeedbackResponse],
    question_texts: Optional[Mapping[str, str]] = None,
) -> List[QuestionResponse]:
    """Flatten *raw_responses* into one :class:`QuestionResponse` per answer.

    Order follows the input: responses first, then each response's answers.
    Answers without a question id cannot be grouped and are dropped.  The
    anonymized label depends only on the response's position, so a response
    with no usable answers still consumes a label.
    """
    question_texts = question_texts or {}
    out: List[QuestionResponse] = []

    for index, response in enumerate(raw_responses):
        label = anonymized_label(index)
        for answer in response.answers:
            if not answer.question_id:
                logger.debug(
                    "Skipping answer without questionId in response %s",
                    response.response_id,
                )
                continue

            rating = parse_rating(answer.response)
            answer_text = None
            if rating is None and isinstance(answer.response, str):
                answer_text = _blank_to_none(answer.response)

            out.append(
                QuestionResponse(
                    question_id=answer.question_id,
                    question_text=answer.question_text
                    or question_texts.get(answer.question_id)
                    or f"Question {answer.question_id}",
                    rating=rating,
                    text_response=_blank_to_none(answer.comments),
                    student_anon_id=label,
                    submitted_at=response.submitted_at,
                    response_id=response.response_id,
                    answer_text=answer_text,
                )
            )
    return out
