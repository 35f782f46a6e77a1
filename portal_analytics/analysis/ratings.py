"""Rating distribution and per-question averages.

Buckets come from a :class:`RatingRubric`, a small table of
``(key, label, min_inclusive)`` rows fixed at construction time.  The default
rubric reproduces the portal's thresholds::

    Excellent  rating >= 4.5
    Good       3.5 <= rating < 4.5
    Average    2.5 <= rating < 3.5
    Poor       rating < 2.5

Averages are kept at full precision; display rounding (:func:`round_rating`)
happens at the view and report boundary.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Sequence, Tuple

from portal_analytics.records import (
    QuestionAggregate,
    QuestionResponse,
    RatingDistribution,
)

logger = logging.getLogger(__name__)

BUCKET_KEYS: Tuple[str, ...] = ("excellent", "good", "average", "poor")

_ONE_DECIMAL = Decimal("0.1")


def round_rating(value: float) -> float:
    """Round a rating to one decimal, halves away from zero (4.25 -> 4.3).

    Goes through the shortest ``repr`` of *value* so 4.25 is treated as the
    decimal the user sees rather than its binary approximation.
    """
    if not math.isfinite(value):
        return value
    return float(Decimal(repr(value)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class RatingBucket:
    key: str
    label: str
    min_inclusive: float


class RatingRubric:
    """Immutable bucket table used to classify ratings."""

    def __init__(self, buckets: Iterable[RatingBucket]) -> None:
        ordered = sorted(buckets, key=lambda b: b.min_inclusive, reverse=True)
        keys = [b.key for b in ordered]
        if sorted(keys) != sorted(BUCKET_KEYS):
            raise ValueError(
                f"Rubric must define exactly the buckets {BUCKET_KEYS}, got {keys}"
            )
        self._buckets: Tuple[RatingBucket, ...] = tuple(ordered)
        self._by_key: Dict[str, RatingBucket] = {b.key: b for b in ordered}

    @property
    def buckets(self) -> Tuple[RatingBucket, ...]:
        """Buckets from highest to lowest threshold."""
        return self._buckets

    def labels(self) -> List[str]:
        """Display labels in the fixed Excellent/Good/Average/Poor order."""
        return [self._by_key[key].label for key in BUCKET_KEYS]

    def classify(self, rating: float) -> str:
        """Return the bucket key for *rating*."""
        for bucket in self._buckets:
            if rating >= bucket.min_inclusive:
                return bucket.key
        # below every threshold: lowest bucket
        return self._buckets[-1].key


DEFAULT_RUBRIC = RatingRubric(
    [
        RatingBucket("excellent", "Excellent", 4.5),
        RatingBucket("good", "Good", 3.5),
        RatingBucket("average", "Average", 2.5),
        RatingBucket("poor", "Poor", float("-inf")),
    ]
)


@dataclass(frozen=True)
class RatingSummary:
    """Headline numbers shown above the charts."""

    total_rated: int
    satisfaction_rate: float  # percentage of Excellent + Good, 0..100
    overall_average: float


def rating_distribution(
    normalized: Sequence[QuestionResponse], rubric: RatingRubric = DEFAULT_RUBRIC
) -> RatingDistribution:
    counts = dict.fromkeys(BUCKET_KEYS, 0)
    for item in normalized:
        if item.rating is None:
            continue
        counts[rubric.classify(item.rating)] += 1
    return RatingDistribution(**counts)


def question_aggregates(
    normalized: Sequence[QuestionResponse],
) -> List[QuestionAggregate]:
    """Per-question averages, in the order questions are first seen."""

    # dicts keep insertion order, which fixes chart label order
    groups: Dict[str, List[QuestionResponse]] = {}
    for item in normalized:
        groups.setdefault(item.question_id, []).append(item)

    aggregates: List[QuestionAggregate] = []
    for question_id, items in groups.items():
        ratings = [i.rating for i in items if i.rating is not None]
        average = sum(ratings) / len(ratings) if ratings else 0.0
        aggregates.append(
            QuestionAggregate(
                question_id=question_id,
                question_text=items[0].question_text,
                average_rating=average,
                response_count=len(items),
                rated_count=len(ratings),
            )
        )
    return aggregates


def aggregate_ratings(
    normalized: Sequence[QuestionResponse], rubric: RatingRubric = DEFAULT_RUBRIC
) -> Tuple[RatingDistribution, List[QuestionAggregate]]:
    """Return the bucket distribution and per-question aggregates of *normalized*."""
    distribution = rating_distribution(normalized, rubric)
    aggregates = question_aggregates(normalized)
    logger.debug(
        "Aggregated %d responses: %d rated across %d questions",
        len(normalized),
        distribution.total,
        len(aggregates),
    )
    return distribution, aggregates


def top_rated(
    aggregates: Sequence[QuestionAggregate], n: int = 2
) -> List[QuestionAggregate]:
    """Highest-averaging rated questions; ties keep input order."""
    rated = [a for a in aggregates if a.rated_count > 0]
    return sorted(rated, key=lambda a: -a.average_rating)[:n]


def needs_improvement(
    aggregates: Sequence[QuestionAggregate], n: int = 2
) -> List[QuestionAggregate]:
    """Lowest-averaging rated questions; ties keep input order."""
    rated = [a for a in aggregates if a.rated_count > 0]
    return sorted(rated, key=lambda a: a.average_rating)[:n]


def summarize_ratings(
    distribution: RatingDistribution, aggregates: Sequence[QuestionAggregate]
) -> RatingSummary:
    total = distribution.total
    satisfaction = (
        (distribution.excellent + distribution.good) / total * 100 if total else 0.0
    )
    rated = [a.average_rating for a in aggregates if a.rated_count > 0]
    overall = sum(rated) / len(rated) if rated else 0.0
    return RatingSummary(
        total_rated=total, satisfaction_rate=satisfaction, overall_average=overall
    )
