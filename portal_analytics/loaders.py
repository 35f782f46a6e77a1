"""Fetch-and-aggregate loaders that only publish the latest request's result.

Each ``load`` call takes a new generation token before awaiting the network.
When the fetch resolves, its snapshot (or error) is written to the loader's
:class:`ViewState` only if no newer ``load`` has been issued in the meantime,
so a slow, superseded response can never overwrite fresher state.
"""
from __future__ import annotations

import datetime
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar, Union

from portal_analytics.analysis.ratings import DEFAULT_RUBRIC, RatingRubric
from portal_analytics.api_client import ALL_FORMS, PortalApiClient
from portal_analytics.exceptions import PortalApiError
from portal_analytics.reporting.aggregator import process_attendance, process_feedback
from portal_analytics.reporting.models import ProcessedAttendance, ProcessedFeedback

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class RequestGenerations:
    """Monotonic request tokens; only the most recently issued one is current."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest = 0

    def issue(self) -> int:
        self._latest = next(self._counter)
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    @property
    def latest(self) -> int:
        return self._latest


@dataclass
class ViewState(Generic[T]):
    """What the presentation layer renders: data, loading flag and error."""

    snapshot: Optional[T] = None
    error: Optional[str] = None
    loading: bool = False
    generation: int = 0
    filters: Dict[str, Any] = field(default_factory=dict)


class _LatestOnlyLoader(Generic[T]):
    def __init__(self) -> None:
        self._generations = RequestGenerations()
        self.state: ViewState[T] = ViewState()

    async def _run(
        self,
        filters: Dict[str, Any],
        fetch: Callable[[], Awaitable[R]],
        build: Callable[[R], T],
    ) -> Optional[T]:
        token = self._generations.issue()
        self.state.loading = True
        self.state.filters = dict(filters)

        try:
            raw = await fetch()
            if not self._generations.is_current(token):
                logger.debug(
                    "Discarding stale response %d (latest is %d)",
                    token,
                    self._generations.latest,
                )
                return None
            snapshot = build(raw)
        except PortalApiError as exc:
            if not self._generations.is_current(token):
                logger.debug(
                    "Ignoring failure of superseded request %d: %s", token, exc
                )
                return None
            logger.warning("Fetch failed for %s: %s", filters, exc)
            self._publish(token, None, str(exc))
            return None
        except Exception as exc:
            if self._generations.is_current(token):
                logger.warning("Unexpected error loading %s: %r", filters, exc)
                self._publish(token, None, str(exc) or type(exc).__name__)
            raise
        finally:
            # also runs on cancellation
            if self._generations.is_current(token):
                self.state.loading = False

        self._publish(token, snapshot, None)
        return snapshot

    def _publish(
        self, token: int, snapshot: Optional[T], error: Optional[str]
    ) -> None:
        self.state.snapshot = snapshot
        self.state.error = error
        self.state.loading = False
        self.state.generation = token


class FeedbackResultsLoader(_LatestOnlyLoader[ProcessedFeedback]):
    """Loads feedback results for one department, optionally per form."""

    def __init__(
        self,
        client: PortalApiClient,
        department: str,
        *,
        rubric: RatingRubric = DEFAULT_RUBRIC,
    ) -> None:
        super().__init__()
        self._client = client
        self._department = department
        self._rubric = rubric
        self._question_texts: Optional[Dict[str, str]] = None
        self._last_form_id: str = ALL_FORMS

    async def load(self, form_id: str = ALL_FORMS) -> Optional[ProcessedFeedback]:
        """Fetch and aggregate results; returns *None* if failed or superseded."""
        self._last_form_id = form_id

        async def _fetch():
            if self._question_texts is None:
                self._question_texts = await self._client.fetch_question_texts()
            responses = await self._client.fetch_feedback_results(
                self._department, form_id
            )
            return responses, dict(self._question_texts)

        def _build(raw) -> ProcessedFeedback:
            responses, texts = raw
            return process_feedback(responses, texts, self._rubric)

        return await self._run(
            {"department": self._department, "form_id": form_id}, _fetch, _build
        )

    async def refresh(self) -> Optional[ProcessedFeedback]:
        return await self.load(self._last_form_id)


class AttendanceLoader(_LatestOnlyLoader[ProcessedAttendance]):
    """Loads attendance history, optionally filtered by department and day."""

    def __init__(
        self,
        client: PortalApiClient,
        *,
        student_counts: Optional[Dict[str, int]] = None,
    ) -> None:
        super().__init__()
        self._client = client
        self._student_counts = student_counts
        self._last: Dict[str, Any] = {"department": None, "date": None}

    async def load(
        self,
        department: Optional[str] = None,
        date: Union[datetime.date, str, None] = None,
    ) -> Optional[ProcessedAttendance]:
        self._last = {"department": department, "date": date}

        async def _fetch():
            return await self._client.fetch_attendance(department, date)

        def _build(records) -> ProcessedAttendance:
            return process_attendance(records, department, self._student_counts)

        return await self._run(dict(self._last), _fetch, _build)

    async def refresh(self) -> Optional[ProcessedAttendance]:
        return await self.load(**self._last)
