"""Async client for the portal backend's read endpoints.

Only the fetches the reporting layer needs are implemented.  The bearer token
is supplied by the caller; storing or refreshing it is out of scope.
"""
from __future__ import annotations

import datetime
import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from portal_analytics import config
from portal_analytics.exceptions import AuthenticationError, PortalApiError
from portal_analytics.records import (
    RawAttendanceRecord,
    RawFeedbackResponse,
    parse_attendance_records,
    parse_feedback_results,
    question_text_map,
)

logger = logging.getLogger(__name__)

ALL_FORMS = "all"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return f"HTTP {response.status_code}"


class PortalApiClient:
    """Thin wrapper around :class:`httpx.AsyncClient` with bearer auth."""

    def __init__(
        self,
        token: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or config.get_api_base_url(),
            timeout=timeout or config.get_api_timeout(),
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
        )

    async def __aenter__(self) -> "PortalApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(
        self, path: str, params: Optional[Dict[str, str]] = None
    ) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            logger.warning("Request to %s failed: %s", path, exc)
            raise PortalApiError(f"Could not reach the portal API: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthenticationError(
                _error_message(response), status_code=response.status_code
            )
        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "GET %s returned %d: %s", path, response.status_code, message
            )
            raise PortalApiError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise PortalApiError(
                f"Malformed JSON from {path}", status_code=response.status_code
            ) from exc

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def fetch_forms(self) -> List[Dict[str, Any]]:
        """Feedback forms (with their questions) visible to a teacher."""
        data = await self._get_json("/api/feedback-forms", {"role": "teacher"})
        if not isinstance(data, list):
            logger.warning("Unexpected response format for forms: %r", type(data))
            return []
        return data

    async def fetch_question_texts(self) -> Dict[str, str]:
        return question_text_map(await self.fetch_forms())

    async def fetch_feedback_results(
        self, department: str, form_id: Optional[str] = ALL_FORMS
    ) -> List[RawFeedbackResponse]:
        params = {"department": department}
        if form_id and form_id != ALL_FORMS:
            params["formId"] = form_id
        data = await self._get_json("/api/feedback-results", params)
        return parse_feedback_results(data)

    async def fetch_attendance(
        self,
        department: Optional[str] = None,
        date: Union[datetime.date, str, None] = None,
    ) -> List[RawAttendanceRecord]:
        params: Dict[str, str] = {}
        if department and department.strip():
            params["department"] = department
        if date:
            params["date"] = (
                date.isoformat() if isinstance(date, datetime.date) else date
            )
        data = await self._get_json("/api/attendance", params or None)
        return parse_attendance_records(data)
