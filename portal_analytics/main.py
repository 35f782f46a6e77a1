"""Command-line bootstrap for portal reports.

Fetches feedback results or attendance history from the portal backend and
prints a markdown report (or, for attendance, a CSV export).  The
``student`` command summarizes one student's attendance with suggestions.  Keeping the
runtime bootstrap here lets the library modules be imported by tests and
tooling without side-effects.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

import httpx

from portal_analytics import config
from portal_analytics.api_client import ALL_FORMS, PortalApiClient
from portal_analytics.loaders import AttendanceLoader, FeedbackResultsLoader
from portal_analytics.reporting.export import attendance_history_csv
from portal_analytics.reporting.render import (
    render_attendance_report,
    render_feedback_report,
    render_student_attendance_report,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portal-report", description="Render portal feedback/attendance reports"
    )
    parser.add_argument("--base-url", default=None, help="Portal API base URL")
    parser.add_argument(
        "--insights", action="store_true", help="Append an AI-generated analysis"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    feedback = sub.add_parser("feedback", help="Feedback results report")
    feedback.add_argument("--department", required=True)
    feedback.add_argument("--form", default=ALL_FORMS, help="Form id or 'all'")
    feedback.add_argument("--title", default="All Forms", help="Form title to show")

    attendance = sub.add_parser("attendance", help="Attendance report")
    attendance.add_argument("--department", default=None)
    attendance.add_argument("--date", default=None, help="YYYY-MM-DD")
    attendance.add_argument(
        "--csv", action="store_true", help="Print the CSV history export instead"
    )

    student = sub.add_parser("student", help="One student's attendance and advice")
    student.add_argument("--id", dest="student_id", required=True)
    student.add_argument("--department", default=None)
    return parser


async def run(args: argparse.Namespace, token: str) -> Optional[str]:
    """Fetch, aggregate and render; returns *None* when the fetch failed."""
    async with PortalApiClient(token, base_url=args.base_url) as client:
        if args.command == "feedback":
            loader = FeedbackResultsLoader(client, args.department)
            processed = await loader.load(args.form)
            if processed is None:
                logger.error("Could not load feedback: %s", loader.state.error)
                return None
            return render_feedback_report(
                processed,
                department=args.department,
                form_title=args.title,
                include_insights=args.insights,
            )

        attendance_loader = AttendanceLoader(client)
        attendance = await attendance_loader.load(
            args.department, getattr(args, "date", None)
        )
        if attendance is None:
            logger.error(
                "Could not load attendance: %s", attendance_loader.state.error
            )
            return None
        if args.command == "student":
            return render_student_attendance_report(
                attendance.records, args.student_id
            )
        if args.csv:
            return attendance_history_csv(attendance.records)
        return render_attendance_report(attendance, include_insights=args.insights)


def main(argv: Optional[List[str]] = None) -> int:
    config.configure_logging()
    args = build_parser().parse_args(argv)

    token = os.getenv("PORTAL_API_TOKEN")
    if not token:
        logger.error("Environment variable PORTAL_API_TOKEN is required.")
        return 1

    try:
        output = asyncio.run(run(args, token))
    except httpx.InvalidURL as exc:
        logger.error("Invalid portal API URL: %s", exc)
        return 1
    if output is None:
        return 1
    sys.stdout.write(output)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
