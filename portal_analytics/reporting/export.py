"""CSV export of attendance history."""
from __future__ import annotations

import csv
import io
from typing import Sequence

from portal_analytics.records import AttendanceStatus, RawAttendanceRecord

HEADER = ["Date", "Department", "Total", "Present", "Absent", "Late", "Excused"]


def attendance_history_csv(records: Sequence[RawAttendanceRecord]) -> str:
    """One row per record, in input order.

    ``Total`` is the attendee list length, so attendees with an unrecognised
    status count towards it without appearing in any status column.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(HEADER)
    for record in records:
        statuses = [a.status for a in record.attendees]
        writer.writerow(
            [
                record.date.isoformat(),
                record.department,
                len(record.attendees),
                *(statuses.count(status) for status in AttendanceStatus),
            ]
        )
    return buffer.getvalue()
