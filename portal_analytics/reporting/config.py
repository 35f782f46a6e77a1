"""Configuration constants for the reporting pipeline."""
from __future__ import annotations

import os

# Maximum comments per question included verbatim in a rendered report
MAX_COMMENTS: int = int(os.getenv("REPORT_MAX_COMMENTS", "50"))

# Number of questions listed as "top rated" / "needs improvement"
TOP_QUESTIONS: int = int(os.getenv("REPORT_TOP_QUESTIONS", "2"))

# Number of most recent attendance records included in trend payloads
RECENT_TRENDS: int = int(os.getenv("REPORT_RECENT_TRENDS", "10"))

# Overall attendance percentage below which a student is warned
MIN_ATTENDANCE_PERCENT: float = float(os.getenv("REPORT_MIN_ATTENDANCE_PERCENT", "75"))

# Per-course attendance percentage below which a student is warned
MIN_COURSE_ATTENDANCE_PERCENT: float = float(
    os.getenv("REPORT_MIN_COURSE_ATTENDANCE_PERCENT", "60")
)

# Overall attendance percentage considered excellent
EXCELLENT_ATTENDANCE_PERCENT: float = float(
    os.getenv("REPORT_EXCELLENT_ATTENDANCE_PERCENT", "90")
)

# Consecutive absences that trigger a pattern warning
MAX_CONSECUTIVE_ABSENCES: int = int(os.getenv("REPORT_MAX_CONSECUTIVE_ABSENCES", "3"))
