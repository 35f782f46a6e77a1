"""Runtime configuration for the portal analytics library.

Values are read from the environment (optionally populated from a ``.env``
file loaded at import) each time a getter is called, so tests can patch the
environment and re-evaluate a single setting.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:5000"
_DEFAULT_TIMEOUT_SECONDS = 10.0
_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_api_base_url() -> str:
    """Return the backend base URL without a trailing slash."""
    raw_val = os.getenv("PORTAL_API_BASE_URL") or _DEFAULT_BASE_URL
    return raw_val.rstrip("/")


def get_api_timeout() -> float:  # noqa: WPS430 – tiny helper
    raw_val = os.getenv("PORTAL_API_TIMEOUT")
    if not raw_val:
        return _DEFAULT_TIMEOUT_SECONDS
    try:
        parsed = float(raw_val)
    except ValueError:
        logger.warning(
            "Invalid PORTAL_API_TIMEOUT value '%s'; must be a number.", raw_val
        )
        return _DEFAULT_TIMEOUT_SECONDS
    if parsed <= 0:
        logger.warning("Ignoring PORTAL_API_TIMEOUT=%s (must be positive)", raw_val)
        return _DEFAULT_TIMEOUT_SECONDS
    return parsed


def get_log_level() -> str:
    return os.getenv("PORTAL_LOG_LEVEL", "INFO").upper()


def configure_logging(level: Optional[str] = None) -> None:
    """Apply the project's log format at *level* (defaults to ``PORTAL_LOG_LEVEL``)."""
    logging.basicConfig(format=_LOG_FORMAT, level=level or get_log_level())
