"""Centralized logging helpers.

Provides a single place to configure the root logger plus small utilities
used by every module for structured DEBUG traces: ``extra_context`` builds the
``extra=`` payload, ``is_debug_enabled`` guards expensive formatting, ``Timer``
measures durations and ``safe_url`` strips credentials before a URL is logged.
"""
from __future__ import annotations

import logging
import os
import re
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

_SENSITIVE_QUERY_KEYS = ("token", "access_token", "auth", "password", "key", "secret")
_REDACTED = "[REDACTED]"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once.

    The level is taken from ``level`` or the ``PEERFIX_LOG_LEVEL`` environment
    variable and defaults to INFO.
    """
    level_name = (level or os.environ.get(Constants.LOG_LEVEL_ENV) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not any(getattr(h, "_peerfix", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        handler._peerfix = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level_value)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Return a logging ``extra`` mapping with None values dropped."""
    return {k: v for k, v in kwargs.items() if v is not None}


def is_debug_enabled(logger: logging.Logger) -> bool:
    """True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def redact(text: str) -> str:
    """Mask credential-looking values in free text."""
    if not text:
        return text
    pattern = r"(?i)\b(%s)=([^&\s]+)" % "|".join(_SENSITIVE_QUERY_KEYS)
    return re.sub(pattern, lambda m: f"{m.group(1)}={_REDACTED}", text)


def safe_url(url: str) -> str:
    """Return ``url`` with userinfo and sensitive query values redacted."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.netloc
    if "@" in netloc:
        netloc = f"{_REDACTED}@{netloc.rsplit('@', 1)[1]}"
    return urllib.parse.urlunsplit(
        (parts.scheme, netloc, parts.path, redact(parts.query), parts.fragment)
    )


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds, measured up to now while still running."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
