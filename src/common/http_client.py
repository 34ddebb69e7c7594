"""Shared HTTP helpers used by the registry client.

Requests go through one module-level ``requests.Session`` with a bounded
number of attempts. Callers only see a status code, the response headers and
the body; a status code of 0 means the registry was never reached.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

_DEFAULT_HEADERS = {
    "User-Agent": Constants.USER_AGENT,
}

_session = requests.Session()


def _trace(message: str, target: str, **fields: Any) -> None:
    if is_debug_enabled(logger):
        logger.debug(
            message,
            extra=extra_context(component="http_client", action="GET", target=target, **fields)
        )


def _backoff(attempt: int) -> None:
    if attempt:
        time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1)))


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """GET ``url``, retrying timeouts, transport errors and 5xx answers.

    Returns:
        Tuple of (status_code, headers_dict, body_text). After the last failed
        attempt the status code is 0 and the body describes the failure.
    """
    target = safe_url(url)
    merged_headers = {**_DEFAULT_HEADERS, **(headers or {})}
    failure = "no attempt made"

    for attempt in range(Constants.HTTP_RETRY_MAX):
        _backoff(attempt)
        _trace("HTTP request", target, event="http_request", attempt=attempt + 1)
        with Timer() as timer:
            try:
                response = _session.get(url, timeout=Constants.REQUEST_TIMEOUT,
                                        headers=merged_headers, **kwargs)
            except requests.Timeout:
                failure = "timeout"
                _trace("HTTP timeout", target, event="http_exception", outcome="timeout",
                       attempt=attempt + 1)
                continue
            except requests.RequestException as exc:
                failure = str(exc)
                _trace("HTTP request exception", target, event="http_exception",
                       outcome="request_exception", attempt=attempt + 1)
                continue

        if response.status_code >= 500:
            failure = f"server error {response.status_code}"
            _trace("HTTP server error", target, event="http_response", outcome="retry",
                   status_code=response.status_code, attempt=attempt + 1)
            continue

        _trace("HTTP response", target, event="http_response", outcome="success",
               status_code=response.status_code, duration_ms=timer.duration_ms())
        return response.status_code, dict(response.headers), response.text

    logger.warning("Giving up on %s after %d attempts: %s", target, Constants.HTTP_RETRY_MAX, failure)
    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {failure}"


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """GET ``url`` and decode a 200 response body as JSON.

    Returns:
        Tuple of (status_code, headers_dict, payload). The payload is None for
        any other status and for bodies that are not JSON.
    """
    status_code, response_headers, text = robust_get(url, headers=headers, **kwargs)
    if status_code != 200 or not text:
        return status_code, response_headers, None
    try:
        return status_code, response_headers, json.loads(text)
    except json.JSONDecodeError:
        _trace("JSON decode error", safe_url(url), event="parse", outcome="json_decode_error",
               status_code=status_code)
        return status_code, response_headers, None
