"""
Structured logging helpers for Graph API fetch workflows.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_REDACTED_PARAMS = frozenset({"access_token"})


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


def redact_url(url: str) -> str:
    """
    Mask credential query parameters so URLs are safe to log.
    """

    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, "***" if key in _REDACTED_PARAMS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="*")))
