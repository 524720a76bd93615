"""
fb_insights/connectors/base.py

Fetcher abstraction and shared HTTP mechanics.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol

import requests

from fb_insights.config import ExternalHTTPSettings
from fb_insights.logging_utils import log_event, redact_url

logger = logging.getLogger(__name__)


class InsightStreamError(RuntimeError):
    """
    Base class for failures that end an insights stream run.
    """


class ConnectorRequestError(InsightStreamError):
    """
    Raised when a request cannot be completed or its body cannot be decoded.
    """


@dataclass(frozen=True)
class FetchResponse:
    """
    Raw HTTP outcome: status code and undecoded body text.
    """

    status_code: int
    text: str


class HTTPFetcher(Protocol):
    """
    Anything that can asynchronously GET a URL.
    """

    async def fetch(self, url: str) -> FetchResponse:
        ...


class BaseFetcher(ABC):
    """
    Fetcher base enforcing an optional minimum interval between requests.
    """

    def __init__(self, *, http_settings: ExternalHTTPSettings) -> None:
        self._timeout_seconds = http_settings.timeout_seconds
        self._min_request_interval_seconds = (
            1.0 / http_settings.rate_limit_per_second if http_settings.rate_limit_per_second > 0 else 0.0
        )
        self._last_request_monotonic: float = 0.0
        self._rate_lock = asyncio.Lock()

    async def fetch(self, url: str) -> FetchResponse:
        await self._apply_rate_limit()
        log_event(logger, logging.DEBUG, "graph_request", url=redact_url(url))
        return await self._get(url)

    @abstractmethod
    async def _get(self, url: str) -> FetchResponse:
        """
        Perform one GET request without retries.
        """

    async def _apply_rate_limit(self) -> None:
        """
        Enforce minimum interval between outbound requests.
        """

        if self._min_request_interval_seconds <= 0:
            return

        async with self._rate_lock:
            elapsed = time.monotonic() - self._last_request_monotonic
            remaining = self._min_request_interval_seconds - elapsed
            if remaining > 0:
                await asyncio.sleep(remaining)
            self._last_request_monotonic = time.monotonic()


class RequestsFetcher(BaseFetcher):
    """
    Fetcher backed by a ``requests.Session``; blocking calls run in a worker thread.

    The status code is passed through untouched: the Graph API reports failures
    in the response body, which the response classifier inspects.
    """

    def __init__(
        self,
        *,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(http_settings=http_settings)
        self._session = session or requests.Session()

    async def _get(self, url: str) -> FetchResponse:
        return await asyncio.to_thread(self._blocking_get, url)

    def _blocking_get(self, url: str) -> FetchResponse:
        try:
            response = self._session.get(url, timeout=self._timeout_seconds)
        except requests.Timeout as exc:
            raise ConnectorRequestError(f"Request timed out url={redact_url(url)}") from exc
        except requests.ConnectionError as exc:
            raise ConnectorRequestError(f"Connection failed url={redact_url(url)}") from exc
        except requests.RequestException as exc:
            raise ConnectorRequestError(f"Request failed url={redact_url(url)} error={exc}") from exc
        return FetchResponse(status_code=response.status_code, text=response.text)

    def close(self) -> None:
        self._session.close()
