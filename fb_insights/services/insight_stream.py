"""
fb_insights/services/insight_stream.py

Pull-driven stream of Facebook page/app insights.

Each ``read()`` produces the rows of exactly one entity. Entity names are
resolved lazily on the first read; metrics are only fetched when a consumer
asks for the next entity.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict, deque
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from fb_insights.config import GraphAPISettings, get_external_http_settings, get_graph_api_settings
from fb_insights.connectors.base import HTTPFetcher, RequestsFetcher
from fb_insights.connectors.graph_api import build_metric_url_template
from fb_insights.domain.insight_stream import ProgressEvent, ResolvedEntity, StreamState
from fb_insights.logging_utils import log_event
from fb_insights.schemas.insight_stream import InsightStreamOptions
from fb_insights.services.entity_resolver import EntityResolver
from fb_insights.services.metric_collector import MetricCollector

logger = logging.getLogger(__name__)

STREAM_EVENTS = frozenset({"progress", "error", "end"})

EventCallback = Callable[[Any], None]


class FacebookInsightStream:
    """
    Async, one-entity-per-read source of insight rows.

    Reads are serialized: a read that arrives while another is collecting waits
    for it, so entities are always collected one at a time in resolution order.
    After end-of-data or a fatal error every further read returns ``None``.
    """

    def __init__(
        self,
        options: InsightStreamOptions,
        *,
        fetcher: HTTPFetcher | None = None,
        settings: GraphAPISettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._options = options
        self._settings = settings or get_graph_api_settings()
        # a fetcher built here is closed once the stream is done or errored
        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher or RequestsFetcher(http_settings=get_external_http_settings())
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._listeners: dict[str, list[EventCallback]] = defaultdict(list)
        self._lock = asyncio.Lock()

        self._state = StreamState.UNINITIALIZED
        self._entities: deque[ResolvedEntity] = deque()
        self._collector: MetricCollector | None = None
        self.url_template: str | None = None
        self.total = 0
        self.loaded = 0

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def options(self) -> InsightStreamOptions:
        return self._options

    def on(self, event: str, callback: EventCallback) -> "FacebookInsightStream":
        if event not in STREAM_EVENTS:
            allowed = ", ".join(sorted(STREAM_EVENTS))
            raise ValueError(f"Unsupported event '{event}'. Allowed events: {allowed}.")
        self._listeners[event].append(callback)
        return self

    async def read(self) -> list[dict[str, Any]] | None:
        """
        Produce the rows of the next entity, or ``None`` once the stream is exhausted.

        Raises the fatal error (after emitting ``error``) when resolution or
        collection fails. A read interrupted any other way (e.g. cancelled)
        also ends the stream, without emitting ``error`` or ``end``.
        """

        async with self._lock:
            if self._state.is_terminal:
                return None
            try:
                return await self._advance()
            except BaseException as exc:
                if not self._state.is_terminal:
                    self._interrupt(exc)
                raise

    async def _advance(self) -> list[dict[str, Any]] | None:
        if self._state is StreamState.UNINITIALIZED:
            await self._initialize()

        if not self._entities:
            self._state = StreamState.DONE
            self._release()
            log_event(
                logger,
                logging.INFO,
                "stream_finished",
                node=self._options.node,
                total=self.total,
                loaded=self.loaded,
            )
            self._emit("end", None)
            return None

        self._state = StreamState.DRAINING
        entity = self._entities.popleft()
        outcome = await self._require_collector().collect(entity, deque(self._options.metrics))

        self.loaded += 1
        self._emit("progress", self._progress())

        if outcome.error is not None:
            self._fail(outcome.error)
            raise outcome.error

        log_event(
            logger,
            logging.INFO,
            "entity_collected",
            node=self._options.node,
            entity_id=entity.id,
            rows=len(outcome.rows),
            loaded=self.loaded,
            total=self.total,
        )
        self._state = StreamState.READY
        return outcome.rows

    def __aiter__(self) -> "FacebookInsightStream":
        return self

    async def __anext__(self) -> list[dict[str, Any]]:
        rows = await self.read()
        if rows is None:
            raise StopAsyncIteration
        return rows

    async def _initialize(self) -> None:
        self._state = StreamState.RESOLVING
        options = self._options

        # shared by every metric request of this run; since/until are fixed here
        self.url_template = build_metric_url_template(
            base_url=self._settings.base_url,
            options=options,
            now=self._clock(),
        )
        self._collector = MetricCollector(
            fetcher=self._fetcher,
            url_template=self.url_template,
            id_field=options.id_field,
            name_field=options.name_field,
            sort_rows=self._settings.sort_rows,
        )
        resolver = EntityResolver(
            fetcher=self._fetcher,
            base_url=self._settings.base_url,
            token=options.token,
            concurrency=self._settings.resolve_concurrency,
        )

        try:
            entities = await resolver.resolve(options.item_list)
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "stream_resolution_failed",
                node=options.node,
                error=str(exc),
            )
            self._fail(exc)
            raise

        self._entities = deque(entities)
        self.total = len(entities)
        self.loaded = 0
        self._state = StreamState.READY

    def _require_collector(self) -> MetricCollector:
        if self._collector is None:
            raise RuntimeError("Stream read before initialization completed.")
        return self._collector

    def _progress(self) -> ProgressEvent:
        remaining = self.total - self.loaded
        return ProgressEvent(
            total=self.total,
            loaded=self.loaded,
            message=f"{remaining} {self._options.node}s remaining",
        )

    def _fail(self, error: Exception) -> None:
        self._state = StreamState.ERRORED
        self._entities.clear()
        self._release()
        self._emit("error", error)

    def _interrupt(self, exc: BaseException) -> None:
        self._state = StreamState.ERRORED
        self._entities.clear()
        self._release()
        log_event(
            logger,
            logging.WARNING,
            "stream_interrupted",
            node=self._options.node,
            loaded=self.loaded,
            total=self.total,
            error=type(exc).__name__,
        )

    def _release(self) -> None:
        if self._owns_fetcher and isinstance(self._fetcher, RequestsFetcher):
            self._fetcher.close()

    def _emit(self, event: str, payload: Any) -> None:
        for callback in list(self._listeners[event]):
            callback(payload)


async def collect_all(stream: FacebookInsightStream) -> list[dict[str, Any]]:
    """
    Drain a stream into a single flat list of rows.
    """

    rows: list[dict[str, Any]] = []
    async for entity_rows in stream:
        rows.extend(entity_rows)
    return rows
