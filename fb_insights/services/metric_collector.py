"""
fb_insights/services/metric_collector.py

Per-entity metric collection and date-keyed row aggregation.

The insights API answers one request per metric with a list of values (one per
period end). To build a single table across metrics, every value is merged into
a row buffer keyed by date; rows are only materialized once all metrics for the
entity have been processed.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

from fb_insights.connectors.base import ConnectorRequestError, HTTPFetcher, InsightStreamError
from fb_insights.connectors.graph_api import (
    classify_response,
    decode_body,
    extract_values,
    fill_template,
    point_date_key,
)
from fb_insights.domain.insight_stream import CollectOutcome, DateKey, ResolvedEntity, RowBuffer
from fb_insights.logging_utils import log_event, redact_url

logger = logging.getLogger(__name__)


def date_sort_key(key: DateKey) -> tuple[int, float, str]:
    """
    Order numeric date keys numerically, ahead of string keys in lexical order.
    """

    if isinstance(key, (int, float)) and not isinstance(key, bool):
        return (0, float(key), "")
    return (1, 0.0, str(key))


class MetricCollector:
    """
    Fetches every metric for one entity in sequence and builds its output rows.
    """

    def __init__(
        self,
        *,
        fetcher: HTTPFetcher,
        url_template: str,
        id_field: str,
        name_field: str,
        sort_rows: bool = True,
    ) -> None:
        self._fetcher = fetcher
        self._url_template = url_template
        self._id_field = id_field
        self._name_field = name_field
        self._sort_rows = sort_rows

    async def collect(
        self,
        entity: ResolvedEntity,
        metrics: deque[str],
        buffer: RowBuffer | None = None,
    ) -> CollectOutcome:
        """
        Drain ``metrics`` front-to-back, merging values into ``buffer``.

        A metric without data points is skipped. Any other failure aborts the
        entity; the remaining metrics are not fetched.
        """

        buffer = {} if buffer is None else buffer

        while metrics:
            metric = metrics.popleft()
            url = fill_template(self._url_template, entity_id=entity.id, metric=metric)
            try:
                values = await self._fetch_values(url)
                if not values:
                    log_event(
                        logger,
                        logging.INFO,
                        "metric_skipped",
                        entity_id=entity.id,
                        metric=metric,
                        reason="no_data",
                    )
                    continue
                self._merge(buffer, metric, values)
            except InsightStreamError as exc:
                log_event(
                    logger,
                    logging.ERROR,
                    "metric_collection_failed",
                    entity_id=entity.id,
                    metric=metric,
                    url=redact_url(url),
                    error=str(exc),
                )
                return CollectOutcome.abort(exc)
            except Exception as exc:
                logger.exception(
                    "Unhandled metric collection failure entity_id=%s metric=%s error=%s",
                    entity.id,
                    metric,
                    exc,
                )
                return CollectOutcome.abort(exc)

        return CollectOutcome.finished(self._finalize(entity, buffer))

    async def _fetch_values(self, url: str) -> list[Any]:
        response = await self._fetcher.fetch(url)
        body = classify_response(decode_body(response))
        return extract_values(body)

    @staticmethod
    def _merge(buffer: RowBuffer, metric: str, values: list[Any]) -> None:
        for point in values:
            if not isinstance(point, dict):
                raise ConnectorRequestError(f"Unexpected data point for metric={metric}: {point!r}")
            buffer.setdefault(point_date_key(point), {})[metric] = point.get("value")

    def _finalize(self, entity: ResolvedEntity, buffer: RowBuffer) -> list[dict[str, Any]]:
        keys = sorted(buffer, key=date_sort_key) if self._sort_rows else list(buffer)
        rows: list[dict[str, Any]] = []
        for key in keys:
            row = dict(buffer[key])
            row["date"] = key
            row[self._id_field] = entity.id
            row[self._name_field] = entity.name
            rows.append(row)
        return rows
