"""
fb_insights/services/entity_resolver.py

Resolves raw page/app identifiers into named entities.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Sequence

from fb_insights.connectors.base import HTTPFetcher
from fb_insights.connectors.graph_api import build_lookup_url, classify_response, decode_body
from fb_insights.domain.insight_stream import ResolvedEntity
from fb_insights.logging_utils import log_event

logger = logging.getLogger(__name__)

DEFAULT_RESOLVE_CONCURRENCY = 3


class EntityResolver:
    """
    Looks up the display name of every identifier, a bounded number at a time.

    Resolution is all-or-nothing: the first failed lookup cancels the ones still
    in flight and propagates to the caller.
    """

    def __init__(
        self,
        *,
        fetcher: HTTPFetcher,
        base_url: str,
        token: str,
        concurrency: int = DEFAULT_RESOLVE_CONCURRENCY,
    ) -> None:
        self._fetcher = fetcher
        self._base_url = base_url
        self._token = token
        self._concurrency = max(1, concurrency)

    async def resolve(self, item_source: object) -> list[ResolvedEntity]:
        """
        Resolve every identifier from a sequence or an awaitable producing one.

        Output order matches input order.
        """

        items = await self._materialize(item_source)
        if not items:
            return []

        semaphore = asyncio.Semaphore(self._concurrency)

        async def _bounded(item: str) -> ResolvedEntity:
            async with semaphore:
                return await self.resolve_one(item)

        tasks = [asyncio.ensure_future(_bounded(item)) for item in items]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def resolve_one(self, item: str) -> ResolvedEntity:
        url = build_lookup_url(base_url=self._base_url, entity_id=item, token=self._token)
        response = await self._fetcher.fetch(url)
        body = classify_response(decode_body(response))
        name = body.get("name") if isinstance(body, dict) else None
        entity = ResolvedEntity(id=item, name="" if name is None else str(name))
        log_event(logger, logging.DEBUG, "entity_resolved", entity_id=entity.id, name=entity.name)
        return entity

    @staticmethod
    async def _materialize(item_source: object) -> list[str]:
        if inspect.isawaitable(item_source):
            item_source = await item_source
        if item_source is None:
            return []
        if isinstance(item_source, (str, bytes)) or not isinstance(item_source, Sequence):
            raise TypeError("Item source must resolve to a sequence of identifiers.")
        return [str(item) for item in item_source]
