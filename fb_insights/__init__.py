"""
Pull-driven reader for Facebook page and app insights.
"""

from fb_insights.connectors import ConnectorRequestError, GraphAPIError, InsightStreamError
from fb_insights.domain import ProgressEvent, ResolvedEntity, StreamState
from fb_insights.schemas import InsightStreamOptions
from fb_insights.services import FacebookInsightStream, collect_all

__all__ = [
    "ConnectorRequestError",
    "FacebookInsightStream",
    "GraphAPIError",
    "InsightStreamError",
    "InsightStreamOptions",
    "ProgressEvent",
    "ResolvedEntity",
    "StreamState",
    "collect_all",
]
