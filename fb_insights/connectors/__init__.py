"""
fb_insights/connectors package marker.
"""

from fb_insights.connectors.base import (
    BaseFetcher,
    ConnectorRequestError,
    FetchResponse,
    HTTPFetcher,
    InsightStreamError,
    RequestsFetcher,
)
from fb_insights.connectors.graph_api import (
    GraphAPIError,
    build_lookup_url,
    build_metric_url_template,
    classify_response,
    decode_body,
    extract_values,
    fill_template,
)

__all__ = [
    "BaseFetcher",
    "ConnectorRequestError",
    "FetchResponse",
    "GraphAPIError",
    "HTTPFetcher",
    "InsightStreamError",
    "RequestsFetcher",
    "build_lookup_url",
    "build_metric_url_template",
    "classify_response",
    "decode_body",
    "extract_values",
    "fill_template",
]
