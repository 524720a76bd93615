"""
fb_insights/domain package marker.
"""

from fb_insights.domain.insight_stream import (
    CollectOutcome,
    DateKey,
    ProgressEvent,
    ResolvedEntity,
    RowBuffer,
    StreamState,
)

__all__ = [
    "CollectOutcome",
    "DateKey",
    "ProgressEvent",
    "ResolvedEntity",
    "RowBuffer",
    "StreamState",
]
