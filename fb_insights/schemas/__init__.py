"""
fb_insights/schemas package marker.
"""

from fb_insights.schemas.insight_stream import InsightStreamOptions

__all__ = ["InsightStreamOptions"]
