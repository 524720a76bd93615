"""
fb_insights/services package marker.
"""

from fb_insights.services.entity_resolver import EntityResolver
from fb_insights.services.insight_stream import FacebookInsightStream, collect_all
from fb_insights.services.metric_collector import MetricCollector
from fb_insights.services.table_export import ExportResult, build_export, write_csv

__all__ = [
    "EntityResolver",
    "ExportResult",
    "FacebookInsightStream",
    "MetricCollector",
    "build_export",
    "collect_all",
    "write_csv",
]
