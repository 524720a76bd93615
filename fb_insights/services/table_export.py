"""
fb_insights/services/table_export.py

Flat tabular export of collected insight rows.

Rows from different entities may carry different metric columns (a metric with
no data for an entity is absent from its rows), so the header is the union of
all keys in first-seen order.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from typing import Any, TextIO


@dataclass
class ExportResult:
    """
    Flat tabular data ready for CSV or JSON serialisation.

    Attributes
    ----------
    rows:   One dict per (entity, date).
    fields: Ordered column names; deterministic for the same input rows.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)


def _collect_fields(rows: list[dict[str, Any]]) -> list[str]:
    """
    Union all keys across rows while preserving first-seen insertion order.
    """
    seen: dict[str, None] = {}
    for row in rows:
        for k in row:
            seen.setdefault(k, None)
    return list(seen)


def build_export(rows: list[dict[str, Any]]) -> ExportResult:
    return ExportResult(rows=list(rows), fields=_collect_fields(rows))


def write_csv(result: ExportResult, fh: TextIO) -> int:
    """Write *result* as CSV to *fh*; returns the number of data rows written."""
    writer = csv.DictWriter(
        fh,
        fieldnames=result.fields,
        extrasaction="ignore",
        restval="",
        lineterminator="\r\n",
    )
    writer.writeheader()
    for row in result.rows:
        writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
    return len(result.rows)
