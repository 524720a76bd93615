"""
fb_insights/schemas/insight_stream.py

Input contract for one insights stream run.
"""

from __future__ import annotations

import inspect
from collections.abc import Sequence
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fb_insights.config import EDGE_BY_NODE


class InsightStreamOptions(BaseModel):
    """
    Immutable run configuration for a FacebookInsightStream.

    ``item_list`` is either a sequence of page/app identifiers or an awaitable
    that produces one; it is awaited at most once, on the first read.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
        arbitrary_types_allowed=True,
    )

    node: Literal["page", "app"]
    token: str = Field(min_length=1)
    metrics: tuple[str, ...] = ()
    period: str = Field(min_length=1)
    pastdays: int = Field(ge=0)
    item_list: Any = ()

    @field_validator("metrics", mode="before")
    @classmethod
    def _reject_bare_metric_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            raise ValueError("metrics must be a sequence of metric names, not a string.")
        return value

    @field_validator("item_list", mode="before")
    @classmethod
    def _normalize_item_list(cls, value: Any) -> Any:
        if inspect.isawaitable(value):
            return value
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            raise ValueError("item_list must be a sequence of identifiers or an awaitable.")
        return tuple(str(item) for item in value)

    @property
    def edge(self) -> str:
        return EDGE_BY_NODE[self.node]

    @property
    def id_field(self) -> str:
        return f"{self.node}Id"

    @property
    def name_field(self) -> str:
        return f"{self.node}Name"
