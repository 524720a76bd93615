"""
fb_insights/domain/insight_stream.py

Domain models used by the insights stream flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

DateKey = Union[str, int, float]
RowBuffer = dict[DateKey, dict[str, Any]]


class StreamState(str, Enum):
    """
    Lifecycle states of one insights stream instance.
    """

    UNINITIALIZED = "uninitialized"
    RESOLVING = "resolving"
    READY = "ready"
    DRAINING = "draining"
    DONE = "done"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in {StreamState.DONE, StreamState.ERRORED}


@dataclass(frozen=True)
class ResolvedEntity:
    """
    A page or application identifier paired with its display name.
    """

    id: str
    name: str


@dataclass(frozen=True)
class ProgressEvent:
    """
    Progress notification emitted after each processed entity.
    """

    total: int
    loaded: int
    message: str


@dataclass(frozen=True)
class CollectOutcome:
    """
    Result of collecting one entity: finished rows, or the fatal error that aborted it.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    error: Exception | None = None

    @property
    def aborted(self) -> bool:
        return self.error is not None

    @classmethod
    def finished(cls, rows: list[dict[str, Any]]) -> "CollectOutcome":
        return cls(rows=rows)

    @classmethod
    def abort(cls, error: Exception) -> "CollectOutcome":
        return cls(rows=[], error=error)
