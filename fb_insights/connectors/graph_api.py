"""
fb_insights/connectors/graph_api.py

Graph API response classification and request URL templating.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import quote, urlencode

from fb_insights.connectors.base import ConnectorRequestError, FetchResponse, InsightStreamError
from fb_insights.schemas.insight_stream import InsightStreamOptions

ID_PLACEHOLDER = "{id}"
METRIC_PLACEHOLDER = "{metric}"


class GraphAPIError(InsightStreamError):
    """
    Raised when the Graph API returns an error payload.
    """

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        error_type: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.error_type = error_type


def decode_body(response: FetchResponse) -> Any:
    """
    Parse a raw response body as JSON.
    """

    try:
        return json.loads(response.text)
    except ValueError as exc:
        raise ConnectorRequestError(
            f"Graph API response was not valid JSON (status={response.status_code})."
        ) from exc


def classify_response(body: Any) -> Any:
    """
    Raise GraphAPIError when the decoded body carries an error descriptor.
    """

    # an empty descriptor ({"error": {}}) is still an error
    if not isinstance(body, dict) or body.get("error") is None:
        return body

    error = body["error"]
    if not isinstance(error, dict):
        raise GraphAPIError(str(error) or "Unknown Graph API error.")
    raise GraphAPIError(
        str(error.get("message") or "Unknown Graph API error."),
        code=error.get("code"),
        error_type=error.get("type"),
    )


def extract_values(body: Any) -> list[Any]:
    """
    Return the time-series points of a metrics payload.

    Page insights wrap the points as ``data[0].values``; app insights return
    the points directly as ``data``.
    """

    data = body.get("data") if isinstance(body, dict) else None
    if not data:
        return []
    first = data[0]
    if isinstance(first, dict) and first.get("values") is not None:
        return list(first["values"])
    return list(data)


def point_date_key(point: dict[str, Any]) -> Any:
    return point.get("end_time") or point.get("time")


def time_window(*, pastdays: int, now: datetime | None = None) -> tuple[int, int]:
    """
    Return the (since, until) window in Unix seconds.
    """

    until_dt = now or datetime.now(timezone.utc)
    since_dt = until_dt - timedelta(days=pastdays)
    return round(since_dt.timestamp()), round(until_dt.timestamp())


def build_metric_url_template(
    *,
    base_url: str,
    options: InsightStreamOptions,
    now: datetime | None = None,
) -> str:
    """
    Build the URL pattern shared by every metric request of one run.

    Callers substitute ``{id}`` and ``{metric}`` via ``fill_template``.
    """

    since, until = time_window(pastdays=options.pastdays, now=now)
    path = "/".join([base_url.rstrip("/"), ID_PLACEHOLDER, options.edge, METRIC_PLACEHOLDER])
    query = urlencode(
        {
            "access_token": options.token,
            "period": options.period,
            "since": since,
            "until": until,
        }
    )
    return f"{path}?{query}"


def fill_template(template: str, *, entity_id: str, metric: str) -> str:
    return template.replace(ID_PLACEHOLDER, quote(entity_id, safe="")).replace(
        METRIC_PLACEHOLDER, quote(metric, safe="")
    )


def build_lookup_url(*, base_url: str, entity_id: str, token: str) -> str:
    query = urlencode({"access_token": token})
    return f"{base_url.rstrip('/')}/{quote(entity_id, safe='')}?{query}"
