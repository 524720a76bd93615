from __future__ import annotations

import asyncio
from collections import deque

import pytest

from fb_insights.connectors.base import ConnectorRequestError
from fb_insights.connectors.graph_api import GraphAPIError
from fb_insights.domain.insight_stream import CollectOutcome, ResolvedEntity
from fb_insights.services.metric_collector import MetricCollector, date_sort_key
from graph_fakes import BASE_URL, FakeGraphFetcher, app_series, graph_error, page_series

PAGE_TEMPLATE = f"{BASE_URL}/{{id}}/insights/{{metric}}?access_token=t&period=day&since=0&until=1"
APP_TEMPLATE = f"{BASE_URL}/{{id}}/app_insights/{{metric}}?access_token=t&period=day&since=0&until=1"
ACME = ResolvedEntity(id="111", name="Acme")


def _collect(
    fetcher: FakeGraphFetcher,
    metrics: list[str],
    *,
    node: str = "page",
    sort_rows: bool = True,
) -> CollectOutcome:
    collector = MetricCollector(
        fetcher=fetcher,
        url_template=PAGE_TEMPLATE if node == "page" else APP_TEMPLATE,
        id_field=f"{node}Id",
        name_field=f"{node}Name",
        sort_rows=sort_rows,
    )
    return asyncio.run(collector.collect(ACME, deque(metrics)))


class TestAggregation:
    def test_metrics_sharing_a_date_merge_into_one_row(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "page_views", page_series(("2024-01-01", 5)))
        fetcher.add_metric("111", "page_likes", page_series(("2024-01-01", 2)))

        outcome = _collect(fetcher, ["page_views", "page_likes"])

        assert not outcome.aborted
        assert outcome.rows == [
            {
                "date": "2024-01-01",
                "pageId": "111",
                "pageName": "Acme",
                "page_views": 5,
                "page_likes": 2,
            }
        ]

    def test_row_count_is_union_of_date_keys(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "a", page_series(("2024-01-01", 1), ("2024-01-02", 2)))
        fetcher.add_metric("111", "b", page_series(("2024-01-02", 3), ("2024-01-03", 4)))

        outcome = _collect(fetcher, ["a", "b"])

        assert [row["date"] for row in outcome.rows] == ["2024-01-01", "2024-01-02", "2024-01-03"]
        assert outcome.rows[0] == {"date": "2024-01-01", "pageId": "111", "pageName": "Acme", "a": 1}
        assert outcome.rows[1]["a"] == 2 and outcome.rows[1]["b"] == 3
        assert "a" not in outcome.rows[2]

    def test_app_shape_with_time_keys(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "app_installs", app_series((1704067200, 7)), edge="app_insights")

        outcome = _collect(fetcher, ["app_installs"], node="app")

        assert outcome.rows == [{"date": 1704067200, "appId": "111", "appName": "Acme", "app_installs": 7}]

    def test_metrics_fetched_sequentially_in_declared_order(self) -> None:
        fetcher = FakeGraphFetcher(delay=0.005)
        for metric in ("m1", "m2", "m3"):
            fetcher.add_metric("111", metric, page_series(("2024-01-01", 1)))

        _collect(fetcher, ["m1", "m2", "m3"])

        assert [call[2] for call in fetcher.metric_calls()] == ["m1", "m2", "m3"]
        assert fetcher.max_in_flight == 1

    def test_rows_sorted_by_date(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "a", page_series(("2024-01-03", 3), ("2024-01-01", 1)))
        fetcher.add_metric("111", "b", page_series(("2024-01-02", 2)))

        outcome = _collect(fetcher, ["a", "b"])

        assert [row["date"] for row in outcome.rows] == ["2024-01-01", "2024-01-02", "2024-01-03"]

    def test_insertion_order_kept_when_sorting_disabled(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "a", page_series(("2024-01-03", 3), ("2024-01-01", 1)))
        fetcher.add_metric("111", "b", page_series(("2024-01-02", 2)))

        outcome = _collect(fetcher, ["a", "b"], sort_rows=False)

        assert [row["date"] for row in outcome.rows] == ["2024-01-03", "2024-01-01", "2024-01-02"]

    def test_empty_metric_list_yields_no_rows(self, fetcher: FakeGraphFetcher) -> None:
        outcome = _collect(fetcher, [])

        assert outcome.rows == []
        assert not outcome.aborted
        assert fetcher.calls == []

    def test_metric_queue_is_consumed(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "a", page_series(("2024-01-01", 1)))
        queue = deque(["a"])
        collector = MetricCollector(
            fetcher=fetcher,
            url_template=PAGE_TEMPLATE,
            id_field="pageId",
            name_field="pageName",
        )

        asyncio.run(collector.collect(ACME, queue))

        assert not queue


class TestSkipAndFatal:
    def test_empty_metric_is_skipped_silently(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "page_views", page_series(("2024-01-01", 5)))
        fetcher.add_metric("111", "page_likes", {"data": []})

        outcome = _collect(fetcher, ["page_views", "page_likes"])

        assert not outcome.aborted
        assert outcome.rows == [{"date": "2024-01-01", "pageId": "111", "pageName": "Acme", "page_views": 5}]

    def test_skip_does_not_stop_later_metrics(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "empty", {"data": [{"name": "empty", "values": []}]})
        fetcher.add_metric("111", "after", page_series(("2024-01-01", 9)))

        outcome = _collect(fetcher, ["empty", "after"])

        assert outcome.rows[0]["after"] == 9
        assert "empty" not in outcome.rows[0]

    def test_api_error_aborts_and_skips_remaining_metrics(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "page_views", graph_error("(#100) Invalid metric"))
        fetcher.add_metric("111", "page_likes", page_series(("2024-01-01", 2)))

        outcome = _collect(fetcher, ["page_views", "page_likes"])

        assert outcome.aborted
        assert isinstance(outcome.error, GraphAPIError)
        assert str(outcome.error) == "(#100) Invalid metric"
        assert outcome.rows == []
        assert [call[2] for call in fetcher.metric_calls()] == ["page_views"]

    def test_empty_error_descriptor_aborts_instead_of_skipping(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "page_views", {"error": {}})
        fetcher.add_metric("111", "page_likes", page_series(("2024-01-01", 2)))

        outcome = _collect(fetcher, ["page_views", "page_likes"])

        assert outcome.aborted
        assert isinstance(outcome.error, GraphAPIError)
        assert outcome.rows == []
        assert [call[2] for call in fetcher.metric_calls()] == ["page_views"]

    def test_transport_error_aborts(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "a", page_series(("2024-01-01", 1)))
        fetcher.add_metric("111", "b", ConnectorRequestError("Connection failed"))

        outcome = _collect(fetcher, ["a", "b"])

        assert isinstance(outcome.error, ConnectorRequestError)
        assert outcome.rows == []

    def test_invalid_json_aborts(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "a", "not json")

        outcome = _collect(fetcher, ["a"])

        assert isinstance(outcome.error, ConnectorRequestError)

    def test_unexpected_failure_aborts(self, fetcher: FakeGraphFetcher) -> None:
        fetcher.add_metric("111", "a", OSError("socket closed"))

        outcome = _collect(fetcher, ["a"])

        assert isinstance(outcome.error, OSError)


@pytest.mark.parametrize(
    "keys, expected",
    [
        (["2024-01-02", "2024-01-01"], ["2024-01-01", "2024-01-02"]),
        ([3, 1, 2], [1, 2, 3]),
        (["2024-01-01", 5], [5, "2024-01-01"]),
    ],
)
def test_date_sort_key(keys, expected) -> None:
    assert sorted(keys, key=date_sort_key) == expected
