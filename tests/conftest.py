from __future__ import annotations

import pytest

from fb_insights.config import GraphAPISettings
from graph_fakes import BASE_URL, FakeGraphFetcher


@pytest.fixture()
def fetcher() -> FakeGraphFetcher:
    return FakeGraphFetcher()


@pytest.fixture()
def settings() -> GraphAPISettings:
    return GraphAPISettings(base_url=BASE_URL, resolve_concurrency=3, sort_rows=True)
