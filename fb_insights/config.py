"""
fb_insights/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

DEFAULT_GRAPH_BASE_URL = "https://graph.facebook.com/v2.5"

# Graph API edge for each node kind
EDGE_BY_NODE: dict[str, str] = {
    "page": "insights",
    "app": "app_insights",
}


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for the Graph API fetcher.
    """

    timeout_seconds: float = 15.0
    rate_limit_per_second: float = 0.0


@dataclass(frozen=True)
class GraphAPISettings:
    """
    Graph API endpoint and stream behavior settings.
    """

    base_url: str = DEFAULT_GRAPH_BASE_URL
    resolve_concurrency: int = 3
    sort_rows: bool = True


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared fetcher HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        rate_limit_per_second=max(0.0, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 0.0)),
    )


@lru_cache(maxsize=1)
def get_graph_api_settings() -> GraphAPISettings:
    """
    Return Graph API settings from environment variables.
    """

    return GraphAPISettings(
        base_url=_get_str_env("FACEBOOK_GRAPH_BASE_URL", DEFAULT_GRAPH_BASE_URL).rstrip("/"),
        resolve_concurrency=max(1, _get_int_env("FACEBOOK_RESOLVE_CONCURRENCY", 3)),
        sort_rows=_get_bool_env("FACEBOOK_SORT_ROWS", True),
    )
