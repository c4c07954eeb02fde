"""
Pytest configuration and shared fixtures for WaterCrawl MCP server tests.

This module provides shared fixtures for testing the WaterCrawl MCP server
following FastMCP in-memory testing patterns, plus scripted event sources and
a manual clock for driving the monitor engine deterministically.
"""

import os
from collections.abc import Generator, Iterable
from typing import Any
from unittest.mock import Mock, patch

import pytest
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from watercrawl_mcp.core.client import WaterCrawlClient
from watercrawl_mcp.services.models import JobEvent, ResultEvent, StateEvent

# Test environment configuration
TEST_CONFIG = {
    "WATERCRAWL_API_KEY": "wc-test-key-1234567890abcdef",
    "WATERCRAWL_BASE_URL": "https://app.watercrawl.dev",
    "WATERCRAWL_TIMEOUT": "30.0",
    "WATERCRAWL_MAX_RETRIES": "2",
    "WATERCRAWL_BACKOFF_FACTOR": "0",
    "WATERCRAWL_MONITOR_TIMEOUT": "30",
    "MCP_SERVER_NAME": "Test WaterCrawl MCP Server",
    "LOG_LEVEL": "DEBUG",
    "DEBUG_MODE": "true",
}


class ManualClock:
    """Monotonic clock that only moves when a test advances it."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedEventSource:
    """
    Event source that replays a fixed list of steps.

    A step is a JobEvent, an Exception to raise from the pull, or a
    ``(seconds, JobEvent)`` tuple that advances the clock before yielding.
    """

    def __init__(self, steps: Iterable[Any], clock: ManualClock | None = None):
        self.steps = list(steps)
        self.clock = clock
        self.pulls = 0
        self.closed = False

    async def next_event(self) -> JobEvent | None:
        if self.pulls >= len(self.steps):
            self.pulls += 1
            return None

        step = self.steps[self.pulls]
        self.pulls += 1

        if isinstance(step, Exception):
            raise step
        if isinstance(step, tuple):
            delay, step = step
            if self.clock is not None:
                self.clock.advance(delay)
        return step

    async def aclose(self) -> None:
        self.closed = True


class FakeEventClient:
    """Remote job client handing out one scripted source per kind."""

    def __init__(self, crawl: ScriptedEventSource | None = None, search: ScriptedEventSource | None = None):
        self.sources = {"crawl": crawl, "search": search}
        self.opened: list[tuple[str, str, bool]] = []

    def open_crawl_events(self, item_id: str, download: bool = True) -> ScriptedEventSource:
        self.opened.append(("crawl", item_id, download))
        return self.sources["crawl"] or ScriptedEventSource([])

    def open_search_events(self, item_id: str, download: bool = True) -> ScriptedEventSource:
        self.opened.append(("search", item_id, download))
        return self.sources["search"] or ScriptedEventSource([])


def state(status: str, **extra: Any) -> StateEvent:
    return StateEvent(data={"uuid": "req-1", "status": status, **extra})


def result(url: str, final: bool = False) -> ResultEvent:
    return ResultEvent(data={"url": url, "result": {"markdown": f"# {url}"}}, final=final)


@pytest.fixture
def test_env() -> Generator[dict[str, str], None, None]:
    """Provide test environment variables."""
    with patch.dict(os.environ, TEST_CONFIG):
        yield TEST_CONFIG


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def mock_watercrawl_client() -> Mock:
    """Create a mock WaterCrawl client for tool tests."""
    mock_client = Mock(spec=WaterCrawlClient)
    mock_client.base_url = "https://app.watercrawl.dev"
    return mock_client


@pytest.fixture
def basic_test_server() -> FastMCP:
    """Create a basic FastMCP server for middleware tests."""
    server = FastMCP("TestWaterCrawlMCP")

    @server.tool
    def test_tool(message: str) -> str:
        """A simple test tool."""
        return f"Test response: {message}"

    @server.tool
    def error_tool() -> str:
        """A tool that always raises a ToolError."""
        raise ToolError("Test error message")

    @server.tool
    def value_error_tool() -> str:
        """A tool that raises a bare ValueError."""
        raise ValueError("bad value")

    @server.tool
    def crash_tool() -> str:
        """A tool that raises an unexpected exception."""
        raise RuntimeError("boom")

    return server


@pytest.fixture
def sample_crawl_request() -> dict[str, Any]:
    """Sample crawl request payload as returned by the WaterCrawl API."""
    return {
        "uuid": "0d7f3a4e-5b1c-4f2a-9e8d-123456789abc",
        "url": "https://example.com",
        "status": "new",
        "options": {
            "spider_options": {"max_depth": 1, "page_limit": 1},
            "page_options": {},
            "plugin_options": {}
        },
        "created_at": "2024-01-01T00:00:00Z",
        "number_of_documents": 0,
    }


@pytest.fixture
def sample_search_request() -> dict[str, Any]:
    """Sample finished search request payload."""
    return {
        "uuid": "5e1a9c2b-0000-4d3e-8f7a-abcdefabcdef",
        "query": "watercrawl",
        "status": "finished",
        "result_limit": 5,
        "result": [
            {"url": "https://example.com/result1", "title": "First Search Result"},
            {"url": "https://example.com/result2", "title": "Second Search Result"},
        ],
    }
