"""
Error handling middleware tests for the WaterCrawl MCP server.
"""

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
from fastmcp import Client, FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.middleware import MiddlewareContext

from watercrawl_mcp.core.exceptions import (
    BadRequestError,
    RateLimitError,
    UnauthorizedError,
)
from watercrawl_mcp.middleware.error_handling import ErrorHandlingMiddleware, ErrorStatistics


def make_context(
    method: str = "tools/call",
    tool_name: str = "crawl",
    arguments: dict[str, Any] | None = None
) -> MiddlewareContext:
    fastmcp_context = Mock()
    fastmcp_context.info = AsyncMock()
    fastmcp_context.warning = AsyncMock()
    fastmcp_context.error = AsyncMock()

    return MiddlewareContext(
        message=SimpleNamespace(name=tool_name, arguments=arguments or {}),
        fastmcp_context=fastmcp_context,
        source="client",
        type="request",
        method=method,
    )


class TestErrorStatistics:

    def test_add_error(self) -> None:
        stats = ErrorStatistics()
        stats.add_error(ValueError("x"), "tools/call", {"tool_name": "crawl"})
        stats.add_error(ValueError("y"), "tools/list")

        summary = stats.get_stats()
        assert summary["total_errors"] == 2
        assert summary["errors_by_type"] == {"ValueError": 2}
        assert summary["errors_by_operation"] == {"tools/call": 1, "tools/list": 1}

    def test_recent_errors_limit(self) -> None:
        stats = ErrorStatistics(max_recent_errors=3)
        for i in range(5):
            stats.add_error(RuntimeError(str(i)), "tools/call")

        recent = stats.get_recent_errors()
        assert [entry["message"] for entry in recent] == ["2", "3", "4"]
        assert len(stats.get_recent_errors(limit=1)) == 1


class TestErrorHandlingMiddleware:

    @pytest.fixture
    def error_middleware(self) -> ErrorHandlingMiddleware:
        return ErrorHandlingMiddleware()

    async def test_successful_request_passthrough(self, error_middleware: ErrorHandlingMiddleware) -> None:
        async def call_next(_ctx: Any) -> dict[str, str]:
            return {"result": "success"}

        assert await error_middleware.on_message(make_context(), call_next) == {"result": "success"}
        assert error_middleware.get_error_statistics()["total_errors"] == 0

    @pytest.mark.parametrize(
        ("error", "prefix"),
        [
            (BadRequestError("Invalid URL format", 400), "Invalid request parameters"),
            (UnauthorizedError("bad key", 401), "Authentication failed - check API key"),
            (RateLimitError("slow down", 429), "Rate limit exceeded"),
        ],
    )
    async def test_watercrawl_errors(
        self,
        error_middleware: ErrorHandlingMiddleware,
        error: Exception,
        prefix: str
    ) -> None:
        async def call_next(_ctx: Any) -> None:
            raise error

        with pytest.raises(ToolError) as exc_info:
            await error_middleware.on_message(make_context(), call_next)

        assert str(exc_info.value).startswith(prefix)
        assert exc_info.value.__cause__ is error

    async def test_tool_error_passthrough(self, error_middleware: ErrorHandlingMiddleware) -> None:
        original = ToolError("already friendly")

        async def call_next(_ctx: Any) -> None:
            raise original

        with pytest.raises(ToolError) as exc_info:
            await error_middleware.on_message(make_context(), call_next)

        assert exc_info.value is original

    @pytest.mark.parametrize(
        ("error", "prefix"),
        [
            (ValueError("bad value"), "Invalid arguments: bad value"),
            (TimeoutError("too slow"), "Operation timed out: too slow"),
            (RuntimeError("boom"), "Internal server error: boom"),
        ],
    )
    async def test_standard_exceptions(
        self,
        error_middleware: ErrorHandlingMiddleware,
        error: Exception,
        prefix: str
    ) -> None:
        async def call_next(_ctx: Any) -> None:
            raise error

        with pytest.raises(ToolError, match=prefix):
            await error_middleware.on_message(make_context(), call_next)

    async def test_transform_disabled(self) -> None:
        middleware = ErrorHandlingMiddleware(transform_errors=False, enable_statistics=False)

        async def call_next(_ctx: Any) -> None:
            raise RuntimeError("raw")

        with pytest.raises(RuntimeError, match="raw"):
            await middleware.on_message(make_context(), call_next)
        assert middleware.get_recent_errors() == []

    def test_context_extraction_masks_credentials(self, error_middleware: ErrorHandlingMiddleware) -> None:
        context = make_context(arguments={"url": "https://example.com", "api_key": "wc-secret-key-123456"})

        extracted = error_middleware._extract_context(context)

        assert extracted["tool_name"] == "crawl"
        assert extracted["arguments"]["url"] == "https://example.com"
        assert extracted["arguments"]["api_key"] == "wc-s...3456"

    async def test_statistics_and_callback(self) -> None:
        callback = Mock()
        middleware = ErrorHandlingMiddleware(error_callback=callback)

        async def call_next(_ctx: Any) -> None:
            raise RuntimeError("boom")

        with pytest.raises(ToolError):
            await middleware.on_message(make_context(), call_next)

        assert middleware.get_error_statistics()["errors_by_type"] == {"ToolError": 1}
        assert middleware.get_recent_errors()[0]["operation"] == "tools/call"
        callback.assert_called_once()

        middleware.reset_statistics()
        assert middleware.get_error_statistics()["total_errors"] == 0

    async def test_in_server(self, basic_test_server: FastMCP) -> None:
        basic_test_server.add_middleware(ErrorHandlingMiddleware())

        async with Client(basic_test_server) as client:
            ok = await client.call_tool("test_tool", {"message": "hi"})
            assert ok.content[0].text == "Test response: hi"

            with pytest.raises(ToolError, match="Test error message"):
                await client.call_tool("error_tool", {})
