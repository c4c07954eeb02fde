"""
Logging middleware tests for the WaterCrawl MCP server.
"""

import logging
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest
from fastmcp import Client, FastMCP
from fastmcp.server.middleware import MiddlewareContext

from watercrawl_mcp.middleware.logging import LoggingMiddleware, mask_sensitive_dict, mask_value


def make_context(arguments: dict[str, Any] | None = None, with_fastmcp_context: bool = True) -> MiddlewareContext:
    fastmcp_context = None
    if with_fastmcp_context:
        fastmcp_context = Mock()
        fastmcp_context.info = AsyncMock()
        fastmcp_context.error = AsyncMock()

    return MiddlewareContext(
        message=SimpleNamespace(name="monitor-request", arguments=arguments or {}),
        fastmcp_context=fastmcp_context,
        source="client",
        type="request",
        method="tools/call",
    )


class TestMasking:

    def test_mask_value(self) -> None:
        assert mask_value("short") == "*****"
        assert mask_value("wc-1234567890") == "wc-1...7890"

    def test_nested_masking(self) -> None:
        data = {
            "url": "https://example.com",
            "apikey": "wc-abcdefghijkl",
            "headers": {"Authorization": "Bearer wc-abcdefghijkl"},
            "items": [{"token": "t0k3n"}, "plain"],
            "api_key": None,
        }

        masked = mask_sensitive_dict(data)

        assert masked["url"] == "https://example.com"
        assert masked["apikey"] == "wc-a...ijkl"
        assert masked["headers"]["Authorization"] == "Bear...ijkl"
        assert masked["items"] == [{"token": "*****"}, "plain"]
        assert masked["api_key"] is None
        assert data["apikey"] == "wc-abcdefghijkl"


class TestLoggingMiddleware:

    async def test_logs_request_and_response(self, caplog: pytest.LogCaptureFixture) -> None:
        middleware = LoggingMiddleware(logger_name="test.requests")
        context = make_context()

        async def call_next(_ctx: Any) -> str:
            return "ok"

        with caplog.at_level(logging.INFO, logger="test.requests"):
            assert await middleware.on_message(context, call_next) == "ok"

        messages = [record.getMessage() for record in caplog.records]
        assert any("REQUEST tools/call from client tool=monitor-request" in m for m in messages)
        assert any("RESPONSE tools/call SUCCESS" in m for m in messages)
        assert context.fastmcp_context.info.await_count == 2

    async def test_logs_and_reraises_errors(self, caplog: pytest.LogCaptureFixture) -> None:
        middleware = LoggingMiddleware(logger_name="test.errors", log_errors_only=True)
        context = make_context()

        async def call_next(_ctx: Any) -> None:
            raise RuntimeError("upstream down")

        with caplog.at_level(logging.INFO, logger="test.errors"), pytest.raises(RuntimeError):
            await middleware.on_message(context, call_next)

        messages = [record.getMessage() for record in caplog.records]
        assert len(messages) == 1
        assert "ERROR tools/call RuntimeError: upstream down" in messages[0]
        context.fastmcp_context.error.assert_awaited_once()

    async def test_payloads_are_masked_and_truncated(self, caplog: pytest.LogCaptureFixture) -> None:
        middleware = LoggingMiddleware(logger_name="test.payloads", include_payloads=True, max_payload_length=200)
        context = make_context({"requestId": "abc", "apikey": "wc-abcdefghijkl"}, with_fastmcp_context=False)

        async def call_next(_ctx: Any) -> dict[str, str]:
            return {"data": "x" * 500}

        with caplog.at_level(logging.INFO, logger="test.payloads"):
            await middleware.on_message(context, call_next)

        text = caplog.text
        assert "wc-abcdefghijkl" not in text
        assert "wc-a...ijkl" in text
        assert "[truncated, total length:" in text

    async def test_file_logging(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "nested" / "watercrawl.log"
        middleware = LoggingMiddleware(logger_name="test.file", log_file=str(log_file))
        middleware.logger.setLevel(logging.INFO)

        async def call_next(_ctx: Any) -> str:
            return "ok"

        await middleware.on_message(make_context(with_fastmcp_context=False), call_next)
        middleware.close()

        content = log_file.read_text()
        assert "REQUEST tools/call" in content
        assert "RESPONSE tools/call SUCCESS" in content

    async def test_in_server(self, basic_test_server: FastMCP, caplog: pytest.LogCaptureFixture) -> None:
        basic_test_server.add_middleware(LoggingMiddleware(logger_name="test.server"))

        with caplog.at_level(logging.INFO, logger="test.server"):
            async with Client(basic_test_server) as client:
                await client.call_tool("test_tool", {"message": "hi"})

        assert "REQUEST tools/call" in caplog.text
