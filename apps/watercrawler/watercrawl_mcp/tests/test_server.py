"""
Tests for the assembled server: tool registration, health check and CLI.
"""

import json
import os
from typing import Any
from unittest.mock import patch

import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from watercrawl_mcp import server as server_module
from watercrawl_mcp.server import build_parser, main, mcp


class TestServer:

    async def test_all_tools_registered(self, test_env: dict[str, Any]) -> None:  # noqa: ARG002
        async with Client(mcp) as client:
            names = {tool.name for tool in await client.list_tools()}

        assert names == {
            "scrape-url",
            "crawl",
            "manage-crawl",
            "search",
            "manage-search",
            "sitemap",
            "monitor-request",
            "health_check",
        }

    async def test_health_check(self, test_env: dict[str, Any]) -> None:  # noqa: ARG002
        status = {"status": "connected", "base_url": "https://app.watercrawl.dev", "connection_test": "passed"}

        with patch("watercrawl_mcp.server.get_client_status", return_value=status):
            async with Client(mcp) as client:
                result = await client.call_tool("health_check", {})

        data = json.loads(result.content[0].text)
        assert data["server_status"] == "healthy"
        assert data["client_status"] == status

    async def test_health_check_failure(self, test_env: dict[str, Any]) -> None:  # noqa: ARG002
        with patch("watercrawl_mcp.server.get_client_status", side_effect=RuntimeError("dns failure")):
            async with Client(mcp) as client:
                with pytest.raises(ToolError, match="Health check failed: dns failure"):
                    await client.call_tool("health_check", {})


class TestCommandLine:

    def test_parser_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            args = build_parser().parse_args([])

        assert args.transport == "stdio"
        assert args.port == 3000
        assert args.endpoint is None

    def test_stdio_requires_api_key(self) -> None:
        with patch.dict(os.environ, {}, clear=True), patch.object(server_module.mcp, "run") as mock_run:
            with pytest.raises(SystemExit) as exc_info:
                main(["stdio"])

        assert exc_info.value.code == 1
        mock_run.assert_not_called()

    def test_stdio_with_api_key_flag(self) -> None:
        with patch.dict(os.environ, {}, clear=True), patch.object(server_module.mcp, "run") as mock_run:
            main(["stdio", "--api-key", "wc-key", "--base-url", "https://watercrawl.internal"])
            assert os.environ["WATERCRAWL_API_KEY"] == "wc-key"
            assert os.environ["WATERCRAWL_BASE_URL"] == "https://watercrawl.internal"

        mock_run.assert_called_once_with(transport="stdio")

    @pytest.mark.parametrize(
        ("argv", "expected"),
        [
            (["sse"], {"transport": "sse", "host": "0.0.0.0", "port": 3000, "path": "/sse"}),
            (["http", "--port", "8080", "--host", "127.0.0.1"],
             {"transport": "http", "host": "127.0.0.1", "port": 8080, "path": "/mcp"}),
            (["sse", "-e", "/events"], {"transport": "sse", "host": "0.0.0.0", "port": 3000, "path": "/events"}),
        ],
    )
    def test_network_transports(self, argv: list[str], expected: dict[str, Any]) -> None:
        with patch.dict(os.environ, {}, clear=True), patch.object(server_module.mcp, "run") as mock_run:
            main(argv)

        mock_run.assert_called_once_with(**expected)
