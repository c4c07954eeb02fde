"""
WaterCrawl MCP Server - FastMCP server implementation.

This module provides the main FastMCP server instance and the command line
entry point that runs it over stdio, SSE, or streamable HTTP.
"""

import argparse
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError

from . import __version__
from .core.client import get_client_status
from .core.config import get_env_int, validate_environment
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware
from .tools import (
    register_crawl_tools,
    register_monitor_tools,
    register_scrape_tools,
    register_search_tools,
    register_sitemap_tools,
)

# Environment from the nearest .env file, then optional local overrides
root_env = find_dotenv(usecwd=True)
if root_env:
    load_dotenv(root_env)

local_env = Path(__file__).parent.parent / ".env.local"
if local_env.exists():
    load_dotenv(local_env, override=True)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


mcp = FastMCP(
    name="WaterCrawl MCP Server",
    instructions="""
This server provides web scraping, crawling, search, and sitemap capabilities
through the WaterCrawl API, with real-time monitoring of long-running requests.

AVAILABLE CAPABILITIES:
• Single URL scraping (scrape-url)
• Website crawling with depth control (crawl, manage-crawl)
• Web search with language/country/time options (search, manage-search)
• Website URL discovery (sitemap)
• Real-time request monitoring with timeout control (monitor-request)

TOOL SELECTION GUIDELINES:
• Use 'scrape-url' for single pages when you know the exact URL
• Use 'sitemap' first to discover URLs, then scrape or crawl them
• Use 'crawl' for website content, then 'monitor-request' or 'manage-crawl' to follow it
• Use 'search' when you don't know which sites have the information

BEST PRACTICES:
• Set page_limit and max_depth for crawls to keep results manageable
• monitor-request returns status "timeout" with the events seen so far when the
  request outlives timeoutSeconds; call it again to keep following the request
    """.strip(),
)

mcp.add_middleware(ErrorHandlingMiddleware())
mcp.add_middleware(LoggingMiddleware(log_file=os.getenv("LOG_FILE") or None))


@mcp.tool
async def health_check(ctx: Context) -> dict[str, Any]:
    """Check server health and WaterCrawl API connectivity."""
    try:
        client_status = get_client_status()

        health_info = {
            "server_status": "healthy",
            "server_name": "WaterCrawl MCP Server",
            "server_version": __version__,
            "client_status": client_status,
            "timestamp": datetime.now(UTC).isoformat()
        }

        await ctx.info("Health check completed successfully")
        return health_info

    except ToolError:
        raise

    except Exception as e:
        error_msg = f"Health check failed: {e}"
        await ctx.error(error_msg)
        logger.error(f"Health check error: {e}")
        raise ToolError(error_msg) from e


def _register_all_tools() -> None:
    """Register all tools on server startup."""
    register_scrape_tools(mcp)
    register_crawl_tools(mcp)
    register_search_tools(mcp)
    register_sitemap_tools(mcp)
    register_monitor_tools(mcp)
    logger.debug("Registered WaterCrawl tools")


_register_all_tools()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="watercrawl-mcp",
        description="MCP server for the WaterCrawl web crawling and search API"
    )
    parser.add_argument(
        "transport",
        nargs="?",
        choices=["stdio", "sse", "http"],
        default=os.getenv("WATERCRAWLER_TRANSPORT", "stdio"),
        help="Transport to serve MCP over (default: stdio)"
    )
    parser.add_argument("-b", "--base-url", help="WaterCrawl API base URL (env: WATERCRAWL_BASE_URL)")
    parser.add_argument("-k", "--api-key", help="WaterCrawl API key (env: WATERCRAWL_API_KEY)")
    parser.add_argument(
        "--host",
        default=os.getenv("WATERCRAWLER_HOST", "0.0.0.0"),
        help="Host to bind for sse/http transports"
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        default=get_env_int("WATERCRAWLER_PORT", 3000),
        help="Port to bind for sse/http transports (default: 3000)"
    )
    parser.add_argument(
        "-e", "--endpoint",
        default=os.getenv("SSE_ENDPOINT"),
        help="Endpoint path for sse/http transports (default: /sse for sse, /mcp for http)"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Command line entry point."""
    args = build_parser().parse_args(argv)

    # The client factory reads its settings from the environment
    if args.base_url:
        os.environ["WATERCRAWL_BASE_URL"] = args.base_url
    if args.api_key:
        os.environ["WATERCRAWL_API_KEY"] = args.api_key

    validation = validate_environment(args.transport)
    for recommendation in validation["recommendations"]:
        logger.info(recommendation)
    if not validation["valid"]:
        for issue in validation["issues"]:
            logger.error(issue)
        raise SystemExit(1)

    try:
        if args.transport == "stdio":
            mcp.run(transport="stdio")
        else:
            path = args.endpoint or ("/sse" if args.transport == "sse" else "/mcp")
            logger.info(f"Starting WaterCrawl MCP server on {args.host}:{args.port}{path} ({args.transport})")
            mcp.run(transport=args.transport, host=args.host, port=args.port, path=path)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    main()
