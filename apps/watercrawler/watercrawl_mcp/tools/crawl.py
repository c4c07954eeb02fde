"""
Crawling tools for the WaterCrawl MCP server.

This module implements two tools:
- crawl: Start an asynchronous crawl of a URL and its subpages
- manage-crawl: List, inspect, page through results of, or stop crawl requests

Crawls run remotely; use ``monitor-request`` or ``manage-crawl`` to follow them.
"""

import logging
from typing import Annotated, Any, Literal

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from ..core.client import get_watercrawl_client
from ..core.exceptions import WaterCrawlError, handle_watercrawl_error
from ..services.base import validate_url
from .types import PageOptions, SpiderOptions, to_api_options

logger = logging.getLogger(__name__)


def _require_request_id(crawl_request_id: str | None, action: str) -> str:
    if not crawl_request_id:
        raise ToolError(f"crawlRequestId is required for '{action}' action")
    return crawl_request_id


async def _handle_manage_crawl(
    ctx: Context,
    action: str,
    crawl_request_id: str | None,
    page: int,
    page_size: int,
    download: bool
) -> dict[str, Any]:
    """
    Dispatch a manage-crawl action.

    Returns:
        dict[str, Any]: The API payload for the action

    Raises:
        ToolError: If a required argument is missing or the action is unknown
    """
    client = get_watercrawl_client()

    if action == "list":
        await ctx.info(f"Listing crawl requests (page {page}, page size {page_size})")
        return client.get_crawl_requests_list(page, page_size)

    if action == "get":
        request_id = _require_request_id(crawl_request_id, action)
        await ctx.info(f"Fetching crawl request {request_id}")
        return client.get_crawl_request(request_id)

    if action == "get_results":
        request_id = _require_request_id(crawl_request_id, action)
        await ctx.info(f"Fetching results page {page} for crawl request {request_id}")
        return client.get_crawl_request_results(request_id, page, page_size, download)

    if action == "stop":
        request_id = _require_request_id(crawl_request_id, action)
        await ctx.info(f"Stopping crawl request {request_id}")
        client.stop_crawl_request(request_id)
        return {"success": True, "message": "Crawl request stopped successfully"}

    raise ToolError(f"Unknown action: {action}")


def register_crawl_tools(mcp: FastMCP) -> None:
    """Register crawling tools with the FastMCP server."""

    @mcp.tool(
        name="crawl",
        description="Crawl a URL and its subpages with customizable depth and spider limitations. "
                    "This is an async operation, with manage-crawl or monitor-request you can get status and results.",
        annotations={
            "title": "Website Crawler",
            "readOnlyHint": False,      # Creates a crawl request
            "destructiveHint": False,   # Safe - only extracts content
            "openWorldHint": True,      # Accesses external websites
            "idempotentHint": False     # Every call starts a new crawl
        }
    )
    async def crawl(
        ctx: Context,
        url: Annotated[str, Field(
            description="URL to crawl",
            pattern=r"^https?://.*",
            max_length=2048
        )],
        spiderOptions: Annotated[SpiderOptions | None, Field(
            description="Spider options: max_depth, page_limit, allowed_domains (e.g. ['*.example.com']), "
                        "exclude_paths and include_paths (e.g. ['/path/*'])"
        )] = None,
        pageOptions: Annotated[PageOptions | None, Field(
            description="Page scraping options"
        )] = None
    ) -> dict[str, Any]:
        """
        Start crawling a URL.

        Returns:
            dict[str, Any]: The created crawl request, including its uuid and status

        Raises:
            ToolError: If the URL is invalid or the crawl cannot be started
        """
        await ctx.info(f"Starting crawl for URL: {url}")

        try:
            if not validate_url(url):
                raise ToolError("URL must start with http:// or https://")

            client = get_watercrawl_client()
            crawl_request = client.create_crawl_request(
                url,
                spider_options=to_api_options(spiderOptions),
                page_options=to_api_options(pageOptions),
            )

            await ctx.info(f"Crawl started with request ID: {crawl_request.get('uuid')}")
            return crawl_request

        except WaterCrawlError as e:
            mcp_error = handle_watercrawl_error(e, {"tool": "crawl", "url": url})
            await ctx.error(f"WaterCrawl API error during crawl: {mcp_error}")
            raise mcp_error from e

        except ToolError:
            raise

        except Exception as e:
            error_msg = f"Unexpected error during crawl: {e}"
            await ctx.error(error_msg)
            raise ToolError(error_msg) from e

    @mcp.tool(
        name="manage-crawl",
        description="Manage crawl requests: list, get details, get paginated results, or stop a running crawl",
        annotations={
            "title": "Crawl Manager",
            "readOnlyHint": False,      # 'stop' cancels a crawl
            "destructiveHint": True,
            "openWorldHint": True,
            "idempotentHint": False
        }
    )
    async def manage_crawl(
        ctx: Context,
        action: Annotated[Literal["list", "get", "get_results", "stop"], Field(
            description="Action to perform on crawl requests"
        )],
        crawlRequestId: Annotated[str | None, Field(
            description="UUID of the crawl request (required for get, get_results and stop actions)"
        )] = None,
        page: Annotated[int, Field(
            description="Page number (1-indexed), used by list and get_results actions",
            ge=1
        )] = 1,
        pageSize: Annotated[int, Field(
            description="Number of items per page, used by list and get_results actions",
            ge=1,
            le=100
        )] = 10,
        download: Annotated[bool, Field(
            description="Include result content in get_results instead of download links"
        )] = True
    ) -> dict[str, Any]:
        """
        Manage crawl requests.

        Returns:
            dict[str, Any]: Paginated listing, request details, results page,
                or a confirmation for stop

        Raises:
            ToolError: If arguments are missing or the WaterCrawl API fails
        """
        try:
            return await _handle_manage_crawl(ctx, action, crawlRequestId, page, pageSize, download)

        except WaterCrawlError as e:
            mcp_error = handle_watercrawl_error(
                e, {"tool": "manage-crawl", "action": action, "crawl_request_id": crawlRequestId}
            )
            await ctx.error(f"WaterCrawl API error during manage-crawl: {mcp_error}")
            raise mcp_error from e

        except ToolError:
            raise

        except Exception as e:
            error_msg = f"Unexpected error in manage-crawl: {e}"
            await ctx.error(error_msg)
            raise ToolError(error_msg) from e


__all__ = ["register_crawl_tools"]
