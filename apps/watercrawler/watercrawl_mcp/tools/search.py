"""
Web search tools for the WaterCrawl MCP server.

This module implements the search tool, which runs a WaterCrawl search request
(optionally waiting for it to finish), and manage-search for listing,
inspecting, and stopping search requests.
"""

import asyncio
import logging
from typing import Annotated, Any, Literal

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from ..core.client import get_watercrawl_client
from ..core.exceptions import WaterCrawlError, handle_watercrawl_error
from .types import SearchOptions, to_api_options

logger = logging.getLogger(__name__)


def register_search_tools(mcp: FastMCP) -> None:
    """Register search tools with the FastMCP server."""

    @mcp.tool(
        name="search",
        description="Search for information using configurable options for language, country, time range, and depth",
        annotations={
            "title": "Web Search",
            "readOnlyHint": True,       # Only searches, doesn't modify
            "destructiveHint": False,
            "openWorldHint": True,      # Searches external web
            "idempotentHint": False     # Search results may change over time
        }
    )
    async def search(
        ctx: Context,
        query: Annotated[str, Field(
            description="Search query",
            min_length=1,
            max_length=500
        )],
        searchOptions: Annotated[SearchOptions | None, Field(
            description="Search configuration: language ('en', 'fr'), country ('us', 'fr'), "
                        "time_range, search_type and depth"
        )] = None,
        resultLimit: Annotated[int, Field(
            description="Maximum number of results to return",
            ge=1,
            le=100
        )] = 5,
        sync: Annotated[bool, Field(
            description="Wait for search to complete"
        )] = True,
        download: Annotated[bool, Field(
            description="Download content immediately"
        )] = True
    ) -> dict[str, Any]:
        """
        Run a web search.

        Returns:
            dict[str, Any]: The search request; when ``sync`` is set it is the
                finished request including its results

        Raises:
            ToolError: If the query is empty or the search fails
        """
        query = query.strip()
        if not query:
            raise ToolError("Search query cannot be empty")

        await ctx.info(f"Starting web search for query: '{query}'")

        try:
            client = get_watercrawl_client()
            options = to_api_options(searchOptions)
            if options:
                await ctx.info(f"Search options: {options}")

            # sync mode follows the event stream, keep it off the event loop
            search_request = await asyncio.to_thread(
                client.create_search_request,
                query,
                options,
                resultLimit,
                sync,
                download,
            )

            status = (search_request or {}).get("status", "unknown")
            await ctx.info(f"Search request {(search_request or {}).get('uuid')} status: {status}")
            logger.info(f"Search for '{query}' returned status {status} (sync={sync}, download={download})")
            return search_request

        except WaterCrawlError as e:
            mcp_error = handle_watercrawl_error(e, {"tool": "search", "query": query})
            await ctx.error(f"WaterCrawl API error during search: {mcp_error}")
            raise mcp_error from e

        except ToolError:
            raise

        except Exception as e:
            error_msg = f"Unexpected error during search: {e}"
            await ctx.error(error_msg)
            raise ToolError(error_msg) from e

    @mcp.tool(
        name="manage-search",
        description="Manage search requests: list, get details, or stop running searches",
        annotations={
            "title": "Search Manager",
            "readOnlyHint": False,      # 'stop' cancels a search
            "destructiveHint": True,
            "openWorldHint": True,
            "idempotentHint": False
        }
    )
    async def manage_search(
        ctx: Context,
        action: Annotated[Literal["list", "get", "stop"], Field(
            description="Action to perform on search requests"
        )],
        searchRequestId: Annotated[str | None, Field(
            description="UUID of the search request (required for get and stop actions)"
        )] = None,
        page: Annotated[int, Field(
            description="Page number for listing (1-indexed)",
            ge=1
        )] = 1,
        pageSize: Annotated[int, Field(
            description="Number of items per page for listing",
            ge=1,
            le=100
        )] = 10,
        download: Annotated[bool, Field(
            description="Download content when getting a search request"
        )] = True
    ) -> dict[str, Any]:
        """Manage search requests."""
        try:
            client = get_watercrawl_client()

            if action == "list":
                await ctx.info(f"Listing search requests (page {page}, page size {pageSize})")
                return client.get_search_requests_list(page, pageSize)

            if not searchRequestId:
                raise ToolError(f"searchRequestId is required for '{action}' action")

            if action == "get":
                await ctx.info(f"Fetching search request {searchRequestId}")
                return client.get_search_request(searchRequestId, download)

            if action == "stop":
                await ctx.info(f"Stopping search request {searchRequestId}")
                client.stop_search_request(searchRequestId)
                return {"success": True, "message": "Search request stopped successfully"}

            raise ToolError(f"Unknown action: {action}")

        except WaterCrawlError as e:
            mcp_error = handle_watercrawl_error(
                e, {"tool": "manage-search", "action": action, "search_request_id": searchRequestId}
            )
            await ctx.error(f"WaterCrawl API error during manage-search: {mcp_error}")
            raise mcp_error from e

        except ToolError:
            raise

        except Exception as e:
            error_msg = f"Unexpected error in manage-search: {e}"
            await ctx.error(error_msg)
            raise ToolError(error_msg) from e


__all__ = ["register_search_tools"]
