"""
Single-page scraping tool for the WaterCrawl MCP server.

WaterCrawl scrapes a page through a one-page crawl request. In sync mode the
tool waits for the page result; otherwise it returns the crawl request so the
caller can follow it with monitor-request.
"""

import asyncio
import logging
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from ..core.client import get_watercrawl_client
from ..core.exceptions import WaterCrawlError, handle_watercrawl_error
from ..services.base import validate_url
from .types import PageOptions, to_api_options

logger = logging.getLogger(__name__)


def register_scrape_tools(mcp: FastMCP) -> None:
    """Register the scrape-url tool with the FastMCP server."""

    @mcp.tool(
        name="scrape-url",
        description="Scrape a URL with optional configuration for page options, and more",
        annotations={
            "title": "Web Page Scraper",
            "readOnlyHint": True,
            "destructiveHint": False,
            "openWorldHint": True,
            "idempotentHint": False     # Page content may change between calls
        }
    )
    async def scrape_url(
        ctx: Context,
        url: Annotated[str, Field(
            description="URL to scrape",
            pattern=r"^https?://.*",
            max_length=2048
        )],
        pageOptions: Annotated[PageOptions | None, Field(
            description="Page scraping options"
        )] = None,
        sync: Annotated[bool, Field(
            description="Wait for scraping to complete"
        )] = True,
        download: Annotated[bool, Field(
            description="Download content immediately"
        )] = True
    ) -> Any:
        """
        Scrape a single URL.

        Returns:
            The scraped page result in sync mode, otherwise the created crawl request

        Raises:
            ToolError: If the URL is invalid or scraping fails
        """
        await ctx.info(f"Scraping URL: {url}")

        try:
            if not validate_url(url):
                raise ToolError("URL must start with http:// or https://")

            client = get_watercrawl_client()
            await ctx.report_progress(progress=1, total=2)

            result = await asyncio.to_thread(
                client.scrape_url,
                url,
                to_api_options(pageOptions),
                None,
                sync,
                download,
            )

            await ctx.report_progress(progress=2, total=2)
            if result is None:
                await ctx.warning(f"No result was produced for {url}")
            else:
                await ctx.info(f"Scrape of {url} finished")
            return result

        except WaterCrawlError as e:
            mcp_error = handle_watercrawl_error(e, {"tool": "scrape-url", "url": url})
            await ctx.error(f"WaterCrawl API error during scrape: {mcp_error}")
            raise mcp_error from e

        except ToolError:
            raise

        except Exception as e:
            error_msg = f"Unexpected error during scrape: {e}"
            await ctx.error(error_msg)
            raise ToolError(error_msg) from e


__all__ = ["register_scrape_tools"]
