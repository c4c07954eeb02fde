"""
Sitemap extraction tool for the WaterCrawl MCP server.
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

logger = logging.getLogger(__name__)


def register_sitemap_tools(mcp: FastMCP) -> None:
    """Register the sitemap tool with the FastMCP server."""

    @mcp.tool(
        name="sitemap",
        description="Create a sitemap for a given URL, optionally ignoring sitemap.xml and including subdomains",
        annotations={
            "title": "Sitemap Builder",
            "readOnlyHint": True,       # Only discovers URLs
            "destructiveHint": False,
            "openWorldHint": True,
            "idempotentHint": True
        }
    )
    async def sitemap(
        ctx: Context,
        url: Annotated[str, Field(
            description="URL to get sitemap for",
            pattern=r"^https?://.*",
            max_length=2048
        )],
        ignoreSitemapXml: Annotated[bool, Field(
            description="Skip the site's sitemap.xml and discover links by crawling"
        )] = False,
        includeSubdomains: Annotated[bool, Field(
            description="Include links on subdomains"
        )] = True,
        searchTerm: Annotated[str | None, Field(
            description="Only keep links matching this term",
            max_length=500
        )] = None,
        download: Annotated[bool, Field(
            description="If set to true, returns all sitemap links. "
                        "If false, returns a direct link to download the full sitemap.json file."
        )] = False
    ) -> Any:
        """
        Build a sitemap for a website.

        Returns:
            The list of sitemap links when ``download`` is set, otherwise the
            finished sitemap request with a link to the sitemap file

        Raises:
            ToolError: If the URL is invalid or the sitemap request fails
        """
        await ctx.info(f"Building sitemap for {url}")

        try:
            if not validate_url(url):
                raise ToolError("URL must start with http:// or https://")

            options = {
                "ignore_sitemap_xml": ignoreSitemapXml,
                "include_subdomains": includeSubdomains,
                "search": searchTerm or None,
                "include_paths": [],
                "exclude_paths": [],
            }

            client = get_watercrawl_client()
            result = await asyncio.to_thread(client.create_sitemap_request, url, options, True, download)

            if isinstance(result, list):
                await ctx.info(f"Sitemap for {url} contains {len(result)} links")
            else:
                await ctx.info(f"Sitemap request for {url} finished")
            return result

        except WaterCrawlError as e:
            mcp_error = handle_watercrawl_error(e, {"tool": "sitemap", "url": url})
            await ctx.error(f"WaterCrawl API error during sitemap: {mcp_error}")
            raise mcp_error from e

        except ToolError:
            raise

        except Exception as e:
            error_msg = f"Unexpected error during sitemap: {e}"
            await ctx.error(error_msg)
            raise ToolError(error_msg) from e


__all__ = ["register_sitemap_tools"]
