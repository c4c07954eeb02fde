"""
WaterCrawl MCP Tools Module

This module provides MCP tool implementations for the WaterCrawl API, enabling
LLMs to scrape, crawl, search, and map websites and to follow long-running
requests as they progress.

Available Tools:
- scrape-url: Single page scraping
- crawl / manage-crawl: Website crawling with depth control, and crawl request management
- search / manage-search: Web search, and search request management
- sitemap: URL discovery and sitemap generation
- monitor-request: Real-time monitoring of crawl and search requests

Each tool follows MCP patterns with Context-based logging and proper error handling.
"""

from .crawl import register_crawl_tools
from .monitor import register_monitor_tools
from .scrape import register_scrape_tools
from .search import register_search_tools
from .sitemap import register_sitemap_tools

__all__ = [
    "register_crawl_tools",
    "register_monitor_tools",
    "register_scrape_tools",
    "register_search_tools",
    "register_sitemap_tools",
]
