"""
WaterCrawl MCP Server - A Model Context Protocol server for WaterCrawl web crawling and search.

This package provides MCP tools for scraping, crawling, searching, and mapping
websites with the WaterCrawl API, plus real-time monitoring of crawl and
search requests.

Modules:
    - tools: MCP tools for web operations
    - core: WaterCrawl client, configuration, and errors
    - services: Job event models and the request monitor engine
    - middleware: Request/response processing middleware
    - tests: Testing infrastructure
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
