"""
Testing package for the WaterCrawl MCP server.

Tests use the ``async with Client(server)`` pattern for in-memory testing
without network overhead. Calls against a live WaterCrawl API are marked
``integration`` and only run when WATERCRAWL_API_KEY is set.
"""
