"""
Core utilities package for the WaterCrawl MCP server.

This package provides:
- The WaterCrawl REST client and its retrying HTTP layer
- Environment-based configuration helpers
- WaterCrawl API errors and their conversion to FastMCP ToolError
"""

from .client import (
    ServerSentEventSource,
    WaterCrawlClient,
    get_client_status,
    get_watercrawl_client,
    resolve_api_key,
)
from .config import (
    get_base_url,
    get_default_monitor_timeout,
    get_env_bool,
    get_env_float,
    get_env_int,
    get_server_info,
    validate_environment,
)
from .exceptions import (
    BadRequestError,
    InternalServerError,
    NotFoundError,
    PaymentRequiredError,
    RateLimitError,
    RequestTimeoutError,
    UnauthorizedError,
    WaterCrawlError,
    create_tool_error,
    handle_response_error,
    handle_watercrawl_error,
)
from .http_client import HttpClient

__all__ = [
    "BadRequestError",
    "HttpClient",
    "InternalServerError",
    "NotFoundError",
    "PaymentRequiredError",
    "RateLimitError",
    "RequestTimeoutError",
    "ServerSentEventSource",
    "UnauthorizedError",
    "WaterCrawlClient",
    "WaterCrawlError",
    "create_tool_error",
    "get_base_url",
    "get_client_status",
    "get_default_monitor_timeout",
    "get_env_bool",
    "get_env_float",
    "get_env_int",
    "get_server_info",
    "get_watercrawl_client",
    "handle_response_error",
    "handle_watercrawl_error",
    "resolve_api_key",
    "validate_environment",
]
