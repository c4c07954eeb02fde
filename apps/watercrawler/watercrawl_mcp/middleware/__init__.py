"""
Middleware package for request/response processing.

This package provides middleware components that handle cross-cutting concerns
for the WaterCrawl MCP server:

- logging: Request/response logging with optional rotating files
- error_handling: Error transformation and statistics
"""

from .error_handling import ErrorHandlingMiddleware, ErrorStatistics
from .logging import LoggingMiddleware, mask_sensitive_dict

__all__ = [
    "ErrorHandlingMiddleware",
    "ErrorStatistics",
    "LoggingMiddleware",
    "mask_sensitive_dict",
]
