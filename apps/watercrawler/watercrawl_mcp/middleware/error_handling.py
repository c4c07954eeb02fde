"""
Error processing middleware for the WaterCrawl MCP server.

Every exception escaping a handler is converted to a FastMCP ToolError with a
user-facing message, logged, and counted before it is re-raised.
"""

import logging
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fastmcp.exceptions import ToolError
from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..core.exceptions import WaterCrawlError, handle_watercrawl_error, mcp_log_error
from .logging import mask_sensitive_dict

logger = logging.getLogger(__name__)


@dataclass
class ErrorStatistics:
    """Statistics for error tracking."""

    total_errors: int = 0
    errors_by_type: dict[str, int] = field(default_factory=dict)
    errors_by_operation: dict[str, int] = field(default_factory=dict)
    recent_errors: list[dict[str, Any]] = field(default_factory=list)
    max_recent_errors: int = 100

    def add_error(
        self,
        error: Exception,
        operation: str,
        context: dict[str, Any] | None = None
    ) -> None:
        """Add an error to statistics."""
        self.total_errors += 1

        error_type = type(error).__name__
        self.errors_by_type[error_type] = self.errors_by_type.get(error_type, 0) + 1
        self.errors_by_operation[operation] = self.errors_by_operation.get(operation, 0) + 1

        self.recent_errors.append({
            "timestamp": datetime.now(UTC).isoformat(),
            "error_type": error_type,
            "operation": operation,
            "message": str(error),
            "context": context or {}
        })

        if len(self.recent_errors) > self.max_recent_errors:
            self.recent_errors = self.recent_errors[-self.max_recent_errors:]

    def get_stats(self) -> dict[str, Any]:
        """Get error statistics."""
        return {
            "total_errors": self.total_errors,
            "errors_by_type": dict(self.errors_by_type),
            "errors_by_operation": dict(self.errors_by_operation),
            "recent_error_count": len(self.recent_errors)
        }

    def get_recent_errors(self, limit: int | None = None) -> list[dict[str, Any]]:
        if limit:
            return self.recent_errors[-limit:]
        return self.recent_errors.copy()


class ErrorHandlingMiddleware(Middleware):
    """
    Error transformation middleware.

    WaterCrawl API errors become ToolErrors carrying a hint for the failure
    class (authentication, rate limit, ...). Argument errors are reported as
    invalid arguments and anything else as an internal server error.
    """

    def __init__(
        self,
        logger_name: str | None = None,
        include_traceback: bool = False,
        transform_errors: bool = True,
        error_callback: Callable[[Exception, MiddlewareContext], None] | None = None,
        mask_sensitive_data: bool = True,
        enable_statistics: bool = True
    ):
        """
        Initialize error handling middleware.

        Args:
            logger_name: Custom logger name
            include_traceback: Whether to send the traceback to the client log
            transform_errors: Whether to convert errors to ToolError
            error_callback: Optional callback for custom error handling
            mask_sensitive_data: Whether to mask credentials in logged arguments
            enable_statistics: Whether to collect error statistics
        """
        self.logger = logging.getLogger(logger_name or __name__)
        self.include_traceback = include_traceback
        self.transform_errors = transform_errors
        self.error_callback = error_callback
        self.mask_sensitive_data = mask_sensitive_data
        self.statistics = ErrorStatistics() if enable_statistics else None

    async def on_message(self, context: MiddlewareContext, call_next):
        try:
            return await call_next(context)

        except Exception as error:
            processed_error = self._process_error(error, context)
            await self._log_error(processed_error, context)

            if self.statistics:
                self.statistics.add_error(
                    processed_error, getattr(context, "method", None) or "unknown", self._extract_context(context)
                )

            if self.error_callback:
                try:
                    self.error_callback(processed_error, context)
                except Exception as callback_error:
                    self.logger.warning(f"Error in error callback: {callback_error}")

            if processed_error is error:
                raise
            raise processed_error from error

    def _process_error(self, error: Exception, context: MiddlewareContext) -> Exception:
        """Convert an exception to the ToolError reported to the client."""
        if not self.transform_errors or isinstance(error, ToolError):
            return error

        if isinstance(error, WaterCrawlError):
            return handle_watercrawl_error(error, self._extract_context(context))

        if isinstance(error, ValueError):
            return ToolError(f"Invalid arguments: {error}")

        if isinstance(error, TimeoutError):
            return ToolError(f"Operation timed out: {error}")

        return ToolError(f"Internal server error: {error}")

    def _extract_context(self, context: MiddlewareContext) -> dict[str, Any]:
        """Extract relevant context information for error handling."""
        error_context: dict[str, Any] = {
            "method": getattr(context, "method", None) or "unknown",
            "source": getattr(context, "source", "unknown"),
        }

        message = getattr(context, "message", None)
        name = getattr(message, "name", None)
        if name:
            error_context["tool_name"] = name
        arguments = getattr(message, "arguments", None)
        if isinstance(arguments, dict):
            error_context["arguments"] = mask_sensitive_dict(arguments) if self.mask_sensitive_data else arguments

        return error_context

    async def _log_error(self, error: Exception, context: MiddlewareContext) -> None:
        mcp_log_error(error, self._extract_context(context))

        if self.include_traceback and context.fastmcp_context:
            await context.fastmcp_context.error(
                f"Full traceback for {type(error).__name__}:\n{traceback.format_exc()}"
            )

    def get_error_statistics(self) -> dict[str, Any]:
        if not self.statistics:
            return {"error": "Statistics not enabled"}
        return self.statistics.get_stats()

    def get_recent_errors(self, limit: int | None = None) -> list[dict[str, Any]]:
        if not self.statistics:
            return []
        return self.statistics.get_recent_errors(limit)

    def reset_statistics(self) -> None:
        if self.statistics:
            self.statistics = ErrorStatistics()


__all__ = ["ErrorHandlingMiddleware", "ErrorStatistics"]
