"""
FastMCP-compatible error utilities.

This module defines the WaterCrawl API error hierarchy raised by the HTTP client
and the helpers that turn those errors into FastMCP ToolError instances.
"""

import logging
from typing import Any

import requests
from fastmcp.exceptions import ToolError

logger = logging.getLogger(__name__)


class WaterCrawlError(Exception):
    """Base error raised for failed WaterCrawl API calls."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class BadRequestError(WaterCrawlError):
    pass


class UnauthorizedError(WaterCrawlError):
    pass


class PaymentRequiredError(WaterCrawlError):
    pass


class NotFoundError(WaterCrawlError):
    pass


class RequestTimeoutError(WaterCrawlError):
    pass


class RateLimitError(WaterCrawlError):
    pass


class InternalServerError(WaterCrawlError):
    pass


_STATUS_ERRORS: dict[int, type[WaterCrawlError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    402: PaymentRequiredError,
    403: UnauthorizedError,
    404: NotFoundError,
    408: RequestTimeoutError,
    429: RateLimitError,
    500: InternalServerError,
}


def _extract_error_message(response: requests.Response) -> str:
    """Pull the most useful message out of an error response body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or "Unknown error"

    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if body.get(key):
                return str(body[key])
        if body.get("errors"):
            return str(body["errors"])
    return str(body)


def handle_response_error(response: requests.Response, action: str) -> None:
    """
    Raise the WaterCrawl error matching a failed HTTP response.

    Args:
        response: The failed response
        action: Short description of the attempted operation

    Raises:
        WaterCrawlError: Always, typed by status code
    """
    status_code = response.status_code
    message = _extract_error_message(response)
    error_class = _STATUS_ERRORS.get(status_code)
    if error_class is None:
        error_class = InternalServerError if status_code >= 500 else WaterCrawlError

    raise error_class(
        f"Failed to {action}. Status code {status_code}. Error: {message}",
        status_code=status_code,
        response=response,
    )


def handle_watercrawl_error(
    error: WaterCrawlError,
    context: str | dict[str, Any] | None = None
) -> ToolError:
    """
    Convert WaterCrawl errors to FastMCP ToolError with context.

    Args:
        error: The original WaterCrawl error
        context: Additional context string or mapping

    Returns:
        ToolError: FastMCP-compatible error with enhanced information
    """
    message = str(error)
    if isinstance(context, dict) and context:
        context = ", ".join(f"{k}={v}" for k, v in context.items())
    if context:
        message = f"{message} (Context: {context})"

    error_type_messages = {
        BadRequestError: "Invalid request parameters",
        UnauthorizedError: "Authentication failed - check API key",
        PaymentRequiredError: "Payment required - check account credits",
        NotFoundError: "Requested resource was not found",
        RequestTimeoutError: "Request timed out - try again later",
        RateLimitError: "Rate limit exceeded - please wait before retrying",
        InternalServerError: "Internal server error occurred",
    }

    error_prefix = error_type_messages.get(type(error), "WaterCrawl API error")
    enhanced_message = f"{error_prefix}: {message}"

    logger.error(f"Converted WaterCrawl error: {type(error).__name__} -> ToolError")
    return ToolError(enhanced_message)


def create_tool_error(message: str, details: dict[str, Any] | None = None) -> ToolError:
    """
    Create a ToolError with optional details in the message.

    Args:
        message: Error message
        details: Optional details to include in message

    Returns:
        ToolError: FastMCP-compatible error
    """
    if details:
        detail_str = ", ".join(f"{k}={v}" for k, v in details.items())
        enhanced_message = f"{message} (Details: {detail_str})"
    else:
        enhanced_message = message

    return ToolError(enhanced_message)


def mcp_log_error(error: Exception, context: dict[str, Any] | None = None) -> None:
    """
    Log an error with context information.

    ToolErrors are expected, caller-facing failures and are logged as warnings;
    everything else is logged with its traceback.
    """
    context = context or {}

    log_message = f"{type(error).__name__}: {error}"
    if context:
        context_info = ", ".join(f"{k}={v}" for k, v in context.items())
        log_message = f"{log_message} (Context: {context_info})"

    if isinstance(error, ToolError):
        logger.warning(log_message)
    else:
        logger.error(log_message, exc_info=True)
