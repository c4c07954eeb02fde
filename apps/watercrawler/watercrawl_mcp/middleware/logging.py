"""
Request/response logging middleware for the WaterCrawl MCP server.

Each MCP message is logged on entry and exit with a correlation id and its
duration. Credentials found in arguments (API keys, tokens, authorization
headers) are masked before anything is written.
"""

import json
import logging
import logging.handlers
import time
import traceback
from pathlib import Path
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from ..services.base import truncate_text

logger = logging.getLogger(__name__)

SENSITIVE_PATTERNS = frozenset({
    "api_key", "apikey", "token", "password", "secret", "authorization", "watercrawl_api_key"
})


def mask_value(value: str) -> str:
    """Mask a sensitive value, keeping its first and last four characters when long enough."""
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"


def mask_sensitive_dict(data: dict[str, Any], patterns: frozenset[str] = SENSITIVE_PATTERNS) -> dict[str, Any]:
    """Return a copy of ``data`` with values of sensitive keys masked, recursing into dicts and lists."""
    if not isinstance(data, dict):
        return data

    masked: dict[str, Any] = {}
    for key, value in data.items():
        key_lower = str(key).lower()

        if any(pattern in key_lower for pattern in patterns):
            masked[key] = mask_value(str(value)) if value else value
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_dict(value, patterns)
        elif isinstance(value, list):
            masked[key] = [
                mask_sensitive_dict(item, patterns) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            masked[key] = value

    return masked


class LoggingMiddleware(Middleware):
    """
    Human-readable logging middleware with optional payload logging.

    Messages go to the standard ``logging`` tree, to the client through the
    FastMCP context, and optionally to a rotating log file.
    """

    def __init__(
        self,
        logger_name: str | None = None,
        include_payloads: bool = False,
        max_payload_length: int = 1000,
        log_file: str | None = None,
        max_file_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        log_errors_only: bool = False,
        mask_sensitive_data: bool = True
    ):
        """
        Initialize logging middleware.

        Args:
            logger_name: Custom logger name
            include_payloads: Whether to include request/response payloads
            max_payload_length: Maximum payload length to log
            log_file: Path to log file for file logging
            max_file_size: Maximum log file size before rotation
            backup_count: Number of backup files to keep
            log_errors_only: Whether to log only errors
            mask_sensitive_data: Whether to mask sensitive data in logs
        """
        self.logger = logging.getLogger(logger_name or f"{__name__}.request_logger")
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length
        self.log_errors_only = log_errors_only
        self.mask_sensitive_data = mask_sensitive_data

        self.file_handler: logging.Handler | None = None
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            self.file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding="utf-8"
            )
            self.file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(self.file_handler)

    async def on_message(self, context: MiddlewareContext, call_next):
        start_time = time.perf_counter()
        request_id = self._generate_request_id(context)

        if not self.log_errors_only:
            await self._log_request(context, request_id)

        try:
            result = await call_next(context)
        except Exception as error:
            duration_ms = (time.perf_counter() - start_time) * 1000
            await self._log_error(context, error, request_id, duration_ms)
            raise

        if not self.log_errors_only:
            duration_ms = (time.perf_counter() - start_time) * 1000
            await self._log_response(context, result, request_id, duration_ms)

        return result

    def _generate_request_id(self, context: MiddlewareContext) -> str:
        """Generate a request ID for correlating request and response lines."""
        timestamp = int(time.time() * 1000)
        method_hash = hash(context.method) % 10000
        return f"req_{timestamp}_{method_hash:04d}"

    async def _log_request(self, context: MiddlewareContext, request_id: str) -> None:
        message_parts = [f"[{request_id}]", f"REQUEST {context.method}", f"from {context.source}"]
        tool_name = getattr(context.message, "name", None)
        if tool_name:
            message_parts.append(f"tool={tool_name}")

        log_message = " ".join(message_parts)

        if self.include_payloads:
            payload = self._format_payload(getattr(context.message, "arguments", None))
            if payload:
                log_message += f"\nPayload: {payload}"

        await self._write_log(context, log_message, level="info")

    async def _log_response(
        self,
        context: MiddlewareContext,
        result: Any,
        request_id: str,
        duration_ms: float
    ) -> None:
        log_message = f"[{request_id}] RESPONSE {context.method} SUCCESS in {duration_ms:.2f}ms"

        if self.include_payloads and result is not None:
            payload = self._format_payload(result)
            if payload:
                log_message += f"\nResponse: {payload}"

        await self._write_log(context, log_message, level="info")

    async def _log_error(
        self,
        context: MiddlewareContext,
        error: Exception,
        request_id: str,
        duration_ms: float
    ) -> None:
        log_message = (
            f"[{request_id}] ERROR {context.method} "
            f"{type(error).__name__}: {error!s} after {duration_ms:.2f}ms"
        )
        # Tracebacks stay server side
        self.logger.debug(traceback.format_exc())
        await self._write_log(context, log_message, level="error")

    def _format_payload(self, payload: Any) -> str | None:
        """Format a payload for logging with length limits."""
        if payload is None:
            return None

        if isinstance(payload, dict):
            payload_dict = payload
        elif hasattr(payload, "__dict__"):
            payload_dict = vars(payload)
        else:
            payload_dict = {"data": str(payload)}

        if self.mask_sensitive_data:
            payload_dict = mask_sensitive_dict(payload_dict)

        payload_str = json.dumps(payload_dict, indent=2, default=str)
        if len(payload_str) > self.max_payload_length:
            total = len(payload_str)
            payload_str = truncate_text(payload_str, self.max_payload_length, suffix="") + \
                f"... [truncated, total length: {total}]"
        return payload_str

    async def _write_log(self, context: MiddlewareContext, message: str, level: str = "info") -> None:
        """Write a log line to the server logger and, for tool calls, to the client."""
        getattr(self.logger, level)(message)

        if context.fastmcp_context and context.method == "tools/call":
            await getattr(context.fastmcp_context, level)(message)

    def close(self) -> None:
        if self.file_handler:
            self.logger.removeHandler(self.file_handler)
            self.file_handler.close()
            self.file_handler = None


__all__ = ["LoggingMiddleware", "mask_sensitive_dict", "mask_value"]
