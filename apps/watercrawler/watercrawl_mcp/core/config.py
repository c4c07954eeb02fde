"""
FastMCP-compatible environment utilities.

This module provides simple environment variable access following FastMCP patterns.
All WaterCrawl settings are read from the process environment (optionally seeded
from a .env file by the server module).
"""

import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://app.watercrawl.dev"
DEFAULT_MONITOR_TIMEOUT = 30


def get_env_bool(key: str, default: bool = False) -> bool:
    """
    Parse a boolean environment variable.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Boolean value from environment or default
    """
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on", "enabled")


def get_env_int(key: str, default: int) -> int:
    """
    Parse an integer environment variable with fallback.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid

    Returns:
        Integer value from environment or default
    """
    value = os.getenv(key)
    if value is None:
        return default

    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid {key} value: {value}, using default: {default}")
        return default


def get_env_float(key: str, default: float) -> float:
    """
    Parse a float environment variable with fallback.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid

    Returns:
        Float value from environment or default
    """
    value = os.getenv(key)
    if value is None:
        return default

    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid {key} value: {value}, using default: {default}")
        return default


def get_base_url() -> str:
    """Return the configured WaterCrawl API base URL."""
    return os.getenv("WATERCRAWL_BASE_URL") or DEFAULT_BASE_URL


def get_default_monitor_timeout() -> int:
    """Default wall-clock budget for monitor-request, in seconds."""
    return get_env_int("WATERCRAWL_MONITOR_TIMEOUT", DEFAULT_MONITOR_TIMEOUT)


def get_server_info() -> dict[str, Any]:
    """
    Get basic server information from environment.

    Returns:
        Dict with server name, version, and configuration status
    """
    from .. import __version__

    return {
        "server_name": os.getenv("MCP_SERVER_NAME", "WaterCrawl MCP Server"),
        "server_version": __version__,
        "base_url": get_base_url(),
        "api_key_configured": bool(os.getenv("WATERCRAWL_API_KEY")),
        "transport": os.getenv("WATERCRAWLER_TRANSPORT", "stdio"),
        "monitor_timeout": get_default_monitor_timeout(),
        "debug_mode": get_env_bool("DEBUG_MODE"),
    }


def validate_environment(transport: str | None = None) -> dict[str, Any]:
    """
    Validate essential environment configuration.

    The stdio transport serves a single local user, so the API key has to come
    from the environment. HTTP/SSE transports receive it with every request.

    Args:
        transport: Transport to validate for (defaults to WATERCRAWLER_TRANSPORT)

    Returns:
        Dict containing validation results and recommendations
    """
    transport = transport or os.getenv("WATERCRAWLER_TRANSPORT", "stdio")
    issues = []
    recommendations = []

    if not os.getenv("WATERCRAWL_BASE_URL"):
        recommendations.append(
            f"WATERCRAWL_BASE_URL is not set, falling back to {DEFAULT_BASE_URL}"
        )

    if transport == "stdio":
        if not os.getenv("WATERCRAWL_API_KEY"):
            issues.append("WATERCRAWL_API_KEY is required for the stdio transport")
            recommendations.append("Set WATERCRAWL_API_KEY or pass --api-key")
    elif os.getenv("WATERCRAWL_API_KEY"):
        recommendations.append(
            f"WATERCRAWL_API_KEY is only used as a fallback for the {transport} transport; "
            "clients should send their own key"
        )

    if get_default_monitor_timeout() <= 0:
        issues.append("WATERCRAWL_MONITOR_TIMEOUT must be a positive number of seconds")

    return {
        "valid": len(issues) == 0,
        "issues": issues,
        "recommendations": recommendations,
        "server_info": get_server_info()
    }
