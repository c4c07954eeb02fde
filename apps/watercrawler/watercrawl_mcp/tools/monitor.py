"""
Request monitoring tool for the WaterCrawl MCP server.

This module exposes the monitor engine as the ``monitor-request`` tool: it
follows a crawl or search request's event stream in real time and returns
every event collected until the request finishes or the timeout elapses.
"""

import logging
from typing import Annotated, Any, Literal

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from ..core.client import get_watercrawl_client
from ..core.config import get_default_monitor_timeout
from ..core.exceptions import WaterCrawlError, handle_watercrawl_error
from ..services.models import JobEvent, MonitorOptions, MonitorStatus
from ..services.monitor import MonitorConfigurationError, MonitorEngine

logger = logging.getLogger(__name__)


def register_monitor_tools(mcp: FastMCP) -> None:
    """Register the monitor-request tool with the FastMCP server."""

    @mcp.tool(
        name="monitor-request",
        description="Monitor a crawl or search request in real-time, with timeout control. "
                    "Returns the events collected until the request finishes or the timeout elapses.",
        annotations={
            "title": "Request Monitor",
            "readOnlyHint": True,       # Only reads request progress
            "destructiveHint": False,
            "openWorldHint": True,      # Talks to the WaterCrawl API
            "idempotentHint": False     # Event streams advance over time
        }
    )
    async def monitor_request(
        ctx: Context,
        type: Annotated[Literal["crawl", "search"], Field(
            description="Type of request to monitor"
        )],
        requestId: Annotated[str, Field(
            description="UUID of the request to monitor",
            min_length=1
        )],
        download: Annotated[bool, Field(
            description="Download content while monitoring"
        )] = True,
        timeoutSeconds: Annotated[float | None, Field(
            description="Maximum time to monitor in seconds (default 30)",
            gt=0
        )] = None
    ) -> dict[str, Any]:
        """
        Monitor a crawl or search request until it finishes or the timeout elapses.

        Returns:
            dict[str, Any]: {"status": "completed" | "timeout", "events": [...]},
                with a "message" when monitoring timed out

        Raises:
            ToolError: If the arguments are invalid or the WaterCrawl API fails
        """
        timeout_seconds = timeoutSeconds if timeoutSeconds is not None else get_default_monitor_timeout()
        await ctx.info(f"Monitoring {type} request {requestId} for up to {timeout_seconds:g}s")

        async def report_event(event: JobEvent, count: int) -> None:
            await ctx.report_progress(progress=count)
            await ctx.debug(f"Received {event.type} event #{count} for {requestId}")

        try:
            engine = MonitorEngine(get_watercrawl_client())
            report = await engine.monitor(
                type,
                requestId,
                MonitorOptions(download=download, timeout_seconds=timeout_seconds),
                on_event=report_event,
            )

            if report.status is MonitorStatus.TIMEOUT:
                await ctx.warning(f"{report.message} ({len(report.events)} events collected)")
            else:
                await ctx.info(f"Monitoring completed with {len(report.events)} events")

            return report.to_dict()

        except MonitorConfigurationError as e:
            raise ToolError(f"Invalid monitor arguments: {e}") from e

        except WaterCrawlError as e:
            mcp_error = handle_watercrawl_error(e, {"tool": "monitor-request", "request_id": requestId})
            await ctx.error(f"WaterCrawl API error while monitoring: {mcp_error}")
            raise mcp_error from e

        except ToolError:
            raise

        except Exception as e:
            error_msg = f"Unexpected error while monitoring {type} request {requestId}: {e}"
            await ctx.error(error_msg)
            raise ToolError(error_msg) from e


__all__ = ["register_monitor_tools"]
