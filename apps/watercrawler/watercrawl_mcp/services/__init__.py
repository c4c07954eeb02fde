"""
Services package for the WaterCrawl MCP server.

Holds the job event models, the request monitor engine, and small helpers
shared by the tools.
"""

from .base import truncate_text, validate_url
from .models import (
    TERMINAL_STATUSES,
    JobEvent,
    JobKind,
    MonitorOptions,
    MonitorReport,
    MonitorStatus,
    ResultEvent,
    StateEvent,
    parse_job_event,
)
from .monitor import (
    MONITOR_POLICIES,
    MonitorConfigurationError,
    MonitorEngine,
    MonitorPolicy,
    crawl_should_stop,
    search_should_stop,
)

__all__ = [
    "MONITOR_POLICIES",
    "TERMINAL_STATUSES",
    "JobEvent",
    "JobKind",
    "MonitorConfigurationError",
    "MonitorEngine",
    "MonitorOptions",
    "MonitorPolicy",
    "MonitorReport",
    "MonitorStatus",
    "ResultEvent",
    "StateEvent",
    "crawl_should_stop",
    "parse_job_event",
    "search_should_stop",
    "truncate_text",
    "validate_url",
]
