"""
Simplified option types for MCP tool signatures.

Flat TypedDicts keep the generated tool schemas small while matching the
option objects the WaterCrawl API accepts.
"""

from typing import Any, Literal

from typing_extensions import TypedDict


class PageAction(TypedDict):
    """A post-load action on the page."""
    type: Literal["pdf", "screenshot"]


class PageOptions(TypedDict, total=False):
    """Per-page scraping options."""
    exclude_tags: list[str]
    include_tags: list[str]
    wait_time: int
    only_main_content: bool
    include_html: bool
    include_links: bool
    timeout: int
    accept_cookies_selector: str
    locale: str
    extra_headers: dict[str, str]
    actions: list[PageAction]


class SpiderOptions(TypedDict, total=False):
    """Crawl scope options."""
    max_depth: int
    page_limit: int
    allowed_domains: list[str]
    exclude_paths: list[str]
    include_paths: list[str]


class SearchOptions(TypedDict, total=False):
    """Search configuration options."""
    language: str | None
    country: str | None
    time_range: Literal["any", "hour", "day", "week", "month", "year"]
    search_type: Literal["web"]
    depth: Literal["basic", "advanced", "ultimate"]


def to_api_options(options: Any) -> dict[str, Any]:
    """Drop unset values so the API applies its own defaults."""
    if not options:
        return {}
    return {key: value for key, value in dict(options).items() if value is not None}
