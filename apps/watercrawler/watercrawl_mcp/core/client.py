"""
FastMCP-compatible WaterCrawl client utilities.

This module provides the WaterCrawl API client used by every tool, the
server-sent event source consumed by the monitor engine, and the
per-request credential resolution that binds a client to the calling user.
"""

import asyncio
import json
import logging
import os
from collections.abc import Callable, Iterator
from typing import Any

import requests
from fastmcp.exceptions import ToolError
from fastmcp.server.dependencies import get_http_headers, get_http_request

from ..services.models import JobEvent, ResultEvent, StateEvent, parse_job_event
from .config import get_base_url, get_env_float, get_env_int
from .exceptions import WaterCrawlError, handle_response_error
from .http_client import HttpClient

logger = logging.getLogger(__name__)

CRAWL_REQUESTS_ENDPOINT = "/api/v1/core/crawl-requests/"
SEARCH_REQUESTS_ENDPOINT = "/api/v1/core/search/"
SITEMAP_REQUESTS_ENDPOINT = "/api/v1/core/sitemaps/"


class ServerSentEventSource:
    """
    One pass over a WaterCrawl ``text/event-stream`` status feed.

    The HTTP request is only issued on the first pull. Each ``data:`` block is
    decoded as JSON and parsed into a JobEvent. Blocking reads run in a worker
    thread so the event loop keeps serving other requests.
    """

    def __init__(self, open_stream: Callable[[], requests.Response], action: str):
        self._open_stream = open_stream
        self._action = action
        self._response: requests.Response | None = None
        self._lines: Iterator[str | bytes] | None = None
        self._closed = False

    def _start(self) -> None:
        response = self._open_stream()
        if response.status_code != 200:
            try:
                handle_response_error(response, self._action)
            finally:
                response.close()
        self._response = response
        # Event streams are UTF-8 whatever charset requests guesses
        self._lines = response.iter_lines()

    def read_next(self) -> JobEvent | None:
        """Blocking pull of the next event; None when the stream is exhausted."""
        if self._closed:
            return None
        if self._lines is None:
            self._start()

        data_lines: list[str] = []
        for raw_line in self._lines:
            line = raw_line.decode("utf-8") if isinstance(raw_line, bytes) else raw_line

            if not line:
                if data_lines:
                    return self._decode(data_lines)
                continue
            if line.startswith(":"):
                continue

            field, _, value = line.partition(":")
            if field == "data":
                data_lines.append(value[1:] if value.startswith(" ") else value)

        if data_lines:
            return self._decode(data_lines)
        return None

    def _decode(self, data_lines: list[str]) -> JobEvent:
        raw = "\n".join(data_lines)
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise WaterCrawlError(f"Malformed event while trying to {self._action}: {raw[:200]}") from e
        try:
            return parse_job_event(payload)
        except ValueError as e:
            raise WaterCrawlError(f"Malformed event while trying to {self._action}: {e}") from e

    async def next_event(self) -> JobEvent | None:
        return await asyncio.to_thread(self.read_next)

    def close(self) -> None:
        self._closed = True
        if self._response is not None:
            self._response.close()
            self._response = None

    async def aclose(self) -> None:
        self.close()

    def __iter__(self) -> Iterator[JobEvent]:
        try:
            while (event := self.read_next()) is not None:
                yield event
        finally:
            self.close()


class WaterCrawlClient:
    """WaterCrawl REST client covering crawl, scrape, search and sitemap requests."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
    ):
        self.http = HttpClient(
            api_key=api_key,
            api_url=base_url or get_base_url(),
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
        )

    @property
    def base_url(self) -> str:
        return self.http.api_url

    @staticmethod
    def _process_response(response: requests.Response, action: str) -> Any:
        if response.status_code == 204:
            return None
        if response.status_code not in (200, 201, 202):
            handle_response_error(response, action)
        if not response.content:
            return None
        return response.json()

    # Crawl requests

    def get_crawl_requests_list(self, page: int = 1, page_size: int = 10) -> dict[str, Any]:
        response = self.http.get(CRAWL_REQUESTS_ENDPOINT, params={"page": page, "page_size": page_size})
        return self._process_response(response, "list crawl requests")

    def get_crawl_request(self, item_id: str) -> dict[str, Any]:
        response = self.http.get(f"{CRAWL_REQUESTS_ENDPOINT}{item_id}/")
        return self._process_response(response, "get crawl request")

    def create_crawl_request(
        self,
        url: str | list[str],
        spider_options: dict[str, Any] | None = None,
        page_options: dict[str, Any] | None = None,
        plugin_options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        data = {
            "url": url,
            "options": {
                "spider_options": spider_options or {},
                "page_options": page_options or {},
                "plugin_options": plugin_options or {},
            },
        }
        response = self.http.post(CRAWL_REQUESTS_ENDPOINT, data)
        return self._process_response(response, "create crawl request")

    def stop_crawl_request(self, item_id: str) -> None:
        response = self.http.delete(f"{CRAWL_REQUESTS_ENDPOINT}{item_id}/")
        self._process_response(response, "stop crawl request")

    def get_crawl_request_results(
        self,
        item_id: str,
        page: int = 1,
        page_size: int = 10,
        download: bool = True,
    ) -> dict[str, Any]:
        response = self.http.get(
            f"{CRAWL_REQUESTS_ENDPOINT}{item_id}/results/",
            params={"page": page, "page_size": page_size, "prefetched": _flag(download)},
        )
        return self._process_response(response, "get crawl request results")

    def open_crawl_events(self, item_id: str, download: bool = True) -> ServerSentEventSource:
        return ServerSentEventSource(
            lambda: self.http.stream(
                f"{CRAWL_REQUESTS_ENDPOINT}{item_id}/status/",
                params={"prefetched": _flag(download)},
            ),
            "monitor crawl request",
        )

    def scrape_url(
        self,
        url: str,
        page_options: dict[str, Any] | None = None,
        plugin_options: dict[str, Any] | None = None,
        sync: bool = True,
        download: bool = True,
    ) -> dict[str, Any] | None:
        """
        Scrape a single page through a one-page crawl request.

        With ``sync`` the crawl's event stream is followed until the page
        result arrives; otherwise the created crawl request is returned.
        """
        request = self.create_crawl_request(
            url,
            spider_options={"max_depth": 1, "page_limit": 1},
            page_options=page_options,
            plugin_options=plugin_options,
        )
        if not sync:
            return request

        request_id = request["uuid"]
        for event in self.open_crawl_events(request_id, download):
            if isinstance(event, ResultEvent):
                return event.data
            if isinstance(event, StateEvent) and event.is_terminal:
                break

        # The stream may end before a result event is pushed; fall back to the listing
        results = self.get_crawl_request_results(request_id, page=1, page_size=1, download=download)
        items = (results or {}).get("results") or []
        return items[0] if items else None

    # Search requests

    def get_search_requests_list(self, page: int = 1, page_size: int = 10) -> dict[str, Any]:
        response = self.http.get(SEARCH_REQUESTS_ENDPOINT, params={"page": page, "page_size": page_size})
        return self._process_response(response, "list search requests")

    def get_search_request(self, item_id: str, download: bool = True) -> dict[str, Any]:
        response = self.http.get(
            f"{SEARCH_REQUESTS_ENDPOINT}{item_id}/",
            params={"prefetched": _flag(download)},
        )
        return self._process_response(response, "get search request")

    def create_search_request(
        self,
        query: str,
        search_options: dict[str, Any] | None = None,
        result_limit: int = 5,
        sync: bool = True,
        download: bool = True,
    ) -> dict[str, Any]:
        data = {
            "query": query,
            "search_options": search_options or {},
            "result_limit": result_limit,
        }
        response = self.http.post(SEARCH_REQUESTS_ENDPOINT, data)
        request = self._process_response(response, "create search request")
        if not sync:
            return request

        state = request
        for event in self.open_search_events(request["uuid"], download):
            if isinstance(event, StateEvent):
                state = event.data
                if event.is_terminal:
                    break
        return state

    def stop_search_request(self, item_id: str) -> None:
        response = self.http.delete(f"{SEARCH_REQUESTS_ENDPOINT}{item_id}/")
        self._process_response(response, "stop search request")

    def open_search_events(self, item_id: str, download: bool = True) -> ServerSentEventSource:
        return ServerSentEventSource(
            lambda: self.http.stream(
                f"{SEARCH_REQUESTS_ENDPOINT}{item_id}/status/",
                params={"prefetched": _flag(download)},
            ),
            "monitor search request",
        )

    # Sitemap requests

    def create_sitemap_request(
        self,
        url: str,
        options: dict[str, Any] | None = None,
        sync: bool = True,
        download: bool = False,
    ) -> Any:
        """
        Create a sitemap request.

        With ``sync`` the request is followed to completion. ``download`` then
        returns the full list of discovered links instead of the request
        payload, which holds a link to the generated sitemap file.
        """
        response = self.http.post(SITEMAP_REQUESTS_ENDPOINT, {"url": url, "options": options or {}})
        request = self._process_response(response, "create sitemap request")
        if not sync:
            return request

        state = request
        events = ServerSentEventSource(
            lambda: self.http.stream(f"{SITEMAP_REQUESTS_ENDPOINT}{request['uuid']}/status/"),
            "monitor sitemap request",
        )
        for event in events:
            if isinstance(event, StateEvent):
                state = event.data
                if event.is_terminal:
                    break

        if download and isinstance(state, dict) and state.get("status") == "finished":
            return self.get_sitemap_results(request["uuid"])
        return state

    def get_sitemap_results(self, item_id: str) -> Any:
        response = self.http.get(f"{SITEMAP_REQUESTS_ENDPOINT}{item_id}/json/")
        return self._process_response(response, "get sitemap results")


def _flag(value: bool) -> str:
    return "true" if value else "false"


def resolve_api_key() -> str | None:
    """
    Resolve the calling user's WaterCrawl API key.

    Order: ``Authorization: Bearer`` header of the current HTTP request, the
    ``apikey`` query parameter, then WATERCRAWL_API_KEY. Outside an HTTP
    request (stdio transport) only the environment is consulted.
    """
    headers = get_http_headers(include_all=True)
    authorization = next(
        (value for name, value in headers.items() if name.lower() == "authorization"),
        "",
    )
    if authorization.lower().startswith("bearer "):
        token = authorization[len("bearer "):].strip()
        if token:
            return token

    try:
        request = get_http_request()
    except RuntimeError:
        request = None
    if request is not None:
        query_key = request.query_params.get("apikey")
        if query_key:
            return query_key

    return os.getenv("WATERCRAWL_API_KEY") or None


def get_watercrawl_client(api_key: str | None = None) -> WaterCrawlClient:
    """
    Create a WaterCrawl client bound to the caller's credential.

    A new client is created for every call; nothing is cached between
    requests, so different callers never share a credential.

    Returns:
        WaterCrawlClient: Configured WaterCrawl client

    Raises:
        ToolError: If no API key is available or the configuration is invalid
    """
    api_key = api_key or resolve_api_key()
    if not api_key:
        raise ToolError(
            "WaterCrawl API key is missing. Send it as 'Authorization: Bearer <key>', "
            "as the 'apikey' query parameter, or set WATERCRAWL_API_KEY."
        )

    timeout = get_env_float("WATERCRAWL_TIMEOUT", 0.0) or None
    max_retries = get_env_int("WATERCRAWL_MAX_RETRIES", 3)
    backoff_factor = get_env_float("WATERCRAWL_BACKOFF_FACTOR", 0.5)

    try:
        client = WaterCrawlClient(
            api_key=api_key,
            base_url=get_base_url(),
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
        )
    except ValueError as e:
        error_msg = f"Failed to create WaterCrawl client: {e}"
        logger.error(error_msg)
        raise ToolError(error_msg) from e

    logger.debug(f"Created WaterCrawl client for {client.base_url}")
    return client


def get_client_status(client: WaterCrawlClient | None = None) -> dict[str, Any]:
    """
    Check connectivity to the WaterCrawl API with the caller's credential.

    Returns:
        Dict containing connection status and configuration info
    """
    client = client or get_watercrawl_client()
    connection_test = "failed"
    try:
        client.get_crawl_requests_list(page=1, page_size=1)
        connection_test = "passed"
        logger.debug("WaterCrawl health check passed via crawl request listing")
    except (WaterCrawlError, requests.RequestException) as e:
        connection_test = f"failed: {e}"
        logger.warning(f"WaterCrawl health check failed: {e}")

    return {
        "status": "connected" if connection_test == "passed" else "error",
        "base_url": client.base_url,
        "api_key_configured": bool(os.getenv("WATERCRAWL_API_KEY")),
        "connection_test": connection_test,
    }
