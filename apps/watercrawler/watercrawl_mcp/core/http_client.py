"""
HTTP client utilities for the WaterCrawl API.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin, urlparse, urlunparse

import requests

from .. import __version__

logger = logging.getLogger(__name__)


class HttpClient:
    """HTTP client with retry logic and error handling."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        timeout: Optional[float] = None,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
    ):
        self.api_key = api_key
        self.api_url = self._normalize_base_url(api_url)
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_factor = backoff_factor

    @staticmethod
    def _normalize_base_url(api_url: str) -> str:
        """Ensure the base API URL includes a scheme and host."""
        if not api_url:
            raise ValueError("API URL cannot be empty")

        parsed = urlparse(api_url)

        if parsed.scheme and parsed.netloc:
            return api_url.rstrip('/')

        # Protocol-relative URLs (e.g. //app.example.com)
        if api_url.startswith('//'):
            return f"https:{api_url}".rstrip('/')

        if api_url.startswith('/'):
            raise ValueError(
                f"Invalid API URL '{api_url}': expected hostname, got relative path"
            )

        # Bare hosts such as "localhost:8000" or "app.example.com/api";
        # urlparse reads "localhost:8000" as a scheme, so work from the raw string
        host, path = api_url, ''
        if '/' in api_url:
            host, remainder = api_url.split('/', 1)
            path = f"/{remainder}"
        if not host:
            raise ValueError(f"Invalid API URL '{api_url}': missing hostname")

        scheme = 'http' if host.startswith(('localhost', '127.', '0.0.0.0')) else 'https'
        return urlunparse((scheme, host, path, '', '', '')).rstrip('/')

    def _build_url(self, endpoint: str) -> str:
        base = urlparse(self.api_url)
        ep = urlparse(endpoint)

        # Absolute endpoints keep their path but never leave the configured host
        if ep.netloc:
            return urlunparse((base.scheme or "https", base.netloc, ep.path or "/", "", ep.query, ""))

        base_str = self.api_url if self.api_url.endswith("/") else f"{self.api_url}/"
        return urljoin(base_str, endpoint.lstrip("/"))

    def _prepare_headers(self, accept: str = "application/json") -> Dict[str, str]:
        """Prepare headers for API requests."""
        return {
            'Content-Type': 'application/json',
            'Accept': accept,
            'Authorization': f'Bearer {self.api_key}',
            'User-Agent': f'watercrawl-mcp/{__version__}',
        }

    def _request(self, send: Callable[[], requests.Response], method: str, url: str) -> requests.Response:
        """Run a request, retrying connection failures and 502 responses."""
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                response = send()

                if response.status_code == 502 and attempt < self.max_retries - 1:
                    logger.debug(f"{method} {url} returned 502, retrying (attempt {attempt + 1})")
                    time.sleep(self.backoff_factor * (2 ** attempt))
                    continue

                return response

            except requests.RequestException as e:
                last_exception = e
                if attempt == self.max_retries - 1:
                    raise
                logger.debug(f"{method} {url} failed: {e}, retrying (attempt {attempt + 1})")
                time.sleep(self.backoff_factor * (2 ** attempt))

        raise last_exception or requests.RequestException(f"Unexpected error in {method} request")

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Make a GET request with retry logic."""
        url = self._build_url(endpoint)
        headers = self._prepare_headers()
        return self._request(
            lambda: requests.get(url, headers=headers, params=params, timeout=self.timeout),
            "GET",
            url,
        )

    def post(self, endpoint: str, data: Dict[str, Any]) -> requests.Response:
        """Make a POST request with retry logic."""
        url = self._build_url(endpoint)
        headers = self._prepare_headers()
        return self._request(
            lambda: requests.post(url, headers=headers, json=data, timeout=self.timeout),
            "POST",
            url,
        )

    def delete(self, endpoint: str) -> requests.Response:
        """Make a DELETE request with retry logic."""
        url = self._build_url(endpoint)
        headers = self._prepare_headers()
        return self._request(
            lambda: requests.delete(url, headers=headers, timeout=self.timeout),
            "DELETE",
            url,
        )

    def stream(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Open a streamed GET request for a server-sent event feed."""
        url = self._build_url(endpoint)
        headers = self._prepare_headers(accept="text/event-stream")
        return self._request(
            lambda: requests.get(url, headers=headers, params=params, stream=True, timeout=self.timeout),
            "STREAM",
            url,
        )
