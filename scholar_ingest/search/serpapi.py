"""
SerpApi Google Scholar client.

Wraps the google_scholar engine of https://serpapi.com/search.json and
returns deserialized SearchResponse objects. Every transport-level problem
(network failure, non-2xx status, undecodable body, API-reported error) is
raised as TransportError so callers can treat it as "no results".
"""

import logging
import re
from typing import Any, Optional

import httpx

from scholar_ingest.config import DEMO_API_KEY, config
from scholar_ingest.models import SearchResponse

logger = logging.getLogger(__name__)

ENGINE = "google_scholar"


class TransportError(Exception):
    """Raised when the search API is unreachable or answers unsuccessfully."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def mask_api_key(text: str) -> str:
    """Hide api_key values in URLs before logging them."""
    return re.sub(r"api_key=[^&\s]*", "api_key=***", text)


class SerpApiClient:
    """
    Search collaborator backed by SerpApi.

    Usage:
        with SerpApiClient() as client:
            response = client.search_by_author("JL Harper", 10)
            for result in response.results:
                print(result.title)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: SerpApi key (default: config.SERP_API_KEY)
            base_url: Search endpoint (default: config.SERPAPI_BASE_URL)
            timeout: Request timeout in seconds (default: config.SEARCH_TIMEOUT)
            transport: Custom httpx transport, mainly for tests
        """
        self.api_key = api_key if api_key is not None else config.SERP_API_KEY
        self.base_url = base_url or config.SERPAPI_BASE_URL
        self.timeout = timeout if timeout is not None else config.SEARCH_TIMEOUT
        self._client = httpx.Client(
            timeout=self.timeout,
            transport=transport,
            headers={"User-Agent": "scholar-ingest/1.0"},
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        self._client.close()

    def is_configured(self) -> bool:
        """True when a real API key is available."""
        return bool(self.api_key) and self.api_key != DEMO_API_KEY

    # ==========================================================================
    # Searches
    # ==========================================================================

    def search_by_author(self, name: str, max_results: int) -> SearchResponse:
        """Articles authored by `name`, grouped into matching author profiles."""
        name = _require(name, "Author name")
        logger.info(f"Searching articles by author: {name}")
        data = self._request({"q": f'author:"{name}"', "num": _page_size(max_results)})
        return SearchResponse.from_json(data, query=name)

    def search_articles(self, query: str, max_results: int) -> SearchResponse:
        """Free-text article search."""
        query = _require(query, "Search query")
        logger.info(f"Searching articles with query: {query}")
        data = self._request({"q": query, "num": _page_size(max_results)})
        return SearchResponse.from_json(data, query=query)

    def search_citing_articles(self, citing_set_id: str, max_results: int) -> SearchResponse:
        """Articles citing the article identified by `citing_set_id`."""
        citing_set_id = _require(citing_set_id, "Citation id")
        logger.info(f"Searching citing articles for id: {citing_set_id}")
        data = self._request({"cites": citing_set_id, "num": _page_size(max_results)})
        return SearchResponse.from_json(data)

    def search_page(self, query: str, start: int, page_size: int) -> SearchResponse:
        """One page of a free-text search, starting at result offset `start`."""
        query = _require(query, "Search query")
        if start < 0:
            raise ValueError("start must be >= 0")
        logger.info(f"Paginated search - query: {query}, start: {start}, size: {page_size}")
        data = self._request({"q": query, "start": start, "num": _page_size(page_size)})
        return SearchResponse.from_json(data, query=query)

    def test_connection(self) -> bool:
        """Issue a one-result query and report whether the API answered successfully."""
        try:
            response = self.search_articles("test", 1)
            return response.status == "Success"
        except TransportError as e:
            logger.warning(f"Connection test failed: {e}")
            return False

    # ==========================================================================
    # Transport
    # ==========================================================================

    def _request(self, params: dict[str, Any]) -> dict[str, Any]:
        """
        Execute one search request.

        Raises:
            TransportError: On network failure, non-2xx status, invalid JSON
                            or an API-reported error
        """
        query = {"engine": ENGINE, **params, "api_key": self.api_key or ""}

        try:
            response = self._client.get(self.base_url, params=query)
        except httpx.HTTPError as e:
            raise TransportError(f"Search request failed: {mask_api_key(str(e))}") from e

        logger.debug(f"GET {mask_api_key(str(response.url))} -> {response.status_code}")

        if not response.is_success:
            raise TransportError(
                f"Search API returned status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"Search API returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise TransportError("Search API returned an unexpected body")

        if data.get("error"):
            raise TransportError(f"Search API error: {data['error']}", status_code=response.status_code)

        return data


def _require(value: str, label: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{label} cannot be empty")
    return value.strip()


def _page_size(max_results: int) -> int:
    """Clamp a requested result count to what one request can return."""
    return max(1, min(int(max_results), config.MAX_RESULTS_PER_REQUEST))
