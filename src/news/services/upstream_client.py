"""
Upstream News Client
One HTTP call per (categories, date window, language) against the news provider.
Responses are decoded into normalized Article models.
"""

from datetime import timedelta
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import structlog
from pydantic import ValidationError

from ...exceptions import DeserializationError, UpstreamUnavailableError
from ...utils.datetime_utils import utcnow
from ..schemas.articles import Article, NewsApiResponse

logger = structlog.get_logger(__name__)

RAW_PAYLOAD_LOG_LIMIT = 2000


class UpstreamNewsClient:
    """Client for the rate-limited news provider search API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        search_window_days: int = 10,
        page_size: int = 100,
        extra_countries: Optional[List[str]] = None,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable = utcnow,
    ):
        """
        Args:
            base_url: Search endpoint of the provider
            api_key: Token sent in the x-api-token header
            search_window_days: How many days back from today are searched
            page_size: Default number of articles per upstream page
            extra_countries: Countries always appended after the caller's country
            timeout: Request timeout in seconds
            http_client: Pre-built client, mainly for tests
            clock: Returns the current UTC datetime
        """
        self.base_url = base_url
        self.api_key = api_key
        self.search_window_days = search_window_days
        self.page_size = page_size
        self.extra_countries = list(extra_countries) if extra_countries is not None else ["EG", "CA", "FR", "GB", "DE"]
        self.client = http_client or httpx.AsyncClient(timeout=timeout)
        self.clock = clock

    def _get_headers(self) -> Dict[str, str]:
        return {
            "x-api-token": self.api_key,
            "Accept": "application/json"
        }

    def get_date_range(self) -> Tuple[str, str]:
        """Search window as (from, to) dates, both formatted YYYY-MM-DD"""
        today = self.clock().date()
        start = today - timedelta(days=self.search_window_days)
        return start.isoformat(), today.isoformat()

    def build_countries(self, country: str) -> str:
        countries = [country] + [c for c in self.extra_countries if c.lower() != country.lower()]
        return ",".join(countries)

    async def fetch_articles(
        self,
        categories: List[str],
        language: str = "en",
        country: str = "us",
        page_number: int = 1,
        page_size: Optional[int] = None,
    ) -> List[Article]:
        """
        Search the provider for articles in any of the given categories.

        Raises:
            UpstreamUnavailableError: On network errors or non-2xx responses
            DeserializationError: When the body is not a valid articles envelope
        """
        date_from, date_to = self.get_date_range()
        params = {
            "q": " OR ".join(categories),
            "from_": date_from,
            "to_": date_to,
            "lang": language,
            "countries": self.build_countries(country),
            "page_size": page_size or self.page_size,
            "page": page_number,
        }

        try:
            response = await self.client.get(self.base_url, params=params, headers=self._get_headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "upstream_request_rejected",
                categories=categories,
                status_code=e.response.status_code,
            )
            raise UpstreamUnavailableError(
                f"News provider returned {e.response.status_code} for {categories}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("upstream_request_failed", categories=categories, error=str(e))
            raise UpstreamUnavailableError(f"News provider request failed: {e}") from e

        articles = self._parse_articles(response.text)
        logger.info("upstream_articles_fetched", categories=categories, count=len(articles))
        return articles

    async def fetch_by_id(self, article_id: str) -> Optional[Article]:
        """
        Look a single article up by its provider id.

        Best-effort: any failure is logged and reported as not found.
        """
        try:
            response = await self.client.get(
                f"{self.base_url}_by_link",
                params={"ids": article_id},
                headers=self._get_headers()
            )
            response.raise_for_status()
            articles = self._parse_articles(response.text)
        except (httpx.HTTPError, DeserializationError) as e:
            logger.error("upstream_fetch_by_id_failed", article_id=article_id, error=str(e))
            return None

        if not articles:
            logger.warning("upstream_article_not_found", article_id=article_id)
            return None

        return articles[0]

    def _parse_articles(self, payload: str) -> List[Article]:
        try:
            envelope = NewsApiResponse.model_validate_json(payload)
        except ValidationError as e:
            logger.error(
                "upstream_deserialization_failed",
                error=str(e),
                raw_payload=payload[:RAW_PAYLOAD_LOG_LIMIT],
            )
            raise DeserializationError("Could not decode news provider response", raw_payload=payload) from e
        return list(envelope.articles)

    async def close(self):
        """Close the httpx client"""
        await self.client.aclose()
