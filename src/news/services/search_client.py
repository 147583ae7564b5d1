from typing import Optional

import httpx
import structlog
from pydantic import ValidationError

from ...exceptions import DeserializationError, ExternalServiceError
from ..schemas.articles import SearchResponse
from .recommendation_client import distinct_by_title

logger = structlog.get_logger(__name__)


class SearchClient:
    """Client for the semantic search service."""

    def __init__(self, search_url: str, timeout: float = 60.0, http_client: Optional[httpx.AsyncClient] = None):
        self.search_url = search_url
        self.client = http_client or httpx.AsyncClient(timeout=timeout)

    async def search(self, query: str) -> SearchResponse:
        try:
            response = await self.client.post(self.search_url, json={"query": query})
        except httpx.HTTPError as e:
            logger.error("search_request_failed", query=query, error=str(e))
            raise ExternalServiceError(f"Search API request failed: {e}") from e

        if response.is_error:
            raise ExternalServiceError(f"Error from Search API: {response.status_code}")

        try:
            search_response = SearchResponse.model_validate_json(response.text)
        except ValidationError as e:
            logger.error("search_deserialization_failed", query=query, raw_payload=response.text[:2000])
            raise DeserializationError(f"Error deserializing search response: {e}", raw_payload=response.text) from e

        return SearchResponse(results=distinct_by_title(list(search_response.results)))

    async def close(self):
        await self.client.aclose()
