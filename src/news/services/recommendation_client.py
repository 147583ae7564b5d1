"""
Recommendation Client
Talks to the external recommendation service: on-demand ranking by topics
and the per-user list of cached recommendations.
"""

from typing import List, Optional

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from ...exceptions import DeserializationError, ExternalServiceError
from ..schemas.articles import Article, RecommendationResponse

logger = structlog.get_logger(__name__)

RAW_PAYLOAD_LOG_LIMIT = 2000

_articles_adapter = TypeAdapter(List[Article])


def distinct_by_title(articles: List[Article]) -> List[Article]:
    """Drop articles whose title was already seen, keeping the first occurrence."""
    seen = set()
    unique = []
    for article in articles:
        if article.title in seen:
            continue
        seen.add(article.title)
        unique.append(article)
    return unique


class RecommendationClient:
    def __init__(
        self,
        recommend_url: str,
        cached_recommend_url: str,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.recommend_url = recommend_url
        self.cached_recommend_url = cached_recommend_url
        self.client = http_client or httpx.AsyncClient(timeout=timeout)

    async def get_recommended_articles(self, topics: List[str], user_id: str) -> List[Article]:
        """
        Ask the recommendation service to rank articles for the given topics.

        Raises:
            ExternalServiceError: On network errors or non-2xx responses
            DeserializationError: When the response cannot be decoded
        """
        payload = {"topics": topics, "user_id": user_id}
        try:
            response = await self.client.post(self.recommend_url, json=payload)
        except httpx.HTTPError as e:
            logger.error("recommendation_request_failed", user_id=user_id, error=str(e))
            raise ExternalServiceError(f"Recommendation API request failed: {e}") from e

        if response.is_error:
            raise ExternalServiceError(f"Error from Recommendation API: {response.status_code}")

        try:
            recommendations = RecommendationResponse.model_validate_json(response.text)
        except ValidationError as e:
            logger.error(
                "recommendation_deserialization_failed",
                user_id=user_id,
                error=str(e),
                raw_payload=response.text[:RAW_PAYLOAD_LOG_LIMIT],
            )
            raise DeserializationError(
                f"Error deserializing recommendation response: {e}", raw_payload=response.text
            ) from e

        return list(recommendations.recommendations)

    async def get_latest_recommendations(
        self,
        user_id: str,
        page_number: int = 0,
        page_size: Optional[int] = None,
    ) -> List[Article]:
        """
        Cached recommendations for a user.

        Unpaginated calls return the list as stored. Paginated calls slice the
        page window first and then drop duplicate titles inside it, so a page
        can come back shorter than `page_size`.

        Raises:
            ExternalServiceError: On network errors or non-2xx responses
            DeserializationError: When the response is not a JSON article array
        """
        try:
            response = await self.client.get(self.cached_recommend_url, params={"user_id": user_id})
        except httpx.HTTPError as e:
            logger.error("cached_recommendations_request_failed", user_id=user_id, error=str(e))
            raise ExternalServiceError(f"Cached recommendations request failed: {e}") from e

        if response.is_error:
            raise ExternalServiceError(f"Error fetching cached recommendations: {response.status_code}")

        try:
            recommendations = _articles_adapter.validate_json(response.text)
        except ValidationError as e:
            logger.error(
                "cached_recommendations_deserialization_failed",
                user_id=user_id,
                error=str(e),
                raw_payload=response.text[:RAW_PAYLOAD_LOG_LIMIT],
            )
            raise DeserializationError(
                f"Error deserializing cached recommendations: {e}", raw_payload=response.text
            ) from e

        if page_size is None or page_number <= 0:
            return recommendations

        start = (page_number - 1) * page_size
        return distinct_by_title(recommendations[start:start + page_size])

    async def close(self):
        await self.client.aclose()
