"""
Recommendation Merge
Combines a user's precomputed recommendations with on-demand lookups
against the news provider. Used by the read path and the notification job.
"""

from typing import List, Optional

import structlog

from ...exceptions import ExternalServiceError
from ..schemas.articles import Article
from .recommendation_client import RecommendationClient
from .upstream_client import UpstreamNewsClient

logger = structlog.get_logger(__name__)


class RecommendationMerge:
    def __init__(self, recommendation_client: RecommendationClient, upstream_client: UpstreamNewsClient):
        self.recommendation_client = recommendation_client
        self.upstream_client = upstream_client

    async def get_recommendations_for_user(self, user_id: str) -> List[Article]:
        """Latest recommendations for a user; a failing service yields an empty list."""
        try:
            return await self.recommendation_client.get_latest_recommendations(user_id)
        except ExternalServiceError as e:
            logger.error("recommendations_unavailable", user_id=user_id, error=str(e))
            return []

    async def get_article(self, user_id: str, article_id: str) -> Optional[Article]:
        """
        Find an article by id, first in the user's recommendations and then
        directly at the news provider.

        Articles are normalized by the schema on decode, so whatever comes
        back already has its author fields defaulted.
        """
        recommendations = await self.get_recommendations_for_user(user_id)
        for article in recommendations:
            if article.id == article_id:
                logger.info("article_found_in_recommendations", user_id=user_id, article_id=article_id)
                return article

        logger.info("article_not_in_recommendations", user_id=user_id, article_id=article_id)
        return await self.upstream_client.fetch_by_id(article_id)
