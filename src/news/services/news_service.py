"""
News Service
Read path used by the API: live category lookups through the shared
CategoryCache, balanced pages of the seeded corpus and single-article
lookups through RecommendationMerge.
"""

import asyncio
from typing import List, Optional

import structlog

from ...repositories.category_repository import CategoryRepository
from ..schemas.articles import Article
from .category_cache import CategoryCache
from .corpus_service import NewsCorpus
from .recommendation_merge import RecommendationMerge

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORIES = [
    "Business",
    "Economics",
    "Entertainment",
    "Finance",
    "Health",
    "Politics",
    "Science",
    "Sports",
    "Tech",
    "Crime",
    "Lifestyle",
    "Automotive",
    "Travel",
    "Weather",
    "General",
]


class NewsService:
    """News read service; stateless apart from the collaborators it is given"""

    def __init__(self, cache: CategoryCache, corpus: NewsCorpus, merge: RecommendationMerge):
        self.cache = cache
        self.corpus = corpus
        self.merge = merge

    async def get_news_by_category(self, category: str, language: str = "en", country: str = "us") -> List[Article]:
        """
        Live articles for a category. Upstream failures come back as an empty
        list, never as an exception.
        """
        articles = await self.cache.get(category, language, country)
        needle = category.strip().lower()
        return [a for a in articles if a.topic and needle in a.topic.lower()]

    async def get_news_by_id(self, user_id: str, article_id: str) -> Optional[Article]:
        article = await self.merge.get_article(user_id, article_id)
        if article is None:
            logger.warning("article_not_found", user_id=user_id, article_id=article_id)
        return article

    async def get_all_news(
        self,
        categories: List[str],
        page_number: int = 0,
        page_size: Optional[int] = None,
    ) -> List[Article]:
        return await self.corpus.get_articles(categories, page_number, page_size)

    async def get_articles_by_categories(self, names: List[str]) -> List[Article]:
        """Whole balanced corpus restricted to the given topics"""
        wanted = set(names)
        articles = await self.corpus.get_articles(names)
        return [a for a in articles if a.topic in wanted]

    async def get_live_articles_by_categories(self, names: List[str]) -> List[Article]:
        results = await asyncio.gather(*(self.cache.get(name) for name in names))
        return [article for articles in results for article in articles]

    def get_categories(self, category_repository: CategoryRepository) -> List[str]:
        inserted = category_repository.seed_defaults(DEFAULT_CATEGORIES)
        if inserted:
            logger.info("default_categories_seeded", count=inserted)
        return category_repository.get_all_names()
