"""
Corpus Service
Reads the seeded JSON corpus and serves it balanced by topic and paginated.

Ordering matters and is kept on purpose:
1. cap every topic to `max_per_topic` articles
2. slice the page window out of the balanced list
3. keep only the requested categories inside that window
so a page can hold fewer than `page_size` articles, or none at all.
"""

import asyncio
import json
from pathlib import Path
from typing import Dict, List, Optional

import structlog
from pydantic import TypeAdapter

from ..schemas.articles import Article

logger = structlog.get_logger(__name__)

MAX_ARTICLES_PER_TOPIC = 10

_articles_adapter = TypeAdapter(List[Article])


def balance_articles_by_topic(articles: List[Article], max_per_topic: int = MAX_ARTICLES_PER_TOPIC) -> List[Article]:
    """Group by topic in order of first appearance and keep the first `max_per_topic` of each group."""
    groups: Dict[Optional[str], List[Article]] = {}
    for article in articles:
        group = groups.setdefault(article.topic, [])
        if len(group) < max_per_topic:
            group.append(article)

    return [article for group in groups.values() for article in group]


def paginate_articles(categories: List[str], articles: List[Article], page_number: int, page_size: int) -> List[Article]:
    start = (page_number - 1) * page_size
    page = articles[start:start + page_size]
    return [article for article in page if article.topic in categories]


def fetch_and_balance(
    corpus: List[Article],
    categories: List[str],
    page_number: int = 0,
    page_size: Optional[int] = None,
    max_per_topic: int = MAX_ARTICLES_PER_TOPIC,
) -> List[Article]:
    """
    Balance the corpus by topic, then paginate, then filter to `categories`.

    Without a page size (or with page number 0) the whole balanced corpus is
    returned and `categories` is not applied.
    """
    balanced = balance_articles_by_topic(corpus, max_per_topic)

    if page_size is None or page_number == 0:
        return balanced

    return paginate_articles(categories, balanced, page_number, page_size)


class NewsCorpus:
    """Loads the bulk article corpus from a JSON file on every read."""

    def __init__(self, path: str, max_per_topic: int = MAX_ARTICLES_PER_TOPIC):
        self.path = Path(path)
        self.max_per_topic = max_per_topic

    def _read(self) -> List[Article]:
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        return _articles_adapter.validate_python(data or [])

    async def load(self) -> List[Article]:
        """
        Read the corpus without blocking the event loop.

        Raises:
            OSError: When the file cannot be read
            ValueError: When the file is not a JSON list of articles
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._read)

    async def get_articles(
        self,
        categories: List[str],
        page_number: int = 0,
        page_size: Optional[int] = None,
    ) -> List[Article]:
        """
        Balanced, paginated corpus articles; an unreadable corpus yields an empty list.

        Args:
            categories: Topics kept inside a paginated window
            page_number: 1-based page; 0 returns everything
            page_size: Page length; None returns everything

        Returns:
            List of articles
        """
        try:
            corpus = await self.load()
        except (OSError, ValueError) as e:
            logger.error("corpus_read_failed", path=str(self.path), error=str(e))
            return []

        articles = fetch_and_balance(corpus, categories, page_number, page_size, self.max_per_topic)
        if page_size is None or page_number == 0:
            logger.info("corpus_returning_all_articles", count=len(articles))
        else:
            logger.info("corpus_page_fetched", page_number=page_number, page_size=page_size, count=len(articles))
        return articles
