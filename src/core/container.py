"""
Service container: one instance of every long-lived collaborator per
application. The CategoryCache in here is the only cache in the process;
request handlers and background jobs share it.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import httpx
import structlog

from ..config import Settings
from ..news.services.category_cache import CategoryCache
from ..news.services.corpus_service import NewsCorpus
from ..news.services.news_service import NewsService
from ..news.services.recommendation_client import RecommendationClient
from ..news.services.recommendation_merge import RecommendationMerge
from ..news.services.search_client import SearchClient
from ..news.services.upstream_client import UpstreamNewsClient
from ..services.account_deletion_service import AccountDeletionService
from ..services.mail_service import Mailer
from ..services.notification_service import NotificationJob
from .scheduler import PeriodicScheduler

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    upstream_client: UpstreamNewsClient
    recommendation_client: RecommendationClient
    search_client: SearchClient
    category_cache: CategoryCache
    corpus: NewsCorpus
    merge: RecommendationMerge
    news_service: NewsService
    mailer: Mailer
    notification_job: NotificationJob
    deletion_service: AccountDeletionService
    scheduler: Optional[PeriodicScheduler] = None

    async def aclose(self):
        if self.scheduler is not None:
            await self.scheduler.stop()
        await self.upstream_client.close()
        await self.recommendation_client.close()
        await self.search_client.close()
        logger.info("service_container_closed")


def build_container(settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> ServiceContainer:
    """
    Wire the application's collaborators from settings.

    Args:
        settings: Application settings
        http_client: Shared client for every outbound HTTP call, mainly for tests
    """
    timeout = settings.http_timeout_seconds

    upstream_client = UpstreamNewsClient(
        base_url=settings.news_api_base_url or "",
        api_key=settings.news_api_key or "",
        search_window_days=settings.news_search_window_days,
        page_size=settings.news_page_size,
        extra_countries=settings.news_extra_countries,
        timeout=timeout,
        http_client=http_client,
    )
    recommendation_client = RecommendationClient(
        recommend_url=settings.recommend_url or "",
        cached_recommend_url=settings.cached_recommend_url or "",
        timeout=timeout,
        http_client=http_client,
    )
    search_client = SearchClient(settings.search_url or "", timeout=timeout, http_client=http_client)

    category_cache = CategoryCache(
        upstream_client,
        ttl=timedelta(days=settings.category_cache_ttl_days),
        failure_ttl=timedelta(minutes=settings.category_cache_failure_ttl_minutes),
    )
    corpus = NewsCorpus(settings.news_corpus_path, max_per_topic=settings.corpus_max_articles_per_topic)
    merge = RecommendationMerge(recommendation_client, upstream_client)
    news_service = NewsService(category_cache, corpus, merge)

    mailer = Mailer(
        host=settings.mail_host,
        port=settings.mail_port,
        username=settings.mail_username,
        password=settings.mail_password,
        from_address=settings.mail_from,
        display_name=settings.mail_display_name,
        use_tls=settings.mail_use_tls,
    )

    return ServiceContainer(
        upstream_client=upstream_client,
        recommendation_client=recommendation_client,
        search_client=search_client,
        category_cache=category_cache,
        corpus=corpus,
        merge=merge,
        news_service=news_service,
        mailer=mailer,
        notification_job=NotificationJob(news_service, merge, mailer),
        deletion_service=AccountDeletionService(grace_period=timedelta(days=settings.account_deletion_grace_days)),
    )
