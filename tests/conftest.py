import json
from pathlib import Path
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.config import Settings
from src.core.container import build_container
from src.core.database import Base
from src.models import Category, User
from src.news.schemas.articles import Article


class FakeClock:
    """Callable clock whose time only moves when a test advances it"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def session_factory():
    # StaticPool keeps one connection, so the in-memory database survives across sessions and threads
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def test_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_article():
    def _make(index: int, topic: str = "Tech", **overrides) -> Article:
        payload = {
            "_id": f"article-{index}",
            "title": f"{topic} headline {index}",
            "topic": topic,
            "country": "US",
            "author": "Jane Doe",
            "authors": ["Jane Doe"],
            "published_date": "2024-05-30T08:00:00Z",
            "link": f"https://news.example.com/{topic.lower()}/{index}",
            "description": f"{topic} description {index}",
        }
        payload.update(overrides)
        return Article.model_validate(payload)

    return _make


@pytest.fixture
def sample_articles(make_article):
    return [make_article(i, "Tech") for i in range(3)] + [make_article(i, "Sports") for i in range(3, 5)]


@pytest.fixture
def articles_envelope():
    def _envelope(articles) -> str:
        return json.dumps({
            "status": "ok",
            "articles": [article.model_dump(mode="json") for article in articles],
        })

    return _envelope


@pytest.fixture
def mock_upstream_client(sample_articles):
    client = MagicMock()
    client.search_window_days = 10
    client.fetch_articles = AsyncMock(return_value=sample_articles)
    client.fetch_by_id = AsyncMock(return_value=None)
    return client


@pytest.fixture
def mock_mailer():
    mailer = MagicMock()
    mailer.send_notification_email = AsyncMock(return_value=None)
    mailer.send_email = AsyncMock(return_value=None)
    return mailer


@pytest.fixture
def seeded_categories(test_db):
    names = ["Tech", "Sports", "Business", "Health"]
    for name in names:
        test_db.add(Category(name=name))
    test_db.commit()
    return names


@pytest.fixture
def make_user(test_db):
    def _make(user_name: str, email: str = None, categories=(), **fields) -> User:
        user = User(user_name=user_name, email=email, **fields)
        if categories:
            user.categories = test_db.query(Category).filter(Category.name.in_(list(categories))).all()
        test_db.add(user)
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make


SHIPPED_CORPUS = Path(__file__).resolve().parents[1] / "src" / "news" / "data" / "news_data.json"


@pytest.fixture
def test_settings():
    return Settings(
        news_api_key="test-news-key",
        news_api_base_url="https://news.test/api/search",
        recommend_url="https://recommender.test/recommend",
        cached_recommend_url="https://recommender.test/cached",
        search_url="https://search.test/search",
        news_corpus_path=str(SHIPPED_CORPUS),
        scheduler_enabled=False,
    )


@pytest.fixture
def http_routes():
    """URL path -> handler; anything not routed answers 404"""
    return {}


@pytest.fixture
def app_container(test_settings, http_routes):
    def handler(request: httpx.Request) -> httpx.Response:
        route = http_routes.get(request.url.path)
        if route is None:
            return httpx.Response(404)
        return route(request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return build_container(test_settings, http_client=http_client)


@pytest.fixture
def current_user(seeded_categories, make_user):
    return make_user("reader", email="reader@example.com", categories=["Tech"])


@pytest.fixture
async def async_client(session_factory, app_container):
    from httpx import AsyncClient, ASGITransport
    from src.main import app
    from src.core.database import get_db

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.container = app_container

    # Use ASGITransport for direct app interaction
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    del app.state.container
