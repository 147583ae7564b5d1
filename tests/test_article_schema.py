from datetime import datetime, timezone

import pydantic
import pytest

from src.news.schemas.articles import (
    UNKNOWN_ACCOUNT,
    UNKNOWN_AUTHOR,
    UNKNOWN_AUTHORS,
    Article,
    RecommendationResponse,
)
from src.news.schemas.responses import NotificationDto


class TestArticleNormalization:
    def test_keys_are_case_insensitive(self):
        article = Article.model_validate({"TITLE": "Markets rally", "Topic": "Business", "_Id": 42})

        assert article.title == "Markets rally"
        assert article.topic == "Business"
        assert article.id == "42"

    def test_missing_author_fields_get_sentinels(self):
        article = Article.model_validate({"title": "No byline"})

        assert article.author == UNKNOWN_AUTHOR
        assert article.authors == (UNKNOWN_AUTHORS,)
        assert article.twitter_account == UNKNOWN_ACCOUNT

    def test_null_and_blank_author_fields_get_sentinels(self):
        article = Article.model_validate({"author": "  ", "authors": ["", None], "twitter_account": None})

        assert article.author == UNKNOWN_AUTHOR
        assert article.authors == (UNKNOWN_AUTHORS,)
        assert article.twitter_account == UNKNOWN_ACCOUNT

    def test_comma_separated_authors_are_split(self):
        article = Article.model_validate({"authors": "Ann Lee, Bo Chen"})

        assert article.authors == ("Ann Lee", "Bo Chen")

    def test_published_date_is_parsed(self):
        article = Article.model_validate({"published_date": "2024-05-30 08:15:00"})

        assert article.published_at.year == 2024
        assert article.published_at.hour == 8

    def test_unparseable_date_becomes_none(self):
        article = Article.model_validate({"published_date": "yesterday"})

        assert article.published_at is None

    def test_article_is_immutable(self):
        article = Article.model_validate({"title": "Fixed"})

        with pytest.raises(pydantic.ValidationError):
            article.title = "Changed"


class TestEnvelopes:
    def test_recommendations_accept_any_key_case(self):
        response = RecommendationResponse.model_validate_json(
            '{"Recommendations": [{"Title": "One"}, {"title": "Two"}]}'
        )

        assert [a.title for a in response.recommendations] == ["One", "Two"]

    def test_null_recommendations_are_empty(self):
        assert RecommendationResponse.model_validate({"recommendations": None}).recommendations == []


class TestNotificationDto:
    def test_null_columns_fall_back_to_defaults(self):
        dto = NotificationDto.model_validate({
            "user_id": "u-1",
            "article_id": "a-1",
            "article_title": None,
            "article_url": "",
            "article_description": None,
            "category": None,
            "created_at": datetime(2024, 6, 1, tzinfo=timezone.utc),
        })

        assert dto.article_id == "a-1"
        assert dto.article_title == "No title available"
        assert dto.article_url == "No url available"
        assert dto.article_description == "No excerpt available"
        assert dto.category == "No topic available"
