"""Article and upstream envelope schemas.

Every payload coming from the news provider, the recommendation service or
the search service is decoded through these models. Keys are matched
case-insensitively and author fields are normalized on the way in, so an
``Article`` instance is always fully normalized.
"""

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

UNKNOWN_AUTHOR = "Unknown author"
UNKNOWN_AUTHORS = "Unknown authors"
UNKNOWN_ACCOUNT = "Unknown account"


class CaseInsensitiveModel(BaseModel):
    """Base model accepting `Title`, `TITLE` or `title` for the field `title`."""

    model_config = ConfigDict(extra="ignore")

    key_aliases: ClassVar[Dict[str, str]] = {}

    @model_validator(mode="before")
    @classmethod
    def lower_case_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        normalized: Dict[str, Any] = {}
        for key, value in data.items():
            lowered = str(key).lower()
            if lowered in cls.key_aliases:
                # An exact field name always wins over an alias
                normalized.setdefault(cls.key_aliases[lowered], value)
            else:
                normalized[lowered] = value
        return normalized


class Article(CaseInsensitiveModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    key_aliases: ClassVar[Dict[str, str]] = {
        "_id": "id",
        "published_date": "published_at",
        "publisheddate": "published_at",
        "publishedat": "published_at",
        "domainurl": "domain_url",
        "twitteraccount": "twitter_account",
    }

    id: Optional[str] = None
    title: Optional[str] = None
    topic: Optional[str] = None
    country: Optional[str] = None
    language: Optional[str] = None
    author: str = UNKNOWN_AUTHOR
    authors: Tuple[str, ...] = (UNKNOWN_AUTHORS,)
    twitter_account: str = UNKNOWN_ACCOUNT
    published_at: Optional[datetime] = None
    link: Optional[str] = None
    domain_url: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    media: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        if value is None:
            return None
        return str(value)

    @field_validator("author", mode="before")
    @classmethod
    def default_author(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return UNKNOWN_AUTHOR
        return value

    @field_validator("twitter_account", mode="before")
    @classmethod
    def default_twitter_account(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return UNKNOWN_ACCOUNT
        return value

    @field_validator("authors", mode="before")
    @classmethod
    def default_authors(cls, value):
        if value is None:
            return (UNKNOWN_AUTHORS,)
        if isinstance(value, str):
            value = value.split(",")

        authors = tuple(str(name).strip() for name in value if name is not None and str(name).strip())
        return authors or (UNKNOWN_AUTHORS,)

    @field_validator("published_at", mode="before")
    @classmethod
    def parse_published_at(cls, value):
        if value is None or isinstance(value, datetime):
            return value
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            try:
                return datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
        return None


class NewsApiResponse(CaseInsensitiveModel):
    """Envelope returned by the news provider search endpoints"""
    status: Optional[str] = None
    total_hits: Optional[int] = None
    page: Optional[int] = None
    total_pages: Optional[int] = None
    page_size: Optional[int] = None
    articles: List[Article] = []

    @field_validator("articles", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or []


class RecommendationResponse(CaseInsensitiveModel):
    recommendations: List[Article] = []

    @field_validator("recommendations", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or []


class SearchResponse(CaseInsensitiveModel):
    results: List[Article] = []

    @field_validator("results", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or []
