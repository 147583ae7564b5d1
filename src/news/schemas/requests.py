"""News API request schemas"""

from typing import List
from pydantic import BaseModel, Field


class RecommendationRequest(BaseModel):
    """Topics the recommendation service should rank articles for"""
    topics: List[str] = Field(default_factory=list)


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500, description="Free-text search query")


class PreferredCategoriesRequest(BaseModel):
    categories: List[str] = Field(default_factory=list, description="Category names, e.g. ['Tech', 'Sports']")
