# pocketproxy/models/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Article as stored on the backend ---
# Field aliases follow the Omnivore GraphQL names; content is only present
# when the search was issued with includeContent.
class Article(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    title: Optional[str] = None
    url: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    image: Optional[str] = None
    site_name: Optional[str] = Field(default=None, alias="siteName")
    words_count: Optional[int] = Field(default=None, alias="wordsCount")
    is_archived: bool = Field(default=False, alias="isArchived")
    saved_at: Optional[datetime] = Field(default=None, alias="savedAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")
    labels: List[str] = []

    @field_validator("labels", mode="before")
    def flatten_labels(cls, v: Any):
        if v is None:
            return []
        names = []
        for label in v:
            if isinstance(label, dict):
                name = label.get("name")
                if name:
                    names.append(str(name))
            elif label:
                names.append(str(label))
        return names

    @field_validator("is_archived", mode="before")
    def none_is_not_archived(cls, v: Any):
        return bool(v)


# --- One page of the backend listing ---
class PageInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    has_next_page: bool = Field(default=False, alias="hasNextPage")
    end_cursor: Optional[str] = Field(default=None, alias="endCursor")


class SearchPage(BaseModel):
    articles: List[Article] = []
    page_info: PageInfo = Field(default_factory=PageInfo)
