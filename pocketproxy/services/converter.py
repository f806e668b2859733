"""Reshape backend articles into the Pocket v3 response formats.

Every function here is pure: no I/O, no hidden state, and no exceptions for
missing optional fields. Pocket encodes most scalar fields as strings, so the
``time_*`` and flag fields below are strings too.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlsplit

from pocketproxy.models.schemas import Article

_TAG_RE = re.compile(r"<[^>]*>")


def _epoch(value: Optional[datetime]) -> int:
    if value is None:
        return 0
    try:
        return int(value.timestamp())
    except (OverflowError, OSError, ValueError):
        return 0


def _host(url: str) -> str:
    if not url:
        return ""
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def _flag(value: bool) -> str:
    return "1" if value else "0"


def word_count(article: Article) -> int:
    if article.words_count is not None and article.words_count >= 0:
        return article.words_count
    if not article.content:
        return 0
    return len(_TAG_RE.sub(" ", article.content).split())


def _tags(article: Article) -> Dict[str, Dict[str, str]]:
    return {name: {"item_id": article.id, "tag": name} for name in article.labels}


def _authors(article: Article) -> Dict[str, Dict[str, str]]:
    if not article.author:
        return {}
    return {"1": {"item_id": article.id, "author_id": "1", "name": article.author, "url": ""}}


def _images(article: Article) -> Dict[str, Dict[str, str]]:
    if not article.image:
        return {}
    return {
        "1": {
            "item_id": article.id,
            "image_id": "1",
            "src": article.image,
            "width": "0",
            "height": "0",
            "credit": "",
            "caption": "",
        }
    }


def to_legacy_item(article: Article, sort_id: int = 0) -> Dict[str, Any]:
    """One entry of the ``list`` mapping returned by ``/v3/get``."""
    url = article.url or ""
    title = article.title or ""
    updated = _epoch(article.updated_at)
    item: Dict[str, Any] = {
        "item_id": article.id,
        "resolved_id": article.id,
        "given_url": url,
        "resolved_url": url,
        "given_title": title,
        "resolved_title": title,
        "favorite": "0",
        "status": _flag(article.is_archived),
        "excerpt": article.description or "",
        "is_article": "1",
        "is_index": "0",
        "has_image": _flag(bool(article.image)),
        "has_video": "0",
        "word_count": word_count(article),
        "lang": "",
        "time_added": str(_epoch(article.saved_at)),
        "time_updated": str(updated),
        "time_read": str(updated) if article.is_archived else "0",
        "time_favorited": "0",
        "sort_id": sort_id,
        "tags": _tags(article),
        "authors": _authors(article),
        "images": _images(article),
    }
    if article.image:
        item["top_image_url"] = article.image
    if article.site_name:
        item["domain_metadata"] = {"name": article.site_name}
    return item


def to_legacy_list(articles: Iterable[Article]) -> Dict[str, Any]:
    """Wrap converted articles in the ``/v3/get`` envelope, keyed by item id."""
    items: Dict[str, Dict[str, Any]] = {}
    since = 0
    for idx, article in enumerate(articles):
        items[article.id] = to_legacy_item(article, sort_id=idx)
        since = max(since, _epoch(article.updated_at), _epoch(article.saved_at))
    return {
        "status": 1,
        "complete": 1,
        "list": items,
        "error": None,
        "search_meta": {"search_type": "normal"},
        "since": since,
    }


def to_legacy_single(article: Article) -> Dict[str, Any]:
    """Shape one article like the ``/v3beta/text`` article-view response."""
    url = article.url or ""
    host = _host(url)
    published = article.published_at
    return {
        "resolved_id": article.id,
        "resolvedUrl": url,
        "host": host,
        "title": article.title or "",
        "datePublished": published.strftime("%Y-%m-%d %H:%M:%S") if published else None,
        "timePublished": _epoch(published),
        "responseCode": "200",
        "excerpt": article.description or "",
        "authors": _authors(article),
        "images": _images(article),
        "videos": {},
        "wordCount": word_count(article),
        "isArticle": 1,
        "isVideo": 0,
        "isIndex": 0,
        "usedFallback": 0,
        "requiresLogin": 0,
        "lang": "",
        "topImageUrl": article.image or "",
        "article": article.content or "",
    }


__all__ = ["to_legacy_item", "to_legacy_list", "to_legacy_single", "word_count"]
