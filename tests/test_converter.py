from __future__ import annotations

from datetime import datetime, timezone

from pocketproxy.models.schemas import Article
from pocketproxy.services.converter import to_legacy_item, to_legacy_list, to_legacy_single, word_count


def _full_article() -> Article:
    return Article.model_validate(
        {
            "id": "a1",
            "title": "Hello",
            "url": "https://news.example.org/hello",
            "description": "Short excerpt",
            "content": "<p>One <b>two</b> three</p>",
            "author": "Jane",
            "image": "https://news.example.org/img.png",
            "siteName": "Example News",
            "isArchived": True,
            "savedAt": "2024-01-01T00:00:00Z",
            "updatedAt": "2024-01-02T00:00:00Z",
            "publishedAt": "2023-12-31T12:30:00Z",
            "labels": [{"name": "tech"}, {"name": "later"}],
        }
    )


def test_list_has_one_entry_per_article():
    articles = [Article(id=f"id{i}", url=f"https://e.com/{i}") for i in range(5)]
    out = to_legacy_list(articles)
    assert len(out["list"]) == 5
    assert sorted(out["list"]) == sorted(a.id for a in articles)
    for key, item in out["list"].items():
        assert item["item_id"] == key
        assert item["resolved_url"].startswith("https://e.com/")
    assert out["status"] == 1 and out["complete"] == 1


def test_list_keeps_input_order_in_sort_id():
    out = to_legacy_list([Article(id="z"), Article(id="a")])
    assert out["list"]["z"]["sort_id"] == 0
    assert out["list"]["a"]["sort_id"] == 1


def test_empty_list():
    out = to_legacy_list([])
    assert out["list"] == {}
    assert out["since"] == 0


def test_missing_optional_fields_use_defaults():
    article = Article(id="bare")
    item = to_legacy_item(article)
    assert item["item_id"] == "bare"
    assert item["resolved_url"] == ""
    assert item["resolved_title"] == ""
    assert item["excerpt"] == ""
    assert item["word_count"] == 0
    assert item["time_added"] == "0"
    assert item["tags"] == {}
    assert "top_image_url" not in item

    single = to_legacy_single(article)
    assert single["article"] == ""
    assert single["resolvedUrl"] == ""
    assert single["host"] == ""
    assert single["wordCount"] == 0
    assert single["datePublished"] is None


def test_full_item_mapping():
    item = to_legacy_item(_full_article(), sort_id=3)
    assert item["resolved_title"] == "Hello"
    assert item["given_url"] == item["resolved_url"] == "https://news.example.org/hello"
    assert item["excerpt"] == "Short excerpt"
    assert item["status"] == "1"
    assert item["word_count"] == 3
    assert item["time_added"] == "1704067200"
    assert item["time_updated"] == "1704153600"
    assert item["time_read"] == "1704153600"
    assert item["tags"] == {"tech": {"item_id": "a1", "tag": "tech"}, "later": {"item_id": "a1", "tag": "later"}}
    assert item["authors"]["1"]["name"] == "Jane"
    assert item["top_image_url"] == "https://news.example.org/img.png"
    assert item["domain_metadata"] == {"name": "Example News"}
    assert item["sort_id"] == 3


def test_single_mapping():
    single = to_legacy_single(_full_article())
    assert single["resolved_id"] == "a1"
    assert single["host"] == "news.example.org"
    assert single["title"] == "Hello"
    assert single["article"] == "<p>One <b>two</b> three</p>"
    assert single["datePublished"] == "2023-12-31 12:30:00"
    assert single["topImageUrl"] == "https://news.example.org/img.png"
    assert single["images"]["1"]["src"] == "https://news.example.org/img.png"


def test_conversion_is_idempotent():
    article = _full_article()
    assert to_legacy_item(article) == to_legacy_item(article)
    assert to_legacy_single(article) == to_legacy_single(article)
    assert to_legacy_list([article]) == to_legacy_list([article])


def test_since_is_latest_timestamp():
    older = Article(id="o", savedAt=datetime(2024, 1, 1, tzinfo=timezone.utc))
    newer = Article(id="n", updatedAt=datetime(2024, 3, 1, tzinfo=timezone.utc))
    assert to_legacy_list([older, newer])["since"] == int(newer.updated_at.timestamp())


def test_word_count_prefers_backend_count():
    assert word_count(Article(id="x", content="<p>a b c</p>", wordsCount=120)) == 120
    assert word_count(Article(id="x", content="<div>a<br/>b</div>")) == 2
    assert word_count(Article(id="x")) == 0


def test_malformed_url_does_not_raise():
    single = to_legacy_single(Article(id="x", url="http://[broken"))
    assert single["host"] == ""
    assert single["resolvedUrl"] == "http://[broken"


def test_article_model_normalizes_backend_fields():
    article = Article.model_validate({"id": "x", "isArchived": None, "labels": None, "unknownField": 1})
    assert article.is_archived is False
    assert article.labels == []
