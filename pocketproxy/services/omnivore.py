"""Async client for the Omnivore GraphQL API.

One instance wraps one ``httpx.AsyncClient`` bound to a single API key.
Every failure is raised as one of the errors in ``pocketproxy.core.errors``;
nothing is retried here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from pocketproxy.config import DEFAULT_OMNIVORE_API_URL
from pocketproxy.core.errors import AuthError, BackendError, ConnectivityError, NotFoundError
from pocketproxy.models.schemas import Article, PageInfo, SearchPage


logger = logging.getLogger("pocketproxy.omnivore")

DEFAULT_PAGE_SIZE = 100
DEFAULT_SEARCH_QUERY = "in:inbox"
DEFAULT_TIMEOUT_SECONDS = 30.0

VIEWER_QUERY = """
query Viewer {
  me { id name }
}
"""

SEARCH_QUERY = """
query Search($after: String, $first: Int, $query: String, $includeContent: Boolean) {
  search(after: $after, first: $first, query: $query, includeContent: $includeContent) {
    ... on SearchSuccess {
      edges {
        cursor
        node {
          id title url author image description siteName wordsCount
          isArchived savedAt updatedAt publishedAt content
          labels { name }
        }
      }
      pageInfo { hasNextPage endCursor }
    }
    ... on SearchError { errorCodes }
  }
}
"""

ARCHIVE_MUTATION = """
mutation SetLinkArchived($input: ArchiveLinkInput!) {
  setLinkArchived(input: $input) {
    ... on ArchiveLinkSuccess { linkId message }
    ... on ArchiveLinkError { message errorCodes }
  }
}
"""

DELETE_MUTATION = """
mutation SetBookmarkArticle($input: SetBookmarkArticleInput!) {
  setBookmarkArticle(input: $input) {
    ... on SetBookmarkArticleSuccess { bookmarkedArticle { id } }
    ... on SetBookmarkArticleError { errorCodes }
  }
}
"""


def _error_for_codes(codes: Sequence[str], message: str) -> BackendError:
    if "UNAUTHORIZED" in codes:
        return AuthError(message, codes=codes)
    if "NOT_FOUND" in codes:
        return NotFoundError(message, codes=codes)
    return BackendError(message, codes=codes)


class OmnivoreClient:
    def __init__(
        self,
        credential: str,
        *,
        api_url: str = DEFAULT_OMNIVORE_API_URL,
        page_size: int = DEFAULT_PAGE_SIZE,
        search_query: str = DEFAULT_SEARCH_QUERY,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.page_size = page_size
        self.search_query = search_query
        self._client = httpx.AsyncClient(
            headers={"Authorization": credential, "Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout, connect=10.0),
        )

    @classmethod
    async def create(cls, credential: str, **kwargs: Any) -> "OmnivoreClient":
        """Open a session for ``credential`` and check that the backend accepts it."""
        client = cls(credential, **kwargs)
        try:
            await client.verify()
        except BackendError:
            await client.aclose()
            raise
        return client

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- Transport helpers ---
    async def _graphql(self, operation: str, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        payload = {"operationName": operation, "query": query, "variables": variables}
        try:
            resp = await self._client.post(self.api_url, json=payload)
        except httpx.TransportError as exc:
            logger.warning(
                "Backend unreachable during %s: %s",
                operation,
                exc,
                extra={"event": "backend_unreachable"},
            )
            raise ConnectivityError(f"{operation}: backend unreachable ({exc})") from exc

        if resp.status_code in (401, 403):
            logger.warning("Backend rejected credential during %s", operation, extra={"event": "backend_auth_rejected"})
            raise AuthError(f"{operation}: credential rejected ({resp.status_code})")
        if resp.status_code >= 400:
            logger.warning(
                "Backend returned %s during %s",
                resp.status_code,
                operation,
                extra={"event": "backend_http_error"},
            )
            raise BackendError(f"{operation}: HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise BackendError(f"{operation}: response is not JSON") from exc

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            codes = [str((e.get("extensions") or {}).get("code", "")) for e in errors if isinstance(e, dict)]
            message = "; ".join(str(e.get("message", "")) for e in errors if isinstance(e, dict))
            logger.warning(
                "GraphQL errors during %s: %s",
                operation,
                message,
                extra={"event": "backend_graphql_error"},
            )
            if "UNAUTHENTICATED" in codes:
                raise AuthError(f"{operation}: {message}", codes=codes)
            raise BackendError(f"{operation}: {message}", codes=codes)

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise BackendError(f"{operation}: response has no data")
        return data

    def _unwrap(self, data: Dict[str, Any], field: str, operation: str) -> Dict[str, Any]:
        result = data.get(field)
        if not isinstance(result, dict):
            raise BackendError(f"{operation}: missing {field} result")
        codes = result.get("errorCodes")
        if codes:
            logger.warning(
                "%s failed with %s",
                operation,
                ",".join(codes),
                extra={"event": "backend_error_codes"},
            )
            raise _error_for_codes(codes, f"{operation}: {result.get('message') or ','.join(codes)}")
        return result

    async def _search(
        self,
        query: str,
        *,
        first: int,
        after: Optional[str] = None,
        include_content: bool = False,
    ) -> SearchPage:
        data = await self._graphql(
            "Search",
            SEARCH_QUERY,
            {"after": after, "first": first, "query": query, "includeContent": include_content},
        )
        result = self._unwrap(data, "search", "Search")
        try:
            articles = [Article.model_validate(edge["node"]) for edge in result.get("edges") or []]
            page_info = PageInfo.model_validate(result.get("pageInfo") or {})
        except (ValidationError, KeyError, TypeError) as exc:
            raise BackendError(f"Search: unexpected result shape ({exc})") from exc
        return SearchPage(articles=articles, page_info=page_info)

    # --- Operations ---
    async def verify(self) -> None:
        data = await self._graphql("Viewer", VIEWER_QUERY, {})
        if not data.get("me"):
            raise AuthError("Viewer: credential is not bound to an account")

    async def archive_link(self, item_id: str) -> None:
        data = await self._graphql(
            "SetLinkArchived",
            ARCHIVE_MUTATION,
            {"input": {"linkId": item_id, "archived": True}},
        )
        self._unwrap(data, "setLinkArchived", "SetLinkArchived")
        logger.info("Archived %s", item_id, extra={"event": "link_archived", "item_id": item_id})

    async def delete_link(self, item_id: str) -> None:
        data = await self._graphql(
            "SetBookmarkArticle",
            DELETE_MUTATION,
            {"input": {"articleID": item_id, "bookmark": False}},
        )
        self._unwrap(data, "setBookmarkArticle", "SetBookmarkArticle")
        logger.info("Deleted %s", item_id, extra={"event": "link_deleted", "item_id": item_id})

    async def fetch_pages(self) -> List[Article]:
        """Return every article matching ``search_query``, following cursors until exhausted."""
        articles: List[Article] = []
        after: Optional[str] = None
        while True:
            page = await self._search(self.search_query, first=self.page_size, after=after)
            articles.extend(page.articles)
            end_cursor = page.page_info.end_cursor
            # a cursor that does not advance would loop forever
            if not page.page_info.has_next_page or not end_cursor or end_cursor == after:
                break
            after = end_cursor
        logger.info("Fetched %d articles", len(articles), extra={"event": "pages_fetched"})
        return articles

    async def fetch_page(self, url: str) -> Article:
        escaped = url.replace("\\", "\\\\").replace('"', '\\"')
        page = await self._search(f'in:all url:"{escaped}"', first=1, include_content=True)
        if not page.articles:
            raise NotFoundError(f"No article saved for {url}")
        return page.articles[0]
