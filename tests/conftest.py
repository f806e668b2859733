from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

# Ensure repository root is on sys.path for `import pocketproxy`
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from fastapi.testclient import TestClient

from pocketproxy.config import Settings
from pocketproxy.core.errors import NotFoundError
from pocketproxy.models.schemas import Article


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


class FakeBackend:
    """In-memory stand-in for Omnivore shared by every fake client."""

    def __init__(self) -> None:
        self.created: List[str] = []
        self.calls: List[Tuple[str, str]] = []
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.articles: List[Article] = []
        self.pages_by_url: Dict[str, Article] = {}

    async def create_client(self, credential: str) -> "FakeOmnivoreClient":
        self.created.append(credential)
        return FakeOmnivoreClient(self, credential)


class FakeOmnivoreClient:
    def __init__(self, backend: FakeBackend, credential: str) -> None:
        self.backend = backend
        self.credential = credential
        self.closed = False

    def _record(self, action: str, item_id: str) -> None:
        self.backend.calls.append((action, item_id))
        err: Optional[Exception] = self.backend.failures.get((action, item_id))
        if err is not None:
            raise err

    async def archive_link(self, item_id: str) -> None:
        self._record("archive", item_id)

    async def delete_link(self, item_id: str) -> None:
        self._record("delete", item_id)

    async def fetch_pages(self) -> List[Article]:
        return list(self.backend.articles)

    async def fetch_page(self, url: str) -> Article:
        article = self.backend.pages_by_url.get(url)
        if article is None:
            raise NotFoundError(f"No article saved for {url}")
        return article

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def settings() -> Settings:
    return Settings(fallback_token="fallback-token", omnivore_api_url="http://omnivore.local/api/graphql")


@pytest.fixture()
def client(backend, settings):
    from pocketproxy.main import create_app

    app = create_app(settings, client_factory=backend.create_client)
    with TestClient(app) as test_client:
        yield test_client
