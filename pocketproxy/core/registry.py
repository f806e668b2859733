from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict

from pocketproxy.config import Settings
from pocketproxy.services.omnivore import OmnivoreClient


logger = logging.getLogger("pocketproxy.registry")

ClientFactory = Callable[[str], Awaitable[OmnivoreClient]]


def omnivore_factory(settings: Settings) -> ClientFactory:
    async def _create(credential: str) -> OmnivoreClient:
        return await OmnivoreClient.create(
            credential,
            api_url=settings.omnivore_api_url,
            page_size=settings.page_size,
            search_query=settings.search_query,
            timeout=settings.backend_timeout,
        )

    return _create


class ClientRegistry:
    """Credential -> backend client map, one client per credential for the app lifetime.

    Entries are never evicted, not even after an auth failure. Two concurrent
    first requests for the same credential may both build a client; the first
    one registered is kept and the other is closed.
    """

    def __init__(self, factory: ClientFactory) -> None:
        self._factory = factory
        self._clients: Dict[str, OmnivoreClient] = {}

    def __len__(self) -> int:
        return len(self._clients)

    async def get_or_create(self, credential: str) -> OmnivoreClient:
        client = self._clients.get(credential)
        if client is not None:
            return client

        created = await self._factory(credential)
        existing = self._clients.get(credential)
        if existing is not None:
            await created.aclose()
            return existing
        self._clients[credential] = created
        logger.info(
            "Backend client created",
            extra={"event": "client_created", "clients": len(self._clients)},
        )
        return created

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()
