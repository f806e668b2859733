# pocketproxy/api/pocket.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Sequence, Tuple

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from pocketproxy.config import Settings
from pocketproxy.core.deps import get_client, get_registry, get_settings, parse_body
from pocketproxy.core.registry import ClientRegistry
from pocketproxy.schemas.pocket import Action, GetRequest, SendRequest, SendResponse, TextRequest
from pocketproxy.services.converter import to_legacy_list, to_legacy_single
from pocketproxy.services.omnivore import OmnivoreClient

router = APIRouter(tags=["pocket"])
logger = logging.getLogger("pocketproxy.api")

# One failing action fails the whole /v3/send request, even though the other
# calls of the batch may already have taken effect on the backend. Pocket's
# send contract has no way to report partial results.
FAIL_FAST_BATCH = "fail-fast-batch"


def partition_actions(actions: Sequence[Action]) -> Tuple[List[str], List[str]]:
    """Split actions into (archive ids, delete ids); other action kinds are dropped."""
    to_archive = [a.item_id for a in actions if a.action == "archive"]
    to_delete = [a.item_id for a in actions if a.action == "delete"]
    return to_archive, to_delete


async def run_batch(client: OmnivoreClient, to_archive: Sequence[str], to_delete: Sequence[str]) -> None:
    """Run every call to completion, then fail the batch with the first error (fail-fast-batch)."""
    results = await asyncio.gather(
        *[client.archive_link(item_id) for item_id in to_archive],
        *[client.delete_link(item_id) for item_id in to_delete],
        return_exceptions=True,
    )
    errors = [r for r in results if isinstance(r, BaseException)]
    if errors:
        if len(errors) > 1:
            logger.warning(
                "%d of %d batch actions failed",
                len(errors),
                len(results),
                extra={"event": "send_actions_failed", "policy": FAIL_FAST_BATCH},
            )
        raise errors[0]


@router.post("/v3/send", response_model=SendResponse, summary="Apply archive/delete actions")
async def send_actions(
    payload: SendRequest = Depends(parse_body(SendRequest)),
    settings: Settings = Depends(get_settings),
    registry: ClientRegistry = Depends(get_registry),
) -> SendResponse:
    client = await get_client(payload.access_token, settings, registry)
    to_archive, to_delete = partition_actions(payload.actions)
    logger.info(
        "Sending %d archive and %d delete actions",
        len(to_archive),
        len(to_delete),
        extra={"event": "send_actions", "policy": FAIL_FAST_BATCH, "dropped": len(payload.actions) - len(to_archive) - len(to_delete)},
    )
    await run_batch(client, to_archive, to_delete)
    return SendResponse(action_results=[])


@router.post("/v3/get", summary="List saved articles in Pocket format")
async def get_list(
    payload: GetRequest = Depends(parse_body(GetRequest)),
    settings: Settings = Depends(get_settings),
    registry: ClientRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    client = await get_client(payload.access_token, settings, registry)
    articles = await client.fetch_pages()
    return to_legacy_list(articles)


@router.post("/v3beta/text", summary="Single article text in Pocket article-view format")
async def get_text(
    payload: TextRequest = Depends(parse_body(TextRequest)),
    settings: Settings = Depends(get_settings),
    registry: ClientRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    client = await get_client(payload.access_token, settings, registry)
    article = await client.fetch_page(payload.url)
    return to_legacy_single(article)


@router.get("/beep", response_class=PlainTextResponse, summary="Liveness check")
async def beep() -> str:
    return "boop"
