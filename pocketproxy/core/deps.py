from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Type, TypeVar

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from pocketproxy.config import Settings
from pocketproxy.core.registry import ClientRegistry
from pocketproxy.services.omnivore import OmnivoreClient


logger = logging.getLogger("pocketproxy.deps")

ModelT = TypeVar("ModelT", bound=BaseModel)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

_BRACKET_RE = re.compile(r"\[([^\[\]]*)\]")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> ClientRegistry:
    return request.app.state.registry


def resolve_credential(access_token: Optional[str], settings: Settings) -> str:
    """Request token first, then the process-wide fallback."""
    if access_token:
        return access_token
    return settings.require_fallback_token()


def _listify(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    node = {key: _listify(value) for key, value in node.items()}
    if node and all(key.isdigit() for key in node):
        return [node[key] for key in sorted(node, key=int)]
    return node


def fold_form_keys(items: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """Nest bracketed form keys: ``actions[0][item_id]=A`` -> ``{"actions": [{"item_id": "A"}]}``."""
    data: Dict[str, Any] = {}
    for key, value in items:
        head, bracket, rest = key.partition("[")
        parts = [head] + (_BRACKET_RE.findall(bracket + rest) if bracket else [])
        node = data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        leaf = parts[-1]
        # "key[]" appends
        node[leaf if leaf else str(len(node))] = value
    return {key: _listify(value) for key, value in data.items()}


async def read_body(request: Request) -> Dict[str, Any]:
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return fold_form_keys(form.multi_items())

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}}]
        )
    if not isinstance(data, dict):
        raise RequestValidationError(
            [{"type": "dict_type", "loc": ("body",), "msg": "Input should be an object", "input": data}]
        )
    return data


def parse_body(model: Type[ModelT]) -> Callable[[Request], Any]:
    """Dependency validating a JSON or form-encoded body against ``model``."""

    async def _parse(request: Request) -> ModelT:
        data = await read_body(request)
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.info(
                "Rejected %s body",
                model.__name__,
                extra={"event": "body_rejected", "path": request.url.path},
            )
            raise RequestValidationError(exc.errors(include_url=False), body=data)

    return _parse


async def get_client(
    access_token: Optional[str],
    settings: Settings,
    registry: ClientRegistry,
) -> OmnivoreClient:
    credential = resolve_credential(access_token, settings)
    return await registry.get_or_create(credential)


__all__ = [
    "get_settings",
    "get_registry",
    "resolve_credential",
    "fold_form_keys",
    "read_body",
    "parse_body",
    "get_client",
]
