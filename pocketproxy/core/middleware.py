from __future__ import annotations

import logging

from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send


logger = logging.getLogger("pocketproxy.errors")


class ContentTypeFixMiddleware:
    """Rewrite the ``charset=UTF8`` token some Pocket clients send into ``charset=UTF-8``."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            headers = []
            changed = False
            for name, value in scope["headers"]:
                if name == b"content-type" and b"charset=UTF8" in value:
                    value = value.replace(b"charset=UTF8", b"charset=UTF-8")
                    changed = True
                headers.append((name, value))
            if changed:
                scope = dict(scope, headers=headers)
        await self.app(scope, receive, send)


class ErrorLoggingMiddleware:
    """Log any exception escaping a route and answer 500 with an empty body.

    The failure kind is not reported to the caller.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def _send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, _send)
        except Exception:
            logger.exception(
                "Unhandled error on %s %s",
                scope.get("method"),
                scope.get("path"),
                extra={"event": "request_failed"},
            )
            if response_started:
                raise
            await Response(status_code=500)(scope, receive, send)
