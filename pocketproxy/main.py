from contextlib import asynccontextmanager
from typing import Optional

import logging

import uvicorn
from fastapi import FastAPI

from pocketproxy.api import pocket
from pocketproxy.config import Settings, settings as default_settings
from pocketproxy.core.middleware import ContentTypeFixMiddleware, ErrorLoggingMiddleware
from pocketproxy.core.registry import ClientFactory, ClientRegistry, omnivore_factory


logger = logging.getLogger("pocketproxy")


def create_app(
    settings: Optional[Settings] = None,
    client_factory: Optional[ClientFactory] = None,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # No fallback credential means requests without access_token can't be served
        settings.require_fallback_token()
        app.state.registry = ClientRegistry(client_factory or omnivore_factory(settings))
        try:
            yield
        finally:
            await app.state.registry.aclose()

    app = FastAPI(
        title="Pocket to Omnivore proxy",
        lifespan=lifespan,
        root_path=settings.root_path,
    )
    app.state.settings = settings
    app.include_router(pocket.router)
    app.add_middleware(ErrorLoggingMiddleware)
    # Outermost, so the header is fixed before anything reads the body
    app.add_middleware(ContentTypeFixMiddleware)
    return app


app = create_app()

# Basic logging configuration (can be overridden by server config)
logging.basicConfig(
    level=default_settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def run() -> None:
    logger.info("Server running on port %s", default_settings.port)
    uvicorn.run(
        "pocketproxy.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
