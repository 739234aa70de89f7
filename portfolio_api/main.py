from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from portfolio_api.api.routes import router
from portfolio_api.logs import configure_logging
from portfolio_api.proxies import Proxies
from portfolio_api.settings import Settings


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    proxies: Proxies = fastapi_app.state.proxies

    try:
        yield
    finally:
        await proxies.shutdown()


def create_app(
    settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None
) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)
    app = FastAPI(title="Portfolio API", lifespan=lifespan)

    app.state.settings = settings
    app.state.proxies = Proxies(settings=settings, transport=transport)

    app.include_router(router)
    return app


application = create_app()
