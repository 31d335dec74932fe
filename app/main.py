from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from datastore.device_table import build_default_table
from logging_config import configure_logging
from services.devices import build_default_bridge
from services.poller import build_default_poller


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    poller = build_default_poller()
    build_default_bridge()
    poller.start()
    try:
        yield
    finally:
        poller.close()
        build_default_bridge.cache_clear()
        build_default_poller.cache_clear()
        build_default_table.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="OHS Monitor",
        description="Polls an OpenHomeSecurity controller and tracks its sensors.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
