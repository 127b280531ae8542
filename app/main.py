import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from starlette.concurrency import run_in_threadpool

from app import models  # noqa: F401  (registers tables on Base.metadata)
from app.core.container import Container, build_container
from app.core.db import Base
from app.core.logging_config import configure_logging
from app.api.v1.health import router as health_router
from app.api.v1.sms import router as sms_router
from app.api.v1.auth import router as auth_router
from app.api.v1.entries import router as entries_router
from app.api.v1.settings import router as settings_router

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> FastAPI:
    container = container or build_container()
    configure_logging(container.settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=container.engine)
        if container.settings.SCHEDULER_ENABLED:
            # first pass touches the DB and may send an SMS; keep it off the event loop
            await run_in_threadpool(container.scheduler.start)
        try:
            yield
        finally:
            # pending entries survive shutdown and are picked up on next start
            await run_in_threadpool(container.scheduler.stop)

    app = FastAPI(title="TextWeight", version="1.0.0", lifespan=lifespan)
    app.state.container = container

    app.include_router(health_router, prefix="/v1")
    app.include_router(sms_router, prefix="/v1")
    app.include_router(auth_router, prefix="/v1")
    app.include_router(entries_router, prefix="/v1")
    app.include_router(settings_router, prefix="/v1")

    return app


app = create_app()
