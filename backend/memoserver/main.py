import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from memoserver.api import memos
from memoserver.config import Settings
from memoserver.memo_service import Clock, MemoService
from memoserver.storage import MemoStore, build_store, utc_now
from memoserver.sweeper import ExpirationSweeper
from memoserver.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[MemoStore] = None,
    clock: Clock = utc_now,
) -> FastAPI:
    settings = settings or Settings.from_env()
    if store is None:
        store = build_store(settings)
    sweeper = ExpirationSweeper(store, interval_seconds=settings.sweep_interval_seconds, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.sweep_enabled:
            sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()
            store.close()

    app = FastAPI(title="Self-destructing Memo API", lifespan=lifespan)
    app.state.settings = settings
    app.state.memo_service = MemoService(
        store,
        default_duration_minutes=settings.default_duration_minutes,
        min_key_length=settings.min_key_length,
        clock=clock,
    )
    app.state.sweeper = sweeper

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError):
        # malformed bodies are client input errors like short keys
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(memos.router)
    logger.info("Memo API configured with %s store", settings.store_backend)
    return app


_settings = Settings.from_env()
setup_logging(_settings.log_level)
app = create_app(_settings)
