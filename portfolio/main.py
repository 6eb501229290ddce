import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from portfolio.api.exception_handlers import register_exception_handlers
from portfolio.api.v1.router import api_router
from portfolio.core.config import settings
from portfolio.db import SessionLocal
from portfolio.services.command_worker import log_worker_exit, run_command_worker

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    worker = None
    if settings.command_worker_enabled:
        worker = asyncio.create_task(
            run_command_worker(
                SessionLocal,
                interval_seconds=settings.command_poll_interval_seconds,
                batch_size=settings.command_batch_size,
                max_attempts=settings.command_max_attempts,
            )
        )
        worker.add_done_callback(log_worker_exit)
    try:
        yield
    finally:
        if worker is not None and not worker.done():
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
            logger.info("Command worker stopped")


app = FastAPI(title="Portfolio charge definitions", lifespan=lifespan)

if settings.frontend_url:
    parsed = urlparse(settings.frontend_url)
    origin = f"{parsed.scheme}://{parsed.netloc}"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_exception_handlers(app)
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok"}
