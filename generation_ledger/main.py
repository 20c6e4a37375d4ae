"""FastAPI application entry point for the generation ledger service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from generation_ledger import __version__
from generation_ledger.api.routes import router
from generation_ledger.core import auth
from generation_ledger.core.config import settings
from generation_ledger.core.errors import register_error_handlers
from generation_ledger.core.middleware import RequestLoggingMiddleware

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    auth.bootstrap()
    yield


app = FastAPI(
    title="Generation Ledger",
    description=(
        "Evidence and settlement ledger for a generation asset. Stores signed "
        "daily metering snapshots (write-once, audit only) and revisioned monthly "
        "settlement records (the basis for issuance decisions), behind role-gated "
        "writes and a global pause switch."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
register_error_handlers(app)

app.include_router(router, prefix="/api/v1", tags=["ledger"])


@app.get("/health", tags=["ops"])
async def health_check() -> dict:
    return {"status": "ok", "service": "generation-ledger"}
