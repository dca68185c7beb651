"""Main API Server entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import ConfigurationError
from .router import router
from .schemas import ErrorResponse

logger = logging.getLogger("ApiServer")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("API Server starting up")
    yield
    logger.info("API Server shutting down")


app = FastAPI(
    title="Talkback Tutor API",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(router)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content=ErrorResponse(error=str(exc)).model_dump())


@app.get("/health")
async def health_check():
    return {"status": "ok"}
