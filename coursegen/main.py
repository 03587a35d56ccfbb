from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from coursegen import __version__
from coursegen.ai.errors import GenerationFailedError, GenerationInProgressError
from coursegen.api.routes import content
from coursegen.config import get_settings
from coursegen.core.database import get_db_engine
from coursegen.core.exceptions import (
  generation_failed_exception_handler,
  generation_in_progress_exception_handler,
  global_exception_handler,
  http_exception_handler,
  request_validation_exception_handler,
)
from coursegen.core.json import FiniteJSONResponse
from coursegen.core.logging import setup_logging

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging after uvicorn starts and release the engine on shutdown."""
  log_path = setup_logging(settings)
  logger = logging.getLogger("coursegen.main")
  logger.info("Startup complete env=%s log_file=%s", settings.environment, log_path)
  try:
    yield
  finally:
    engine = get_db_engine()
    if engine is not None:
      await engine.dispose()


app = FastAPI(default_response_class=FiniteJSONResponse, lifespan=lifespan, title="coursegen", version=__version__)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization"])

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(GenerationFailedError, generation_failed_exception_handler)
app.add_exception_handler(GenerationInProgressError, generation_in_progress_exception_handler)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(content.router, prefix="/v1/content", tags=["content"])
