from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import callables, events
from app.config import get_settings
from app.core.exceptions import CallableError, callable_exception_handler, global_exception_handler, http_exception_handler, request_validation_exception_handler
from app.core.lifespan import lifespan
from app.core.middleware import RequestLoggingMiddleware

__version__ = "0.1.0"

settings = get_settings()

app = FastAPI(title="GymBuddy notifications", version=__version__, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

if settings.allowed_origins:
  app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["POST", "OPTIONS"], allow_headers=["content-type", "authorization"])

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(CallableError, callable_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(events.router, prefix="/events", tags=["events"])
app.include_router(callables.router, tags=["callables"])
