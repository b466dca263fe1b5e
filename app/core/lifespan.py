import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.firebase import close_firebase, initialize_firebase
from app.core.logging import _initialize_logging
from app.notifications.factory import build_notification_components


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Own the process-wide Firebase app and the components built on it."""
  from app.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  _initialize_logging(settings)

  # Fail fast: without Firebase neither trigger can do anything useful.
  try:
    firebase_app = initialize_firebase(settings)
    app.state.notifications = build_notification_components(settings, firebase_app=firebase_app)
  except Exception:
    logger.error("Firebase initialization failed; refusing to start the service.", exc_info=True)
    raise

  logger.info("Startup complete environment=%s notifications=%s tokens=%s", settings.environment, settings.notifications_collection, settings.tokens_collection)

  try:
    yield
  finally:
    app.state.notifications = None
    close_firebase()
    logger.info("Shutdown complete.")
