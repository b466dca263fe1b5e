"""Shared FastAPI dependencies for the notification components."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from app.notifications.contracts import NotificationStore
from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.factory import NotificationComponents


def _get_components(request: Request) -> NotificationComponents:
  components = getattr(request.app.state, "notifications", None)
  if components is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Notification components are not initialized")
  return components


def get_dispatcher(request: Request) -> NotificationDispatcher:
  """Return the process-wide dispatcher created at startup."""
  return _get_components(request).dispatcher


def get_notification_store(request: Request) -> NotificationStore:
  """Return the process-wide notification store created at startup."""
  return _get_components(request).notification_store
