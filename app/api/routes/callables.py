"""Callable endpoints invoked by the mobile app through the Firebase callable protocol."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_notification_store
from app.core.exceptions import CallableError
from app.core.security import CallableAuth, get_callable_auth
from app.notifications.contracts import NotificationStore
from app.notifications.manual_trigger import create_test_notification

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/sendTestNotification", status_code=status.HTTP_200_OK)
async def send_test_notification(
  auth: Annotated[CallableAuth | None, Depends(get_callable_auth)],
  notification_store: Annotated[NotificationStore, Depends(get_notification_store)],
) -> dict[str, Any]:
  """
  Create a test notification for the caller; delivery happens through the created-document trigger.
  The callable `{"data": ...}` envelope carries no arguments for this function and is not read.
  """
  if auth is None:
    raise CallableError("unauthenticated", "User must be authenticated")

  try:
    result = await run_in_threadpool(create_test_notification, user_id=auth.uid, notification_store=notification_store)
  except Exception as exc:  # noqa: BLE001
    logger.error("Test notification creation failed user_id=%s: %s", auth.uid, exc, exc_info=True)
    raise CallableError("internal", "Failed to create test notification") from exc

  return {"result": result}
