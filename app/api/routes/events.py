"""Eventarc receiver for Firestore notification documents."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Request, status
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_dispatcher
from app.config import Settings, get_settings
from app.core.security import require_event_caller
from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.events import parse_document_created_event

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/notification-created", status_code=status.HTTP_200_OK, dependencies=[Depends(require_event_caller)])
async def on_notification_created(
  request: Request,
  dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
  settings: Annotated[Settings, Depends(get_settings)],
  ce_id: str | None = Header(default=None),
  ce_type: str | None = Header(default=None),
  ce_subject: str | None = Header(default=None),
) -> dict[str, Any]:
  """
  Handler for `document.created` events on the notifications collection.
  Callers must pass `require_event_caller`; an admitted event always answers 2xx: failures are recorded on the notification, and redelivery would only repeat them.
  """
  try:
    body = await request.json()
  except ValueError:
    logger.warning("Ignoring event with unreadable body event_id=%s", ce_id)
    return {"status": "ignored"}

  event = parse_document_created_event(body, collection=settings.notifications_collection, subject=ce_subject, event_type=ce_type, event_id=ce_id)
  if event is None:
    return {"status": "ignored"}

  logger.info("Received notification event event_id=%s notification_id=%s", ce_id, event.notification_id)
  result = await run_in_threadpool(dispatcher.dispatch, event)
  if result is None:
    return {"status": "ignored"}

  return result.to_dict()
