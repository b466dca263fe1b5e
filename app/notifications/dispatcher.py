"""Deliver newly created notification records to the owner's devices."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from app.notifications.contracts import DispatchResult, MulticastSender, NotificationCreatedEvent, NotificationRecord, NotificationStore, TokenStore
from app.notifications.payload import build_push_payload
from app.notifications.push_sender import select_tokens_to_prune

logger = logging.getLogger(__name__)


def _error_message(exc: BaseException) -> str:
  return str(exc) or type(exc).__name__


class NotificationDispatcher:
  """Sends a multicast push for a notification record, prunes dead tokens, and records the outcome.

  Invocations are independent and may repeat for the same record. Every write
  is a field update or an array removal, so a repeated run converges on the
  same stored state (the push itself may be delivered twice).
  """

  def __init__(self, *, token_store: TokenStore, notification_store: NotificationStore, push_sender: MulticastSender) -> None:
    self._token_store = token_store
    self._notification_store = notification_store
    self._push_sender = push_sender

  def dispatch(self, event: NotificationCreatedEvent | None) -> DispatchResult | None:
    """Handle one created record. Returns None when there was nothing to deliver."""
    if event is None:
      logger.warning("Notification event missing; nothing to dispatch.")
      return None

    try:
      record = NotificationRecord.model_validate(event.fields)
    except ValidationError as exc:
      logger.warning("Malformed notification notification_id=%s errors=%s", event.notification_id, exc.error_count())
      return None

    logger.info("Dispatching notification notification_id=%s event_id=%s user_id=%s type=%s", event.notification_id, event.event_id, record.user_id, record.type)

    try:
      tokens = self._token_store.get_tokens(record.user_id)
      if tokens is None:
        logger.info("No FCM tokens found for user_id=%s", record.user_id)
        return None

      if not tokens:
        logger.info("Token list is empty for user_id=%s", record.user_id)
        return None

      logger.info("Sending notification_id=%s to %d device(s)", event.notification_id, len(tokens))
      payload = build_push_payload(record, notification_id=event.notification_id)
      result = self._push_sender.send_multicast(payload, tokens)
      logger.info("Multicast finished notification_id=%s success=%d failure=%d", event.notification_id, result.success_count, result.failure_count)

      stale_tokens = select_tokens_to_prune(tokens, result.outcomes)
      if stale_tokens:
        logger.info("Removing %d invalid token(s) for user_id=%s", len(stale_tokens), record.user_id)
        self._token_store.remove_tokens(record.user_id, stale_tokens)

    except Exception as exc:  # noqa: BLE001
      error_message = _error_message(exc)
      logger.error("Error sending notification notification_id=%s: %s", event.notification_id, error_message, exc_info=True)
      self._record_failure(event, error_message)
      return DispatchResult.failed(error_message)

    try:
      self._notification_store.mark_sent(event.document_path, success_count=result.success_count, failure_count=result.failure_count)
    except Exception as exc:  # noqa: BLE001
      # The push already went out; report the delivery and surface the write error alongside it.
      error_message = _error_message(exc)
      logger.error("Status write-back failed notification_id=%s: %s", event.notification_id, error_message, exc_info=True)
      return DispatchResult.delivered(result, error=f"status write-back failed: {error_message}")

    return DispatchResult.delivered(result)

  def _record_failure(self, event: NotificationCreatedEvent, error_message: str) -> None:
    """Best-effort failure write-back; its own errors end here."""
    try:
      self._notification_store.mark_failed(event.document_path, error_message=error_message)
    except Exception as exc:  # noqa: BLE001
      logger.error("Failure write-back failed notification_id=%s: %s", event.notification_id, exc, exc_info=True)
