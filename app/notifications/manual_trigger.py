"""On-demand creation of a test notification for the calling user."""

from __future__ import annotations

import logging
from typing import Any

from app.notifications.contracts import NotificationStore

logger = logging.getLogger(__name__)

SYSTEM_SENDER_ID = "system"
SYSTEM_SENDER_USERNAME = "System"
TEST_NOTIFICATION_TYPE = "test"
TEST_NOTIFICATION_TITLE = "Test Notification"
TEST_NOTIFICATION_BODY = "This is a test notification from the GymBuddy notification service"


def build_test_notification(user_id: str) -> dict[str, Any]:
  """Return the fields of a synthesized test notification owned by `user_id`."""
  return {
    "user_id": user_id,
    "sender_id": SYSTEM_SENDER_ID,
    "sender_username": SYSTEM_SENDER_USERNAME,
    "type": TEST_NOTIFICATION_TYPE,
    "title": TEST_NOTIFICATION_TITLE,
    "body": TEST_NOTIFICATION_BODY,
    "data": {},
    "is_read": False,
    "fcm_sent": False,
  }


def create_test_notification(*, user_id: str, notification_store: NotificationStore) -> dict[str, Any]:
  """Seed a notification record; the created-document trigger performs the delivery."""
  notification_id = notification_store.create(build_test_notification(user_id))
  logger.info("Test notification created notification_id=%s user_id=%s", notification_id, user_id)
  return {"success": True, "message": "Test notification created"}
