"""Push payload construction for notification records."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from firebase_admin import messaging

from app.notifications.contracts import NotificationRecord, PushPayload

DEFAULT_TITLE = "GymBuddy"
DEFAULT_BODY = ""
DEFAULT_TYPE = "default"
CLICK_ACTION_KEY = "click_action"
CLICK_ACTION = "FLUTTER_NOTIFICATION_CLICK"
ANDROID_CHANNEL_ID = "high_importance_channel"
ANDROID_PRIORITY = "high"
ANDROID_COLOR = "#FF9800"
DEFAULT_SOUND = "default"
APNS_BADGE = 1


def _stringify(value: Any) -> str:
  # FCM data values must be strings.
  if isinstance(value, str):
    return value
  return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def merge_data(reserved: Mapping[str, str], extra: Mapping[str, Any] | None) -> dict[str, str]:
  """Merge caller data over the reserved keys; caller values win on collision."""
  merged = dict(reserved)
  for key, value in (extra or {}).items():
    merged[str(key)] = _stringify(value)
  return merged


def build_push_payload(record: NotificationRecord, *, notification_id: str) -> PushPayload:
  """Build display fields and the data mapping for a notification record."""
  reserved = {"notification_id": notification_id, "type": record.type or DEFAULT_TYPE, CLICK_ACTION_KEY: CLICK_ACTION}
  return PushPayload(title=record.title or DEFAULT_TITLE, body=record.body or DEFAULT_BODY, data=merge_data(reserved, record.data))


def to_multicast_message(payload: PushPayload, tokens: Sequence[str]) -> messaging.MulticastMessage:
  """Attach platform hints and destination tokens to a payload."""
  return messaging.MulticastMessage(
    tokens=list(tokens),
    notification=messaging.Notification(title=payload.title, body=payload.body),
    data=dict(payload.data),
    android=messaging.AndroidConfig(priority=ANDROID_PRIORITY, notification=messaging.AndroidNotification(channel_id=ANDROID_CHANNEL_ID, sound=DEFAULT_SOUND, color=ANDROID_COLOR)),
    apns=messaging.APNSConfig(payload=messaging.APNSPayload(aps=messaging.Aps(sound=DEFAULT_SOUND, badge=APNS_BADGE))),
  )
