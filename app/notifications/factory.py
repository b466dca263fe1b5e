"""Factory helpers for notification services."""

from __future__ import annotations

from dataclasses import dataclass

from firebase_admin import App

from app.config import Settings
from app.core.firebase import get_firestore_client
from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.notification_repo import FirestoreNotificationRepository
from app.notifications.push_sender import FcmMulticastSender
from app.notifications.token_repo import FirestoreTokenRepository


@dataclass(frozen=True)
class NotificationComponents:
  """Process-wide notification collaborators shared by every request."""

  dispatcher: NotificationDispatcher
  notification_store: FirestoreNotificationRepository


def build_notification_components(settings: Settings, *, firebase_app: App) -> NotificationComponents:
  """Wire the dispatcher and stores onto one Firebase app."""
  client = get_firestore_client(firebase_app)
  notification_store = FirestoreNotificationRepository(client=client, collection=settings.notifications_collection)
  token_store = FirestoreTokenRepository(client=client, collection=settings.tokens_collection)
  push_sender = FcmMulticastSender(app=firebase_app, dry_run=settings.fcm_dry_run)
  dispatcher = NotificationDispatcher(token_store=token_store, notification_store=notification_store, push_sender=push_sender)
  return NotificationComponents(dispatcher=dispatcher, notification_store=notification_store)
