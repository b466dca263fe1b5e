"""Repository helpers for notification records."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from google.cloud.firestore import SERVER_TIMESTAMP
from google.cloud.firestore import Client as FirestoreClient


class FirestoreNotificationRepository:
  """Create notification documents and write delivery status back onto them."""

  def __init__(self, *, client: FirestoreClient, collection: str = "notifications") -> None:
    self._client = client
    self._collection = collection

  def create(self, fields: Mapping[str, Any]) -> str:
    """Add a notification document stamped with the server time and return its id."""
    document = {**fields, "created_at": SERVER_TIMESTAMP}
    _, reference = self._client.collection(self._collection).add(document)
    return reference.id

  def mark_sent(self, document_path: str, *, success_count: int, failure_count: int) -> None:
    """Record the push service's counts for a completed send."""
    self._client.document(document_path).update({"fcm_sent": True, "fcm_sent_at": SERVER_TIMESTAMP, "fcm_success_count": success_count, "fcm_failure_count": failure_count})

  def mark_failed(self, document_path: str, *, error_message: str) -> None:
    """Record a systemic send failure; delivery counts are left as they are."""
    self._client.document(document_path).update({"fcm_sent": False, "fcm_error": error_message, "fcm_error_at": SERVER_TIMESTAMP})
