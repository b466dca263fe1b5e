"""Shared fakes for the notification dispatch tests."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pytest
from app.notifications.contracts import DeliveryOutcome, MulticastResult, PushPayload


class FakeTokenStore:
  """In-memory token documents keyed by user id."""

  def __init__(self, documents: dict[str, list[str]] | None = None) -> None:
    self.documents = {user_id: list(tokens) for user_id, tokens in (documents or {}).items()}
    self.lookups: list[str] = []
    self.removals: list[tuple[str, list[str]]] = []
    self.before_remove = None
    self.lookup_error: Exception | None = None

  def get_tokens(self, user_id: str) -> list[str] | None:
    self.lookups.append(user_id)
    if self.lookup_error is not None:
      raise self.lookup_error
    if user_id not in self.documents:
      return None
    return list(self.documents[user_id])

  def remove_tokens(self, user_id: str, tokens: Sequence[str]) -> None:
    if self.before_remove is not None:
      self.before_remove()
    self.removals.append((user_id, list(tokens)))
    # Same semantics as ArrayRemove: drop every occurrence of each value.
    self.documents[user_id] = [token for token in self.documents.get(user_id, []) if token not in set(tokens)]


class FakeNotificationStore:
  """Records notification writes by document path."""

  def __init__(self) -> None:
    self.created: list[dict[str, Any]] = []
    self.updates: dict[str, dict[str, Any]] = {}
    self.calls: list[str] = []
    self.create_error: Exception | None = None
    self.mark_sent_error: Exception | None = None
    self.mark_failed_error: Exception | None = None

  def create(self, fields: Mapping[str, Any]) -> str:
    self.calls.append("create")
    if self.create_error is not None:
      raise self.create_error
    self.created.append(dict(fields))
    return f"generated-{len(self.created)}"

  def mark_sent(self, document_path: str, *, success_count: int, failure_count: int) -> None:
    self.calls.append("mark_sent")
    if self.mark_sent_error is not None:
      raise self.mark_sent_error
    self.updates.setdefault(document_path, {}).update({"fcm_sent": True, "fcm_success_count": success_count, "fcm_failure_count": failure_count})

  def mark_failed(self, document_path: str, *, error_message: str) -> None:
    self.calls.append("mark_failed")
    if self.mark_failed_error is not None:
      raise self.mark_failed_error
    self.updates.setdefault(document_path, {}).update({"fcm_sent": False, "fcm_error": error_message})


class FakeMulticastSender:
  """Returns scripted per-token outcomes: token -> None (success) or failure code."""

  def __init__(self, failures: dict[str, str] | None = None, error: Exception | None = None) -> None:
    self.failures = failures or {}
    self.error = error
    self.sent: list[tuple[PushPayload, list[str]]] = []

  def send_multicast(self, payload: PushPayload, tokens: Sequence[str]) -> MulticastResult:
    self.sent.append((payload, list(tokens)))
    if self.error is not None:
      raise self.error
    outcomes = []
    for index, token in enumerate(tokens):
      code = self.failures.get(token)
      if code is None:
        outcomes.append(DeliveryOutcome(token=token, success=True, message_id=f"projects/demo/messages/{index}"))
      else:
        outcomes.append(DeliveryOutcome(token=token, success=False, error_code=code, error_message=code))
    success_count = len([outcome for outcome in outcomes if outcome.success])
    return MulticastResult(outcomes=outcomes, success_count=success_count, failure_count=len(outcomes) - success_count)


@pytest.fixture
def token_store() -> FakeTokenStore:
  return FakeTokenStore()


@pytest.fixture
def notification_store() -> FakeNotificationStore:
  return FakeNotificationStore()


@pytest.fixture
def push_sender() -> FakeMulticastSender:
  return FakeMulticastSender()
