"""Contracts for push notification dispatch."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, field_validator


class NotificationRecord(BaseModel):
  """The fields of a notifications document that delivery reads; everything else is ignored."""

  user_id: str
  type: str | None = None
  title: str | None = None
  body: str | None = None
  data: dict[str, Any] | None = None
  model_config = ConfigDict(extra="ignore")

  @field_validator("user_id")
  @classmethod
  def validate_user_id(cls, value: str) -> str:
    """Require a usable token document id; the id is used exactly as stored."""
    if not value:
      raise ValueError("user_id must not be empty.")

    if "/" in value:
      raise ValueError("user_id must not contain '/'.")

    return value


@dataclass(frozen=True)
class PushPayload:
  """Display fields and data mapping shared by every device of a multicast."""

  title: str
  body: str
  data: dict[str, str]


@dataclass(frozen=True)
class DeliveryOutcome:
  """Per-token result of a multicast send."""

  token: str
  success: bool
  message_id: str | None = None
  error_code: str | None = None
  error_message: str | None = None


@dataclass(frozen=True)
class MulticastResult:
  """Ordered per-token outcomes plus the aggregate counts reported by the push service."""

  outcomes: list[DeliveryOutcome]
  success_count: int
  failure_count: int


@dataclass(frozen=True)
class DispatchResult:
  """Outcome of one dispatcher invocation."""

  success: bool
  success_count: int | None = None
  failure_count: int | None = None
  error: str | None = None

  @classmethod
  def delivered(cls, result: MulticastResult, *, error: str | None = None) -> DispatchResult:
    return cls(success=True, success_count=result.success_count, failure_count=result.failure_count, error=error)

  @classmethod
  def failed(cls, error: str) -> DispatchResult:
    return cls(success=False, error=error)

  def to_dict(self) -> dict[str, Any]:
    """Serialize using the camelCase keys callers of the original trigger expect."""
    payload: dict[str, Any] = {"success": self.success}
    if self.success_count is not None:
      payload["successCount"] = self.success_count
    if self.failure_count is not None:
      payload["failureCount"] = self.failure_count
    if self.error is not None:
      payload["error"] = self.error
    return payload


@dataclass(frozen=True)
class NotificationCreatedEvent:
  """A created-document event for a notification record."""

  notification_id: str
  document_path: str
  fields: dict[str, Any] = field(default_factory=dict)
  event_id: str | None = None


class NotificationError(Exception):
  """Base class for all notification dispatch failures."""


class PushServiceError(NotificationError):
  """Exception raised when the push service rejects a whole multicast request."""


class TokenStore(Protocol):
  """Per-user device token storage."""

  def get_tokens(self, user_id: str) -> list[str] | None:
    """Return the user's tokens, or None when the user has no token document."""

  def remove_tokens(self, user_id: str, tokens: Sequence[str]) -> None:
    """Atomically remove exactly the given token values."""


class NotificationStore(Protocol):
  """Notification record storage."""

  def create(self, fields: Mapping[str, Any]) -> str:
    """Create a notification record and return its id."""

  def mark_sent(self, document_path: str, *, success_count: int, failure_count: int) -> None:
    """Record a completed delivery attempt on an existing record."""

  def mark_failed(self, document_path: str, *, error_message: str) -> None:
    """Record a systemic delivery failure on an existing record."""


class MulticastSender(Protocol):
  """Delivery contract for multicast push sends."""

  def send_multicast(self, payload: PushPayload, tokens: Sequence[str]) -> MulticastResult:
    """Send one payload to every token and return per-token outcomes."""
