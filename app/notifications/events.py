"""Decoding of Firestore document events delivered by Eventarc."""

from __future__ import annotations

import logging
from typing import Any

from app.notifications.contracts import NotificationCreatedEvent

logger = logging.getLogger(__name__)

DOCUMENT_CREATED_EVENT_TYPE = "google.cloud.firestore.document.v1.created"

_DOCUMENTS_MARKER = "/documents/"
_SUBJECT_PREFIX = "documents/"


def _nested_object(raw: Any, kind: str) -> dict[str, Any]:
  # An empty array or map may arrive as null.
  if raw is None:
    return {}
  if not isinstance(raw, dict):
    raise ValueError(f"{kind} must be an object, got {type(raw).__name__}")
  return raw


def decode_firestore_value(value: Any) -> Any:
  """Convert a Firestore REST `Value` object into a plain Python value."""
  if not isinstance(value, dict):
    raise ValueError(f"Firestore value must be an object, got {type(value).__name__}")

  if "nullValue" in value:
    return None
  if "booleanValue" in value:
    return bool(value["booleanValue"])
  if "integerValue" in value:
    # int64 values are JSON strings on the wire.
    return int(value["integerValue"])
  if "doubleValue" in value:
    return float(value["doubleValue"])
  if "stringValue" in value:
    return value["stringValue"]
  if "timestampValue" in value:
    return value["timestampValue"]
  if "bytesValue" in value:
    return value["bytesValue"]
  if "referenceValue" in value:
    return value["referenceValue"]
  if "geoPointValue" in value:
    return dict(value["geoPointValue"])
  if "arrayValue" in value:
    items = _nested_object(value["arrayValue"], "arrayValue").get("values") or []
    if not isinstance(items, list):
      raise ValueError("arrayValue.values must be a list.")
    return [decode_firestore_value(item) for item in items]
  if "mapValue" in value:
    return decode_firestore_fields(_nested_object(value["mapValue"], "mapValue").get("fields") or {})

  raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def decode_firestore_fields(fields: Any) -> dict[str, Any]:
  """Decode a Firestore `fields` mapping."""
  if not isinstance(fields, dict):
    raise ValueError("Firestore fields must be an object.")
  return {str(key): decode_firestore_value(item) for key, item in fields.items()}


def _document_path_from_name(name: Any) -> str | None:
  # projects/{project}/databases/{database}/documents/{path}
  if not isinstance(name, str) or _DOCUMENTS_MARKER not in name:
    return None
  return name.split(_DOCUMENTS_MARKER, 1)[1].strip("/") or None


def _document_path_from_subject(subject: str | None) -> str | None:
  if not subject or not subject.startswith(_SUBJECT_PREFIX):
    return None
  return subject[len(_SUBJECT_PREFIX) :].strip("/") or None


def parse_document_created_event(body: Any, *, collection: str, subject: str | None = None, event_type: str | None = None, event_id: str | None = None) -> NotificationCreatedEvent | None:
  """Extract a notification created event, or None when the payload does not describe one."""
  if event_type is not None and event_type != DOCUMENT_CREATED_EVENT_TYPE:
    logger.info("Ignoring event type=%s event_id=%s", event_type, event_id)
    return None

  if not isinstance(body, dict):
    logger.warning("Ignoring event with non-object body event_id=%s", event_id)
    return None

  value = body.get("value")
  if not isinstance(value, dict):
    logger.warning("Ignoring event without a document value event_id=%s", event_id)
    return None

  document_path = _document_path_from_name(value.get("name")) or _document_path_from_subject(subject)
  if document_path is None:
    logger.warning("Ignoring event without a document path event_id=%s", event_id)
    return None

  # Only top-level documents of the notifications collection trigger dispatch.
  segments = document_path.split("/")
  if len(segments) != 2 or segments[0] != collection or not segments[1]:
    logger.info("Ignoring event for document_path=%s event_id=%s", document_path, event_id)
    return None

  try:
    fields = decode_firestore_fields(value.get("fields") or {})
  except (TypeError, ValueError) as exc:
    logger.warning("Ignoring event with undecodable fields document_path=%s error=%s", document_path, exc)
    return None

  return NotificationCreatedEvent(notification_id=segments[1], document_path=document_path, fields=fields, event_id=event_id)
