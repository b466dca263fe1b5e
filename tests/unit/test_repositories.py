from __future__ import annotations

from unittest.mock import MagicMock

from app.notifications.notification_repo import FirestoreNotificationRepository
from app.notifications.token_repo import FirestoreTokenRepository
from google.cloud.firestore import SERVER_TIMESTAMP, ArrayRemove


def _client_with_snapshot(*, exists: bool, data: dict | None = None) -> MagicMock:
  client = MagicMock()
  snapshot = MagicMock()
  snapshot.exists = exists
  snapshot.to_dict.return_value = data
  client.collection.return_value.document.return_value.get.return_value = snapshot
  return client


def test_get_tokens_returns_none_for_missing_document():
  client = _client_with_snapshot(exists=False)

  assert FirestoreTokenRepository(client=client).get_tokens("U") is None
  client.collection.assert_called_once_with("fcm_tokens")
  client.collection.return_value.document.assert_called_once_with("U")


def test_get_tokens_keeps_only_non_empty_strings():
  client = _client_with_snapshot(exists=True, data={"tokens": ["A", "", 7, None, "B"]})

  assert FirestoreTokenRepository(client=client).get_tokens("U") == ["A", "B"]


def test_get_tokens_treats_missing_field_as_empty():
  client = _client_with_snapshot(exists=True, data={"updated_at": "x"})

  assert FirestoreTokenRepository(client=client).get_tokens("U") == []


def test_remove_tokens_issues_a_single_array_remove():
  client = MagicMock()

  FirestoreTokenRepository(client=client, collection="device_tokens").remove_tokens("U", ["B", "C"])

  client.collection.assert_called_once_with("device_tokens")
  update = client.collection.return_value.document.return_value.update
  update.assert_called_once()
  sentinel = update.call_args.args[0]["tokens"]
  assert isinstance(sentinel, ArrayRemove)
  assert list(sentinel.values) == ["B", "C"]
  client.collection.return_value.document.return_value.set.assert_not_called()


def test_remove_tokens_skips_empty_input():
  client = MagicMock()

  FirestoreTokenRepository(client=client).remove_tokens("U", [])

  client.collection.assert_not_called()


def test_create_stamps_server_time_and_returns_id():
  client = MagicMock()
  reference = MagicMock()
  reference.id = "n42"
  client.collection.return_value.add.return_value = (None, reference)

  notification_id = FirestoreNotificationRepository(client=client).create({"user_id": "U", "type": "test"})

  assert notification_id == "n42"
  client.collection.assert_called_once_with("notifications")
  document = client.collection.return_value.add.call_args.args[0]
  assert document["user_id"] == "U"
  assert document["created_at"] is SERVER_TIMESTAMP


def test_mark_sent_updates_status_fields():
  client = MagicMock()

  FirestoreNotificationRepository(client=client).mark_sent("notifications/n1", success_count=2, failure_count=1)

  client.document.assert_called_once_with("notifications/n1")
  client.document.return_value.update.assert_called_once_with({"fcm_sent": True, "fcm_sent_at": SERVER_TIMESTAMP, "fcm_success_count": 2, "fcm_failure_count": 1})


def test_mark_failed_leaves_counts_untouched():
  client = MagicMock()

  FirestoreNotificationRepository(client=client).mark_failed("notifications/n1", error_message="quota exceeded")

  fields = client.document.return_value.update.call_args.args[0]
  assert fields == {"fcm_sent": False, "fcm_error": "quota exceeded", "fcm_error_at": SERVER_TIMESTAMP}
