from __future__ import annotations

import pytest
from app.notifications.contracts import DeliveryOutcome, PushPayload, PushServiceError
from app.notifications.push_sender import FcmMulticastSender, classify_send_error, select_tokens_to_prune
from firebase_admin import exceptions, messaging


def _payload() -> PushPayload:
  return PushPayload(title="title", body="body", data={"notification_id": "n1"})


def _ok(index: int) -> messaging.SendResponse:
  return messaging.SendResponse({"name": f"projects/demo/messages/{index}"}, None)


def _failed(exc: Exception) -> messaging.SendResponse:
  return messaging.SendResponse(None, exc)


@pytest.mark.parametrize(
  ("exc", "code"),
  [
    (messaging.UnregisteredError("Requested entity was not found."), "registration-token-not-registered"),
    (exceptions.InvalidArgumentError("The registration token is not a valid FCM registration token"), "invalid-registration-token"),
    (exceptions.InvalidArgumentError("Message payload too large"), "invalid-argument"),
    (messaging.SenderIdMismatchError("SenderId mismatch"), "mismatched-credential"),
    (messaging.QuotaExceededError("Quota exceeded"), "message-rate-exceeded"),
    (messaging.ThirdPartyAuthError("APNs certificate rejected"), "third-party-auth-error"),
    (exceptions.UnavailableError("try later"), "server-unavailable"),
    (exceptions.InternalError("boom"), "internal-error"),
    (RuntimeError("other"), "unknown-error"),
    (None, "unknown-error"),
  ],
)
def test_classify_send_error(exc, code):
  assert classify_send_error(exc) == code


def test_select_tokens_to_prune_is_exactly_the_permanent_failures():
  tokens = ["a", "b", "c", "d", "e"]
  outcomes = [
    DeliveryOutcome(token="a", success=True),
    DeliveryOutcome(token="b", success=False, error_code="invalid-registration-token"),
    DeliveryOutcome(token="c", success=False, error_code="message-rate-exceeded"),
    DeliveryOutcome(token="d", success=False, error_code="messaging/registration-token-not-registered"),
    DeliveryOutcome(token="e", success=False, error_code=None),
  ]

  assert select_tokens_to_prune(tokens, outcomes) == ["b", "d"]


def test_select_tokens_to_prune_collapses_duplicates():
  tokens = ["a", "a"]
  outcomes = [DeliveryOutcome(token="a", success=False, error_code="invalid-registration-token")] * 2

  assert select_tokens_to_prune(tokens, outcomes) == ["a"]


def test_send_multicast_maps_responses_in_token_order(monkeypatch):
  captured = {}

  def _send(message, dry_run=False, app=None):
    captured["tokens"] = message.tokens
    captured["dry_run"] = dry_run
    return messaging.BatchResponse([_ok(0), _failed(messaging.UnregisteredError("gone")), _failed(exceptions.UnavailableError("later"))])

  monkeypatch.setattr("app.notifications.push_sender.messaging.send_each_for_multicast", _send)

  result = FcmMulticastSender(dry_run=True).send_multicast(_payload(), ["A", "B", "C"])

  assert captured == {"tokens": ["A", "B", "C"], "dry_run": True}
  assert result.success_count == 1
  assert result.failure_count == 2
  assert [outcome.token for outcome in result.outcomes] == ["A", "B", "C"]
  assert result.outcomes[0].message_id == "projects/demo/messages/0"
  assert result.outcomes[1].error_code == "registration-token-not-registered"
  assert result.outcomes[2].error_code == "server-unavailable"


def test_send_multicast_chunks_large_token_lists(monkeypatch):
  calls = []

  def _send(message, dry_run=False, app=None):
    calls.append(list(message.tokens))
    return messaging.BatchResponse([_ok(index) for index, _ in enumerate(message.tokens)])

  monkeypatch.setattr("app.notifications.push_sender.messaging.send_each_for_multicast", _send)
  tokens = [f"token-{index}" for index in range(1201)]

  result = FcmMulticastSender().send_multicast(_payload(), tokens)

  assert [len(chunk) for chunk in calls] == [500, 500, 201]
  assert [outcome.token for outcome in result.outcomes] == tokens
  assert result.success_count == 1201


def test_send_multicast_raises_push_service_error_on_systemic_failure(monkeypatch):
  def _send(message, dry_run=False, app=None):
    raise exceptions.UnauthenticatedError("Request had invalid authentication credentials")

  monkeypatch.setattr("app.notifications.push_sender.messaging.send_each_for_multicast", _send)

  with pytest.raises(PushServiceError, match="invalid authentication credentials") as excinfo:
    FcmMulticastSender().send_multicast(_payload(), ["A"])

  assert isinstance(excinfo.value.__cause__, exceptions.UnauthenticatedError)


def test_send_multicast_keeps_delivered_chunks_when_a_later_chunk_fails(monkeypatch):
  calls = []

  def _send(message, dry_run=False, app=None):
    calls.append(list(message.tokens))
    if len(calls) > 1:
      raise RuntimeError("network down")
    return messaging.BatchResponse([_failed(messaging.UnregisteredError("gone"))] + [_ok(index) for index in range(1, len(message.tokens))])

  monkeypatch.setattr("app.notifications.push_sender.messaging.send_each_for_multicast", _send)
  tokens = [f"t{index}" for index in range(501)]

  result = FcmMulticastSender().send_multicast(_payload(), tokens)

  assert [len(chunk) for chunk in calls] == [500, 1]
  assert result.success_count == 499
  assert result.failure_count == 2
  assert [outcome.token for outcome in result.outcomes] == tokens
  assert result.outcomes[0].error_code == "registration-token-not-registered"
  assert result.outcomes[500].error_code == "unknown-error"
  assert result.outcomes[500].error_message == "network down"
  assert select_tokens_to_prune(tokens, result.outcomes) == ["t0"]
