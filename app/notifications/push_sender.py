"""Push notification delivery through Firebase Cloud Messaging."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from firebase_admin import App, exceptions, messaging

from app.notifications.contracts import DeliveryOutcome, MulticastResult, PushPayload, PushServiceError
from app.notifications.payload import to_multicast_message

logger = logging.getLogger(__name__)

INVALID_REGISTRATION_TOKEN = "invalid-registration-token"
REGISTRATION_TOKEN_NOT_REGISTERED = "registration-token-not-registered"
PRUNABLE_ERROR_CODES = frozenset({INVALID_REGISTRATION_TOKEN, REGISTRATION_TOKEN_NOT_REGISTERED})

# FCM rejects multicast messages addressed to more tokens than this.
MAX_TOKENS_PER_CALL = 500


def classify_send_error(exc: BaseException | None) -> str:
  """Map a per-token FCM exception to a stable failure code."""
  if exc is None:
    return "unknown-error"

  if isinstance(exc, messaging.UnregisteredError):
    return REGISTRATION_TOKEN_NOT_REGISTERED

  if isinstance(exc, messaging.SenderIdMismatchError):
    return "mismatched-credential"

  if isinstance(exc, messaging.QuotaExceededError):
    return "message-rate-exceeded"

  if isinstance(exc, messaging.ThirdPartyAuthError):
    return "third-party-auth-error"

  if isinstance(exc, exceptions.InvalidArgumentError):
    # FCM reports malformed tokens as a generic INVALID_ARGUMENT naming the registration token.
    if "registration token" in str(exc).lower():
      return INVALID_REGISTRATION_TOKEN
    return "invalid-argument"

  if isinstance(exc, exceptions.UnavailableError):
    return "server-unavailable"

  if isinstance(exc, exceptions.InternalError):
    return "internal-error"

  return "unknown-error"


def normalize_error_code(code: str | None) -> str | None:
  """Strip the `messaging/` namespace some producers prefix codes with."""
  if code is None:
    return None
  return code.removeprefix("messaging/")


def select_tokens_to_prune(tokens: Sequence[str], outcomes: Iterable[DeliveryOutcome]) -> list[str]:
  """Return the tokens whose delivery failed permanently, in send order."""
  stale: list[str] = []
  for token, outcome in zip(tokens, outcomes, strict=False):
    if outcome.success:
      continue

    if normalize_error_code(outcome.error_code) in PRUNABLE_ERROR_CODES and token not in stale:
      stale.append(token)

  return stale


def _mask_token(token: str) -> str:
  return f"{token[:12]}..." if len(token) > 12 else token


class FcmMulticastSender:
  """`firebase_admin.messaging` backed multicast sender."""

  def __init__(self, *, app: App | None = None, dry_run: bool = False) -> None:
    self._app = app
    self._dry_run = dry_run

  def send_multicast(self, payload: PushPayload, tokens: Sequence[str]) -> MulticastResult:
    """
    Send a payload to every token; per-token failures are returned, systemic failures raised.
    A systemic failure after at least one chunk went out returns the partial result instead, with the unsent tokens failed as `unknown-error`.
    """
    outcomes: list[DeliveryOutcome] = []
    success_count = 0
    failure_count = 0

    for start in range(0, len(tokens), MAX_TOKENS_PER_CALL):
      chunk = list(tokens[start : start + MAX_TOKENS_PER_CALL])
      try:
        response = messaging.send_each_for_multicast(to_multicast_message(payload, chunk), dry_run=self._dry_run, app=self._app)
      except Exception as exc:  # noqa: BLE001
        error_message = str(exc) or type(exc).__name__
        if start == 0:
          raise PushServiceError(error_message) from exc

        unsent = tokens[start:]
        logger.error("FCM multicast aborted after %d of %d token(s): %s", start, len(tokens), error_message, exc_info=True)
        outcomes.extend(DeliveryOutcome(token=token, success=False, error_code="unknown-error", error_message=error_message) for token in unsent)
        return MulticastResult(outcomes=outcomes, success_count=success_count, failure_count=failure_count + len(unsent))

      success_count += response.success_count
      failure_count += response.failure_count

      # send_each_for_multicast preserves token order in its responses.
      for token, send_response in zip(chunk, response.responses, strict=True):
        if send_response.success:
          outcomes.append(DeliveryOutcome(token=token, success=True, message_id=send_response.message_id))
          continue

        error = send_response.exception
        code = classify_send_error(error)
        logger.info("FCM delivery failed token=%s code=%s error=%s", _mask_token(token), code, error)
        outcomes.append(DeliveryOutcome(token=token, success=False, error_code=code, error_message=str(error) if error else None))

    return MulticastResult(outcomes=outcomes, success_count=success_count, failure_count=failure_count)
