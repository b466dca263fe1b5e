from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from starlette.concurrency import run_in_threadpool

from app.config import Settings, get_settings
from app.core.firebase import verify_id_token

logger = logging.getLogger(__name__)

# Callable clients may omit the header; the endpoint decides how to reject them.
security_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CallableAuth:
  """Verified identity of a callable request."""

  uid: str
  claims: dict[str, Any] = field(default_factory=dict)


async def get_callable_auth(token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)]) -> CallableAuth | None:
  """Verify the Firebase ID token of a callable request, returning None when absent or invalid."""
  if token is None or not token.credentials:
    return None

  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims:
    return None

  firebase_uid = decoded_claims.get("uid")
  if not firebase_uid:
    return None

  return CallableAuth(uid=str(firebase_uid), claims=decoded_claims)


def verify_event_token(token: str, *, audience: str) -> dict[str, Any] | None:
  """Verify a Google-signed OIDC token such as the one Eventarc attaches to push deliveries."""
  try:
    return google_id_token.verify_oauth2_token(token, google_requests.Request(), audience=audience)
  except (ValueError, google_auth_exceptions.GoogleAuthError) as exc:
    logger.warning("Event token verification failed: %s", exc)
    return None


def _is_expected_invoker(claims: dict[str, Any], service_account: str) -> bool:
  return claims.get("email") == service_account and claims.get("email_verified") is True


async def require_event_caller(
  settings: Annotated[Settings, Depends(get_settings)],
  authorization: str | None = Header(default=None),
  x_gymbuddy_event_secret: str | None = Header(default=None),
) -> None:
  """Admit only the configured event source: a shared secret header or an OIDC token for the trigger's service account."""
  # Secure-by-default: a forged event would push arbitrary text to any user's devices.
  if not settings.event_secret and not settings.event_audience:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Event authentication is not configured.")

  if settings.event_secret and secrets.compare_digest((x_gymbuddy_event_secret or ""), settings.event_secret):
    return

  if settings.event_audience and settings.event_service_account and authorization and authorization.startswith("Bearer "):
    claims = await run_in_threadpool(verify_event_token, authorization.removeprefix("Bearer "), audience=settings.event_audience)
    if claims is not None and _is_expected_invoker(claims, settings.event_service_account):
      return

  logger.warning("Unauthorized event delivery attempt")
  raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid event credentials.")
