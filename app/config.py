"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the GymBuddy notification service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str | None
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  notifications_collection: str
  tokens_collection: str
  fcm_dry_run: bool
  event_secret: str | None
  event_audience: str | None
  event_service_account: str | None


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  # Mobile clients do not need CORS; only browser callers configure origins.
  if not raw:
    return ()

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if "*" in origins:
    raise ValueError("GYMBUDDY_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _parse_collection(raw: str | None, *, name: str, default: str) -> str:
  """Validate a top-level Firestore collection id."""
  value = _optional_str(raw) or default
  if "/" in value:
    raise ValueError(f"{name} must be a top-level collection id without '/'.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("GYMBUDDY_ENV", "development").lower()
  debug = _parse_bool(os.getenv("GYMBUDDY_DEBUG"))

  log_max_bytes = int(os.getenv("GYMBUDDY_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("GYMBUDDY_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("GYMBUDDY_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("GYMBUDDY_LOG_BACKUP_COUNT must be zero or a positive integer.")

  notifications_collection = _parse_collection(os.getenv("GYMBUDDY_NOTIFICATIONS_COLLECTION"), name="GYMBUDDY_NOTIFICATIONS_COLLECTION", default="notifications")
  tokens_collection = _parse_collection(os.getenv("GYMBUDDY_TOKENS_COLLECTION"), name="GYMBUDDY_TOKENS_COLLECTION", default="fcm_tokens")

  event_audience = _optional_str(os.getenv("GYMBUDDY_EVENT_AUDIENCE"))
  event_service_account = _optional_str(os.getenv("GYMBUDDY_EVENT_SERVICE_ACCOUNT"))
  # Any Google account can mint a token for an audience, so the audience alone proves nothing.
  if bool(event_audience) != bool(event_service_account):
    raise ValueError("GYMBUDDY_EVENT_AUDIENCE and GYMBUDDY_EVENT_SERVICE_ACCOUNT must be set together.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("GYMBUDDY_ALLOWED_ORIGINS")),
    log_dir=_optional_str(os.getenv("GYMBUDDY_LOG_DIR")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("GYMBUDDY_LOG_HTTP_4XX")),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    notifications_collection=notifications_collection,
    tokens_collection=tokens_collection,
    fcm_dry_run=_parse_bool(os.getenv("GYMBUDDY_FCM_DRY_RUN")),
    event_secret=_optional_str(os.getenv("GYMBUDDY_EVENT_SECRET")),
    event_audience=event_audience,
    event_service_account=event_service_account,
  )
