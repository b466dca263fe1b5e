import logging
from typing import Any

import firebase_admin
from firebase_admin import App, auth, credentials, firestore
from google.cloud.firestore import Client as FirestoreClient

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


def initialize_firebase(settings: Settings | None = None) -> App:
  """Initializes the Firebase Admin SDK once per process and returns the default app."""
  if firebase_admin._apps:
    return firebase_admin.get_app()

  settings = settings or get_settings()
  options: dict[str, Any] = {}
  if settings.firebase_project_id:
    options["projectId"] = settings.firebase_project_id
  else:
    # Cloud Run exposes the project through application default credentials.
    logger.warning("FIREBASE_PROJECT_ID not set; relying on application default credentials for the project id.")

  if settings.firebase_service_account_json_path:
    cred = credentials.Certificate(settings.firebase_service_account_json_path)
    app = firebase_admin.initialize_app(cred, options or None)
  else:
    app = firebase_admin.initialize_app(options=options or None)

  logger.info("Firebase Admin SDK initialized project_id=%s", settings.firebase_project_id or "<default>")
  return app


def get_firestore_client(app: App | None = None) -> FirestoreClient:
  """Returns the Firestore client bound to the given (or default) Firebase app."""
  if app is None:
    app = initialize_firebase()
  return firestore.client(app)


def verify_id_token(id_token: str, app: App | None = None) -> dict[str, Any] | None:
  """Verifies a Firebase ID token. Returns None when the token is rejected."""
  if app is None:
    app = initialize_firebase()

  try:
    return auth.verify_id_token(id_token, app=app)
  except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError, auth.CertificateFetchError, auth.UserDisabledError) as e:
    logger.warning("Token verification failed: %s", e)
    return None


def close_firebase() -> None:
  """Delete the default Firebase app so its clients release their resources."""
  if not firebase_admin._apps:
    return

  firebase_admin.delete_app(firebase_admin.get_app())
  logger.info("Firebase Admin SDK app deleted.")
