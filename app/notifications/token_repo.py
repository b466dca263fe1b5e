"""Repository helpers for per-user FCM token documents."""

from __future__ import annotations

from collections.abc import Sequence

from google.cloud.firestore import ArrayRemove
from google.cloud.firestore import Client as FirestoreClient

TOKENS_FIELD = "tokens"


class FirestoreTokenRepository:
  """Read and prune the `tokens` array of `{collection}/{user_id}` documents."""

  def __init__(self, *, client: FirestoreClient, collection: str = "fcm_tokens") -> None:
    self._client = client
    self._collection = collection

  def get_tokens(self, user_id: str) -> list[str] | None:
    """Return the user's device tokens, or None when no token document exists."""
    snapshot = self._client.collection(self._collection).document(user_id).get()
    if not snapshot.exists:
      return None

    raw_tokens = (snapshot.to_dict() or {}).get(TOKENS_FIELD)
    if not isinstance(raw_tokens, list):
      return []

    return [token for token in raw_tokens if isinstance(token, str) and token]

  def remove_tokens(self, user_id: str, tokens: Sequence[str]) -> None:
    """Remove exactly these token values; concurrent additions are untouched."""
    if not tokens:
      return

    self._client.collection(self._collection).document(user_id).update({TOKENS_FIELD: ArrayRemove(list(tokens))})
