import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import get_settings

# Canonical callable error codes and the HTTP status each one is sent with.
_CALLABLE_STATUS_CODES = {
  "ok": status.HTTP_200_OK,
  "cancelled": 499,
  "unknown": status.HTTP_500_INTERNAL_SERVER_ERROR,
  "invalid-argument": status.HTTP_400_BAD_REQUEST,
  "deadline-exceeded": status.HTTP_504_GATEWAY_TIMEOUT,
  "not-found": status.HTTP_404_NOT_FOUND,
  "already-exists": status.HTTP_409_CONFLICT,
  "permission-denied": status.HTTP_403_FORBIDDEN,
  "unauthenticated": status.HTTP_401_UNAUTHORIZED,
  "resource-exhausted": status.HTTP_429_TOO_MANY_REQUESTS,
  "failed-precondition": status.HTTP_400_BAD_REQUEST,
  "aborted": status.HTTP_409_CONFLICT,
  "out-of-range": status.HTTP_400_BAD_REQUEST,
  "unimplemented": status.HTTP_501_NOT_IMPLEMENTED,
  "internal": status.HTTP_500_INTERNAL_SERVER_ERROR,
  "unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
  "data-loss": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class CallableError(Exception):
  """Error reported to callers of a callable endpoint as `{"error": {"status", "message"}}`."""

  def __init__(self, code: str, message: str) -> None:
    if code not in _CALLABLE_STATUS_CODES:
      raise ValueError(f"Unknown callable error code: {code}")
    super().__init__(message)
    self.code = code
    self.message = message

  @property
  def http_status(self) -> int:
    return _CALLABLE_STATUS_CODES[self.code]

  @property
  def wire_status(self) -> str:
    # "invalid-argument" -> "INVALID_ARGUMENT"
    return self.code.replace("-", "_").upper()

  def to_payload(self) -> dict[str, Any]:
    return {"error": {"status": self.wire_status, "message": self.message}}


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    error_message = str(value)
    if error_message:
      return f"{type(value).__name__}: {error_message}"
    return type(value).__name__
  return str(value)


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  """Build a safe error payload that avoids leaking internal details to clients."""
  payload: dict[str, Any] = {"detail": detail}
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if "ctx" in scrubbed and isinstance(scrubbed["ctx"], dict):
      scrubbed_ctx = dict(scrubbed["ctx"])
      scrubbed_ctx.pop("input", None)
      scrubbed["ctx"] = scrubbed_ctx

    sanitized.append(_coerce_json_safe(scrubbed))

  return sanitized


async def callable_exception_handler(request: Request, exc: CallableError) -> JSONResponse:
  """Render callable errors in the callable protocol's error envelope."""
  request_id = getattr(request.state, "request_id", None)
  logger = logging.getLogger("uvicorn.error")
  if exc.http_status >= 500:
    logger.error("Callable error request_id=%s path=%s status=%s message=%s", request_id, request.url.path, exc.wire_status, exc.message, exc_info=exc.__cause__ is not None)
  else:
    logger.warning("Callable error request_id=%s path=%s status=%s message=%s", request_id, request.url.path, exc.wire_status, exc.message)
  return JSONResponse(status_code=exc.http_status, content=exc.to_payload())


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  logger = logging.getLogger("uvicorn.error")
  request_id = getattr(request.state, "request_id", None)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors for debugging without leaking payloads."""
  request_id = getattr(request.state, "request_id", None)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger = logging.getLogger("uvicorn.error")
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle FastAPI HTTPExceptions while avoiding leaking internal diagnostics."""
  settings = get_settings()
  request_id = getattr(request.state, "request_id", None)
  if exc.status_code >= 500:
    logger = logging.getLogger("uvicorn.error")
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail, exc_info=True)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  if settings.log_http_4xx:
    logger = logging.getLogger("uvicorn.error")
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=getattr(exc, "headers", None))
