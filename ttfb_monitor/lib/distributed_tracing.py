"""Correlation-ID based request tracking using Python contextvars."""

import contextvars
from uuid import uuid4

# Async-safe, propagates through awaited calls within one request
correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
  'request_id', default='no-request-id'
)


def get_correlation_id() -> str:
  """Retrieve the current request's correlation ID.

  Returns:
      Current correlation ID or 'no-request-id' if not set
  """
  return correlation_id.get()


def set_correlation_id(request_id: str) -> None:
  """Set the correlation ID for the current request context.

  Args:
      request_id: Unique request identifier (X-Correlation-ID header or UUID)
  """
  correlation_id.set(request_id)


def generate_correlation_id() -> str:
  """Generate a new correlation ID and set it in context.

  Used by the daily summary job, which runs outside any HTTP request.
  """
  request_id = str(uuid4())
  set_correlation_id(request_id)
  return request_id

