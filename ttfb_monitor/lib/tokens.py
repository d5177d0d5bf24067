"""Anti-forgery tokens for the ingest endpoint.

A token is `<tick>.<signature>` where tick counts half-lifetimes since the
epoch and the signature is an HMAC over the tick and the session id. A token
verifies during the tick it was issued in and the following one, so its
lifetime lies between half and all of `lifetime_hours`.
"""

import hashlib
import hmac
import secrets
import time
from typing import Optional

SESSION_COOKIE_NAME = 'ttfb_session'
TOKEN_HEADER_NAME = 'X-TTFB-Token'


def new_session_id() -> str:
  """Generate a random session identifier for the session cookie."""
  return secrets.token_urlsafe(24)


class AntiForgeryTokens:
  """Issues and verifies per-session anti-forgery tokens."""

  def __init__(self, secret: str, lifetime_hours: int = 24):
    self._secret = secret.encode()
    self._tick_seconds = max(1, lifetime_hours * 3600 // 2)

  def _tick(self, now: Optional[float] = None) -> int:
    return int((time.time() if now is None else now) // self._tick_seconds)

  def _sign(self, tick: int, session_id: str) -> str:
    message = f'{tick}|{session_id}'.encode()
    return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

  def issue(self, session_id: str, now: Optional[float] = None) -> str:
    tick = self._tick(now)
    return f'{tick}.{self._sign(tick, session_id)}'

  def verify(self, token: Optional[str], session_id: Optional[str], now: Optional[float] = None) -> bool:
    """Check a token against the session it should be bound to."""
    if not token or not session_id:
      return False

    tick_part, _, signature = token.partition('.')
    try:
      tick = int(tick_part)
    except ValueError:
      return False

    current = self._tick(now)
    if tick not in (current, current - 1):
      return False

    return hmac.compare_digest(signature, self._sign(tick, session_id))
