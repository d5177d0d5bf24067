"""Client probe: reports at most one slow TTFB measurement per page load."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

import httpx

from ttfb_monitor.lib.tokens import TOKEN_HEADER_NAME
from ttfb_monitor.probe.signals import (
  NavigationTiming,
  calculate_ttfb,
  collect_cookie_names,
  collect_query_keys,
  detect_browser,
  detect_device_type,
)
from ttfb_monitor.services.aggregation import round_half_up

logger = logging.getLogger(__name__)

DEFAULT_WARNING_THRESHOLD_MS = 800


@dataclass
class PageContext:
  """What the probe can see of the current page."""

  url: str
  cookie: str = ''
  user_agent: str = ''
  referrer: str = ''


@dataclass
class ProbeConfig:
  """Values served by the probe-config endpoint."""

  rest_url: str
  token: str
  warning_threshold: int = DEFAULT_WARNING_THRESHOLD_MS

  @classmethod
  def from_response(cls, data: dict) -> 'ProbeConfig':
    return cls(
      rest_url=data['restUrl'],
      token=data['token'],
      warning_threshold=int(data.get('warningThreshold', DEFAULT_WARNING_THRESHOLD_MS)),
    )


class ClientProbe:
  """Measures TTFB for one page load and reports it when it is slow.

  Two pathways can deliver a measurement: navigation timing entries from an
  observer or the performance buffer, and the legacy timing read at load
  completion. Whichever fires first with a slow value sends; the other is a
  no-op.
  """

  def __init__(
    self,
    config: ProbeConfig,
    page: PageContext,
    client: httpx.AsyncClient,
    now_fn: Optional[Callable[[], datetime]] = None,
  ):
    self.config = config
    self.page = page
    self.client = client
    self.now_fn = now_fn or (lambda: datetime.now(timezone.utc))
    self.sent = False
    self._task: Optional[asyncio.Task] = None

  def build_payload(self, ttfb: float) -> dict:
    return {
      'ttfb': round_half_up(ttfb),
      'url': self.page.url,
      'timestamp': self.now_fn().isoformat(),
      'queryParamKeys': collect_query_keys(self.page.url),
      'cookieNames': collect_cookie_names(self.page.cookie),
      'deviceType': detect_device_type(self.page.user_agent),
      'browser': detect_browser(self.page.user_agent),
      'referrer': self.page.referrer or '',
    }

  def maybe_send(self, timing: Optional[NavigationTiming]) -> Optional[asyncio.Task]:
    """Schedule a report when the measurement is slow and none was sent.

    Must be called from a running event loop. Returns the send task, or None
    when nothing was scheduled.
    """
    if self.sent:
      return None

    ttfb = calculate_ttfb(timing)
    if ttfb <= self.config.warning_threshold:
      return None

    # Set before scheduling so a second pathway cannot also send
    self.sent = True
    self._task = asyncio.create_task(self._send(self.build_payload(ttfb)))
    return self._task

  def handle_navigation_entries(self, entries: Iterable[dict]) -> Optional[asyncio.Task]:
    """Observer/buffer pathway: use the first navigation entry."""
    for entry in entries:
      return self.maybe_send(NavigationTiming.from_entry(entry))
    return None

  def handle_load(self, legacy_timing: Optional[NavigationTiming]) -> Optional[asyncio.Task]:
    """Load-completion fallback using legacy timing fields."""
    return self.maybe_send(legacy_timing)

  async def _send(self, payload: dict) -> None:
    try:
      await self.client.post(
        self.config.rest_url,
        json=payload,
        headers={TOKEN_HEADER_NAME: self.config.token},
      )
    except httpx.HTTPError as e:
      # Best effort: never retried
      logger.debug(f'TTFB report failed: {e}')

  async def wait(self) -> None:
    """Wait for a scheduled send to finish (used on shutdown and in tests)."""
    if self._task is not None:
      await self._task
