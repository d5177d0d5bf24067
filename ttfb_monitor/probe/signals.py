"""Measurement and signal extraction for the page probe.

Everything here is a pure function of what the browser exposes: navigation
timing, the page URL, the cookie string and the user agent.
"""

import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import parse_qsl, urlsplit

from ttfb_monitor.lib.list_codec import unique_ordered

_MOBILE_RE = re.compile(r'Mobi|Android', re.IGNORECASE)
_TABLET_RE = re.compile(r'Tablet|iPad', re.IGNORECASE)


@dataclass
class NavigationTiming:
  """The two navigation timing marks TTFB is computed from (milliseconds)."""

  request_start: Optional[float] = None
  response_start: Optional[float] = None

  @classmethod
  def from_entry(cls, entry: dict) -> 'NavigationTiming':
    """Build from a PerformanceNavigationTiming-like mapping."""
    return cls(request_start=entry.get('requestStart'), response_start=entry.get('responseStart'))


def calculate_ttfb(timing: Optional[NavigationTiming]) -> float:
  """responseStart - requestStart, or 0 when either mark is missing or zero."""
  if timing is None or not timing.request_start or not timing.response_start:
    return 0
  return max(0, timing.response_start - timing.request_start)


def detect_device_type(user_agent: str) -> str:
  if _MOBILE_RE.search(user_agent or ''):
    return 'mobile'
  if _TABLET_RE.search(user_agent or ''):
    return 'tablet'
  return 'desktop'


def detect_browser(user_agent: str) -> str:
  ua = user_agent or ''
  if 'Chrome/' in ua and 'Edg/' not in ua:
    return 'Chrome'
  if 'Edg/' in ua:
    return 'Edge'
  if 'Safari/' in ua and 'Chrome/' not in ua:
    return 'Safari'
  if 'Firefox/' in ua:
    return 'Firefox'
  return 'Other'


def collect_query_keys(url: str) -> List[str]:
  """Query parameter names of a URL; values are discarded, blank-valued keys kept."""
  try:
    query = urlsplit(url or '').query
  except ValueError:
    return []
  return unique_ordered(key for key, _ in parse_qsl(query, keep_blank_values=True))


def collect_cookie_names(cookie_string: str) -> List[str]:
  """Cookie names from a document.cookie string; segments without '=' are skipped."""
  names = []
  for segment in (cookie_string or '').split(';'):
    name, sep, _ = segment.partition('=')
    if not sep:
      continue
    names.append(name.strip())
  return unique_ordered(names)
