"""Ingest classifier: decides whether a reported measurement is stored.

The client only reports measurements above its own threshold, but that
threshold is advisory; the server applies the warning threshold again.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ttfb_monitor.lib.config import Settings
from ttfb_monitor.lib.list_codec import encode_list, unique_ordered
from ttfb_monitor.lib.metrics import record_ingest
from ttfb_monitor.lib.sanitize import sanitize_text_field, sanitize_url
from ttfb_monitor.models.ingest import Category, IngestResult, RequestContext, TtfbReportInput
from ttfb_monitor.models.ttfb_sample import TtfbSample
from ttfb_monitor.services.sample_store import SampleStore, to_naive_utc

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
  return datetime.now(timezone.utc)


def parse_client_timestamp(value: Optional[str], now: Optional[datetime] = None) -> datetime:
  """Resolve recorded_at from the client's ISO 8601 timestamp.

  Missing, unparseable or out-of-range values fall back to `now`. Naive
  timestamps are read as UTC. The result is naive UTC truncated to whole
  seconds.
  """
  fallback = now or utc_now()

  if value:
    text = value.strip()
    if text.endswith(('Z', 'z')):
      text = text[:-1] + '+00:00'
    try:
      parsed = datetime.fromisoformat(text)
      if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
      # Offsets near datetime.min/max overflow when shifted to UTC
      return to_naive_utc(parsed).replace(microsecond=0)
    except (ValueError, OverflowError):
      logger.debug(f'Unusable client timestamp {value!r}, using ingest time')

  return to_naive_utc(fallback).replace(microsecond=0)


def normalize_country(value: Optional[str]) -> str:
  """Edge-provided country code: sanitized, first 3 chars, uppercased."""
  return sanitize_text_field(value)[:3].upper()


def normalize_signal_list(values: Optional[Iterable[str]]) -> List[str]:
  """Sanitize each entry, drop empties, de-duplicate in order, cap."""
  if not values:
    return []
  return unique_ordered(sanitize_text_field(value) for value in values)


class IngestClassifier:
  """Validates, classifies and stores incoming TTFB reports."""

  def __init__(self, store: SampleStore, settings: Settings):
    self.store = store
    self.warning_threshold_ms = settings.warning_threshold_ms
    self.bad_threshold_ms = settings.bad_threshold_ms

  def categorize(self, ttfb_ms: int) -> Category:
    return Category.BAD if ttfb_ms >= self.bad_threshold_ms else Category.WARNING

  def classify_and_store(
    self,
    report: TtfbReportInput,
    context: RequestContext,
    now: Optional[datetime] = None,
  ) -> IngestResult:
    """Classify a report and persist it when it is slow enough.

    Args:
        report: Validated client payload
        context: Role and country resolved from the request
        now: Ingest time override (defaults to current UTC time)

    Returns:
        IngestResult describing the outcome; store errors are returned,
        not raised
    """
    if report.ttfb <= self.warning_threshold_ms:
      record_ingest('below_threshold')
      return IngestResult.below_threshold()

    category = self.categorize(report.ttfb)
    query_params = normalize_signal_list(report.query_param_keys)
    cookies = normalize_signal_list(report.cookie_names)

    sample = TtfbSample(
      recorded_at=parse_client_timestamp(report.timestamp, now),
      ttfb_ms=report.ttfb,
      category=category.value,
      url=sanitize_url(report.url),
      query_params=encode_list(query_params),
      cookies=encode_list(cookies),
      user_role=context.user_role or 'guest',
      country=normalize_country(context.country),
      device_type=sanitize_text_field(report.device_type),
      browser=sanitize_text_field(report.browser),
      referrer=sanitize_url(report.referrer),
    )

    if not self.store.insert(sample):
      record_ingest('store_failure', category.value)
      return IngestResult.store_failure(category)

    record_ingest('stored', category.value, report.ttfb)
    logger.info(f'Stored {category.value} sample: {report.ttfb}ms for {sample.url}')
    return IngestResult.stored(category)
