"""Aggregation engine: counts and similarity groupings over a time window.

Shared by the insights endpoint (trailing seven days) and the daily summary
email (previous local calendar day). The engine only reads from the store.
"""

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Tuple

from ttfb_monitor.lib.list_codec import display_list
from ttfb_monitor.models.summary import (
  AggregationSummary,
  SampleView,
  SimilarityGroup,
  SimilarityGroupings,
  SummaryCounts,
)
from ttfb_monitor.models.ttfb_sample import TtfbSample
from ttfb_monitor.services.sample_store import TOP_SLOWEST_LIMIT, SampleStore

logger = logging.getLogger(__name__)

SIMILARITY_LIMIT = 5
EMPTY_LABEL = 'None'
INSIGHTS_DAYS = 7


def round_half_up(value: float) -> int:
  """Round to the nearest integer, halves away from zero."""
  if value < 0:
    return -round_half_up(-value)
  return int(value + 0.5)


def similarity_label(sample: TtfbSample, field: str) -> str:
  """Label used to bucket a sample for one field."""
  if field in ('query_params', 'cookies'):
    value = display_list(getattr(sample, field))
  else:
    value = str(getattr(sample, field) or '')
  value = value.strip()
  return value if value else EMPTY_LABEL


def group_by_field(
  samples: Iterable[TtfbSample], field: str, limit: int = SIMILARITY_LIMIT
) -> List[SimilarityGroup]:
  """Bucket samples by exact label, most frequent first.

  Ties keep the order in which labels were first seen.
  """
  buckets: Dict[str, Dict[str, int]] = {}
  for sample in samples:
    label = similarity_label(sample, field)
    if label not in buckets:
      buckets[label] = {'count': 0, 'sum': 0}
    buckets[label]['count'] += 1
    buckets[label]['sum'] += int(sample.ttfb_ms)

  ranked = sorted(buckets.items(), key=lambda item: item[1]['count'], reverse=True)

  return [
    SimilarityGroup(
      label=label,
      count=stats['count'],
      average=round_half_up(stats['sum'] / max(1, stats['count'])),
    )
    for label, stats in ranked[:limit]
  ]


def insights_window(now: datetime, tz: tzinfo) -> Tuple[datetime, datetime]:
  """Trailing window: local midnight seven days ago up to now, in UTC."""
  local_now = now.astimezone(tz)
  start_local = (local_now - timedelta(days=INSIGHTS_DAYS)).replace(
    hour=0, minute=0, second=0, microsecond=0
  )
  return start_local.astimezone(timezone.utc), local_now.astimezone(timezone.utc)


def previous_day_window(now: datetime, tz: tzinfo) -> Tuple[datetime, datetime]:
  """Yesterday in local time, 00:00:00 through 23:59:59, in UTC."""
  local_now = now.astimezone(tz)
  start_local = (local_now - timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
  end_local = start_local.replace(hour=23, minute=59, second=59)
  return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


class AggregationEngine:
  """Computes AggregationSummary views from the sample store."""

  def __init__(self, store: SampleStore, top_limit: int = TOP_SLOWEST_LIMIT):
    self.store = store
    self.top_limit = top_limit

  def summarize(self, start: datetime, end: datetime) -> AggregationSummary:
    """Summarize samples recorded between start and end (inclusive).

    Args:
        start: Window start (UTC)
        end: Window end (UTC)

    Returns:
        AggregationSummary; an empty window yields zero counts and empty lists
    """
    counts = self.store.summary_counts(start, end)
    top_slowest = self.store.top_slowest(start, end, self.top_limit)

    logger.info(
      f'Summarized window {start.isoformat()} - {end.isoformat()}: '
      f'{counts["warning"]} warning, {counts["bad"]} bad, {len(top_slowest)} top slowest'
    )

    return AggregationSummary(
      start=start,
      end=end,
      counts=SummaryCounts(**counts),
      top_slowest=[SampleView.from_sample(sample) for sample in top_slowest],
      similarity=SimilarityGroupings(
        by_url=group_by_field(top_slowest, 'url'),
        by_query_params=group_by_field(top_slowest, 'query_params'),
        by_cookies=group_by_field(top_slowest, 'cookies'),
      ),
    )
