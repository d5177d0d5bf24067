"""Sample store: persistence and queries for slow TTFB samples.

Each operation runs in its own short-lived session, so concurrent requests
share nothing but the database. Rows are only ever inserted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, sessionmaker

from ttfb_monitor.models.ingest import Category
from ttfb_monitor.models.ttfb_sample import TtfbSample

logger = logging.getLogger(__name__)

TOP_SLOWEST_LIMIT = 50


def to_naive_utc(value: datetime) -> datetime:
  """Convert to the naive-UTC representation stored in recorded_at."""
  if value.tzinfo is not None:
    value = value.astimezone(timezone.utc).replace(tzinfo=None)
  return value


@dataclass
class SampleFilter:
  """Listing filter. Empty category/search mean no filtering."""

  category: Optional[str] = None
  search: Optional[str] = None
  page: int = 1
  per_page: int = 20


class SampleStore:
  """SQLAlchemy-backed store for TtfbSample rows."""

  def __init__(self, session_factory: sessionmaker):
    """Initialize sample store.

    Args:
        session_factory: Factory producing sessions bound to the sample database
    """
    self._session_factory = session_factory

  def insert(self, sample: TtfbSample) -> bool:
    """Persist one sample.

    Returns:
        True if the row was committed, False on any database error
    """
    session: Session = self._session_factory()
    try:
      session.add(sample)
      session.commit()
      logger.debug(f'Stored sample {sample.id}: {sample.ttfb_ms}ms ({sample.category}) {sample.url}')
      return True
    except SQLAlchemyError as e:
      logger.error(f'Failed to store TTFB sample: {e}', exc_info=True)
      session.rollback()
      return False
    finally:
      session.close()

  def list(self, sample_filter: Optional[SampleFilter] = None) -> List[TtfbSample]:
    """Return one page of samples, newest recorded first."""
    sample_filter = sample_filter or SampleFilter()
    per_page = max(1, int(sample_filter.per_page))
    offset = max(0, (int(sample_filter.page) - 1) * per_page)

    with self._session_factory() as session:
      query = self._filtered(session.query(TtfbSample), sample_filter)
      return (
        query.order_by(TtfbSample.recorded_at.desc(), TtfbSample.id.desc())
        .limit(per_page)
        .offset(offset)
        .all()
      )

  def count(self, sample_filter: Optional[SampleFilter] = None) -> int:
    """Count samples matching the filter's category and search (pagination ignored)."""
    sample_filter = sample_filter or SampleFilter()
    with self._session_factory() as session:
      return self._filtered(session.query(TtfbSample), sample_filter).count()

  def summary_counts(self, start: datetime, end: datetime) -> Dict[str, int]:
    """Count samples per category with start <= recorded_at <= end."""
    summary = {Category.WARNING.value: 0, Category.BAD.value: 0}

    with self._session_factory() as session:
      rows = (
        session.query(TtfbSample.category, func.count(TtfbSample.id))
        .filter(self._in_window(start, end))
        .group_by(TtfbSample.category)
        .all()
      )

    for category, total in rows:
      if category in summary:
        summary[category] = int(total)
    return summary

  def top_slowest(self, start: datetime, end: datetime, limit: int = TOP_SLOWEST_LIMIT) -> List[TtfbSample]:
    """Return up to `limit` bad samples in the window, slowest first."""
    limit = max(1, int(limit))
    with self._session_factory() as session:
      return (
        session.query(TtfbSample)
        .filter(and_(self._in_window(start, end), TtfbSample.category == Category.BAD.value))
        .order_by(TtfbSample.ttfb_ms.desc(), TtfbSample.id.asc())
        .limit(limit)
        .all()
      )

  def _in_window(self, start: datetime, end: datetime):
    return TtfbSample.recorded_at.between(to_naive_utc(start), to_naive_utc(end))

  def _filtered(self, query: Query, sample_filter: SampleFilter) -> Query:
    if sample_filter.category:
      query = query.filter(TtfbSample.category == sample_filter.category)
    if sample_filter.search:
      query = query.filter(TtfbSample.url.contains(sample_filter.search, autoescape=True))
    return query
