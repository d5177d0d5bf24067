"""Response models for listings and aggregation windows."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ttfb_monitor.lib.list_codec import decode_list


class SampleView(BaseModel):
  """Stored sample as returned by listing and top-slowest views."""

  model_config = ConfigDict(from_attributes=True)

  id: int
  recorded_at: datetime
  ttfb_ms: int
  category: str
  url: str
  query_params: List[str] = Field(default_factory=list)
  cookies: List[str] = Field(default_factory=list)
  user_role: str = ''
  country: str = ''
  device_type: str = ''
  browser: str = ''
  referrer: Optional[str] = None

  @classmethod
  def from_sample(cls, sample) -> 'SampleView':
    return cls(
      id=sample.id,
      recorded_at=sample.recorded_at,
      ttfb_ms=sample.ttfb_ms,
      category=sample.category,
      url=sample.url,
      query_params=decode_list(sample.query_params),
      cookies=decode_list(sample.cookies),
      user_role=sample.user_role or '',
      country=sample.country or '',
      device_type=sample.device_type or '',
      browser=sample.browser or '',
      referrer=sample.referrer,
    )


class SampleListResponse(BaseModel):
  items: List[SampleView]
  total: int
  page: int
  per_page: int


class SummaryCounts(BaseModel):
  warning: int = 0
  bad: int = 0


class SimilarityGroup(BaseModel):
  label: str
  count: int
  average: int


class SimilarityGroupings(BaseModel):
  by_url: List[SimilarityGroup] = Field(default_factory=list)
  by_query_params: List[SimilarityGroup] = Field(default_factory=list)
  by_cookies: List[SimilarityGroup] = Field(default_factory=list)


class AggregationSummary(BaseModel):
  """Counts and groupings computed for one window. Never persisted."""

  start: datetime
  end: datetime
  counts: SummaryCounts
  top_slowest: List[SampleView]
  similarity: SimilarityGroupings
