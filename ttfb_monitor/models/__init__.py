"""Models package for database entities and Pydantic models."""

from ttfb_monitor.models.ingest import Category, ErrorKind, IngestResult, RequestContext, TtfbReportInput
from ttfb_monitor.models.summary import (
  AggregationSummary,
  SampleListResponse,
  SampleView,
  SimilarityGroup,
  SimilarityGroupings,
  SummaryCounts,
)
from ttfb_monitor.models.ttfb_sample import TtfbSample

__all__ = [
  'TtfbSample',
  'Category',
  'ErrorKind',
  'IngestResult',
  'RequestContext',
  'TtfbReportInput',
  'AggregationSummary',
  'SampleListResponse',
  'SampleView',
  'SimilarityGroup',
  'SimilarityGroupings',
  'SummaryCounts',
]
