"""Ingest boundary models.

The browser payload maps onto TtfbReportInput; everything downstream of the
router works with these typed values.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
  """Severity tier of a stored sample."""

  WARNING = 'warning'
  BAD = 'bad'


class ErrorKind(str, Enum):
  """Failure and no-op outcomes of the ingest pipeline."""

  BELOW_THRESHOLD = 'BelowThreshold'
  VALIDATION_FAILURE = 'ValidationFailure'
  STORE_FAILURE = 'StoreFailure'
  AUTH_FAILURE = 'AuthFailure'
  NETWORK_FAILURE = 'NetworkFailure'


class TtfbReportInput(BaseModel):
  """Measurement posted by the client probe."""

  model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

  ttfb: int = Field(..., ge=1, description='Measured time to first byte in milliseconds')
  url: str = Field(..., min_length=1, description='Page URL that was measured')
  timestamp: Optional[str] = Field(None, description='ISO 8601 timestamp from the browser')
  query_param_keys: Optional[List[str]] = Field(
    None, alias='queryParamKeys', description='Query parameter keys present on the page'
  )
  cookie_names: Optional[List[str]] = Field(
    None, alias='cookieNames', description='Cookie names present in the browser'
  )
  device_type: Optional[str] = Field(None, alias='deviceType', description='Client device category')
  browser: Optional[str] = Field(None, description='Client browser name')
  referrer: Optional[str] = Field(None, description='Document referrer')


@dataclass
class RequestContext:
  """Request-derived facts the classifier needs beyond the payload."""

  user_role: str = 'guest'
  country: str = ''


class IngestResult(BaseModel):
  """Outcome of classify_and_store."""

  logged: bool
  category: Optional[Category] = None
  reason: Optional[str] = None
  error: Optional[ErrorKind] = None

  @classmethod
  def below_threshold(cls) -> 'IngestResult':
    return cls(logged=False, reason='below-threshold', error=ErrorKind.BELOW_THRESHOLD)

  @classmethod
  def stored(cls, category: Category) -> 'IngestResult':
    return cls(logged=True, category=category)

  @classmethod
  def store_failure(cls, category: Category) -> 'IngestResult':
    return cls(logged=False, category=category, error=ErrorKind.STORE_FAILURE)
