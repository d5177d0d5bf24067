"""Application configuration loaded from environment variables.

Settings are read with pydantic-settings from the process environment, then
`.env.local`, then `.env`. Invalid values raise ValueError at load.

SMTP transport security:
  - port 587 (submission): leave SMTP_USE_TLS off; STARTTLS is negotiated
    when the server advertises it (SMTP_START_TLS=true makes it mandatory)
  - port 465 (smtps): set SMTP_USE_TLS=true for implicit TLS
"""

import secrets
from datetime import time
from typing import List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def load_env_files() -> None:
  """Load `.env` then `.env.local` into os.environ for non-Settings variables.

  The Lakebase connection helpers read PGHOST/LAKEBASE_* straight from the
  environment. Real environment values are never overridden.
  """
  load_dotenv('.env')
  load_dotenv('.env.local')


def split_recipients(value: str) -> List[str]:
  """Split a comma-separated recipient list, dropping blanks."""
  return [part.strip() for part in (value or '').split(',') if part.strip()]


class Settings(BaseSettings):
  """Runtime settings for the TTFB monitor."""

  warning_threshold_ms: int = Field(
    800, ge=1, validation_alias='TTFB_WARNING_THRESHOLD_MS', description='Samples at or below this are not stored'
  )
  bad_threshold_ms: int = Field(
    1800, ge=1, validation_alias='TTFB_BAD_THRESHOLD_MS', description='Samples at or above this are "bad"'
  )

  email_enabled: bool = Field(False, validation_alias='TTFB_EMAIL_ENABLED', description='Send the daily summary email')
  email_recipients: str = Field('', validation_alias='TTFB_EMAIL_RECIPIENTS', description='Comma-separated recipient list')
  admin_email: str = Field('', validation_alias='ADMIN_EMAIL', description='Fallback recipient when none configured')
  mail_from: str = Field('ttfb-monitor@localhost', validation_alias='TTFB_MAIL_FROM')
  summary_time: time = Field(time(8, 0), validation_alias='TTFB_SUMMARY_TIME', description='Local time of the daily summary')
  timezone: str = Field('UTC', validation_alias='TTFB_TIMEZONE', description='IANA zone used for report windows')

  smtp_host: str = Field('localhost', validation_alias='SMTP_HOST')
  smtp_port: int = Field(587, ge=1, le=65535, validation_alias='SMTP_PORT')
  smtp_username: str = Field('', validation_alias='SMTP_USERNAME')
  smtp_password: str = Field('', validation_alias='SMTP_PASSWORD')
  smtp_use_tls: bool = Field(False, validation_alias='SMTP_USE_TLS', description='Implicit TLS (port 465)')
  smtp_start_tls: Optional[bool] = Field(
    None, validation_alias='SMTP_START_TLS', description='STARTTLS: unset upgrades when offered, true requires it'
  )

  country_header: str = Field('CF-IPCountry', validation_alias='TTFB_COUNTRY_HEADER')
  token_secret: str = Field(default_factory=lambda: secrets.token_hex(32), validation_alias='TTFB_TOKEN_SECRET')
  token_lifetime_hours: int = Field(24, ge=2, validation_alias='TTFB_TOKEN_LIFETIME_HOURS')

  database_url: Optional[str] = Field(None, validation_alias='DATABASE_URL')

  summary_job_name: str = Field('ttfb-daily-summary', validation_alias='TTFB_SUMMARY_JOB_NAME')
  summary_job_cluster_id: Optional[str] = Field(None, validation_alias='TTFB_SUMMARY_JOB_CLUSTER_ID')
  summary_job_wheel: Optional[str] = Field(
    None, validation_alias='TTFB_SUMMARY_JOB_WHEEL', description='Wheel path attached to the summary job'
  )
  package_name: str = Field('ttfb-monitor', validation_alias='TTFB_PACKAGE_NAME')

  model_config = SettingsConfigDict(
    env_file=('.env', '.env.local'),
    env_ignore_empty=True,
    populate_by_name=True,
    extra='ignore',
  )

  @field_validator('timezone')
  @classmethod
  def validate_timezone(cls, v: str) -> str:
    try:
      ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError) as e:
      raise ValueError(f'Unknown timezone: {v}') from e
    return v

  @model_validator(mode='after')
  def validate_combinations(self):
    if self.bad_threshold_ms <= self.warning_threshold_ms:
      raise ValueError('bad_threshold_ms must be greater than warning_threshold_ms')
    if self.smtp_use_tls and self.smtp_start_tls:
      raise ValueError('SMTP_USE_TLS and SMTP_START_TLS are mutually exclusive')
    return self

  @property
  def tzinfo(self) -> ZoneInfo:
    return ZoneInfo(self.timezone)

  @property
  def recipients(self) -> List[str]:
    """Configured recipients, falling back to the admin address."""
    configured = split_recipients(self.email_recipients)
    if configured:
      return configured
    return split_recipients(self.admin_email)

  @classmethod
  def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
    """Build settings from environment variables.

    Args:
        environ: Mapping to read instead of the process environment and
            .env files (blank values count as unset)

    Returns:
        Validated Settings

    Raises:
        ValueError: If a variable holds an invalid value (pydantic's
            ValidationError names the offending variable)
    """
    if environ is None:
      return cls()
    # model_validate skips the environment sources, so only `environ` is read
    return cls.model_validate({key: value for key, value in environ.items() if value})
