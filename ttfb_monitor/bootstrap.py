"""Composition root: builds the service graph from Settings.

The HTTP app and the daily summary script both call build_container() and
never construct services themselves.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import sessionmaker

from ttfb_monitor.lib.config import Settings
from ttfb_monitor.lib.database import create_session_factory, is_database_configured
from ttfb_monitor.lib.tokens import AntiForgeryTokens
from ttfb_monitor.services.aggregation import AggregationEngine
from ttfb_monitor.services.ingest_classifier import IngestClassifier
from ttfb_monitor.services.mail_sender import MailSender, SmtpMailSender
from ttfb_monitor.services.sample_store import SampleStore
from ttfb_monitor.services.summary_email import DailySummaryJob

logger = logging.getLogger(__name__)


@dataclass
class Container:
  """Wired services. Store-backed services are None without a database."""

  settings: Settings
  tokens: AntiForgeryTokens
  mail_sender: MailSender
  store: Optional[SampleStore] = None
  classifier: Optional[IngestClassifier] = None
  engine: Optional[AggregationEngine] = None

  @property
  def database_available(self) -> bool:
    return self.store is not None

  def summary_job(self) -> DailySummaryJob:
    if self.engine is None:
      raise ValueError('Sample store is not configured')
    return DailySummaryJob(self.engine, self.mail_sender, self.settings)


def build_container(
  settings: Optional[Settings] = None,
  session_factory: Optional[sessionmaker] = None,
  mail_sender: Optional[MailSender] = None,
) -> Container:
  """Wire the store, classifier, engine and sinks.

  Args:
      settings: Runtime settings (defaults to Settings.from_env())
      session_factory: Session factory override, mainly for tests
      mail_sender: Mail transport override (defaults to SMTP)

  Returns:
      Container holding the wired services
  """
  settings = settings or Settings.from_env()
  container = Container(
    settings=settings,
    tokens=AntiForgeryTokens(settings.token_secret, settings.token_lifetime_hours),
    mail_sender=mail_sender or SmtpMailSender(settings),
  )

  if session_factory is None and is_database_configured(settings):
    session_factory = create_session_factory(settings)

  if session_factory is None:
    logger.warning('No sample database configured; ingest and reporting endpoints will return 503')
    return container

  container.store = SampleStore(session_factory)
  container.classifier = IngestClassifier(container.store, settings)
  container.engine = AggregationEngine(container.store)
  return container
