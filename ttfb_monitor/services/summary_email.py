"""Daily summary email: yesterday's slow requests, rendered as plain text."""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from ttfb_monitor.lib.config import Settings
from ttfb_monitor.lib.metrics import record_summary_email
from ttfb_monitor.models.summary import AggregationSummary, SimilarityGroup
from ttfb_monitor.services.aggregation import AggregationEngine, previous_day_window
from ttfb_monitor.services.mail_sender import MailSender

logger = logging.getLogger(__name__)


def _format_day(moment: datetime) -> str:
  # "March 4, 2025" without platform-specific strftime flags
  return f'{moment.strftime("%B")} {moment.day}, {moment.year}'


def _similarity_section(title: str, groups: List[SimilarityGroup], has_entries: bool) -> List[str]:
  lines = [f'{title}:']
  if not has_entries:
    lines.append('No data.')
  else:
    for group in groups:
      lines.append(f'- {group.label} - {group.count} hits (avg {group.average} ms)')
  lines.append('')
  return lines


def render_summary_email(
  summary: AggregationSummary,
  start_local: datetime,
  end_local: datetime,
  settings: Settings,
) -> Tuple[str, str]:
  """Render the subject and plain-text body for one summary window.

  Args:
      summary: Aggregation over the window
      start_local: Window start in the configured timezone
      end_local: Window end in the configured timezone
      settings: Supplies the threshold values shown in the totals

  Returns:
      (subject, body)
  """
  subject = f'TTFB summary for {_format_day(start_local)}'

  lines = [
    f'Monitoring window: {start_local:%Y-%m-%d %H:%M} - {end_local:%Y-%m-%d %H:%M}',
    '',
    'Totals:',
    f'- Warnings (> {settings.warning_threshold_ms}ms): {summary.counts.warning}',
    f'- Slow (>= {settings.bad_threshold_ms}ms): {summary.counts.bad}',
    '',
    'Top slowest requests:',
  ]

  if not summary.top_slowest:
    lines.append('No slow requests logged yesterday.')
  else:
    for index, sample in enumerate(summary.top_slowest, start=1):
      lines.append(f'{index}. {sample.ttfb_ms} ms - {sample.url}')

  lines.append('')
  lines.append('Similarity hints:')

  has_entries = bool(summary.top_slowest)
  lines.extend(_similarity_section('By URL', summary.similarity.by_url, has_entries))
  lines.extend(_similarity_section('By query params', summary.similarity.by_query_params, has_entries))
  lines.extend(_similarity_section('By cookies', summary.similarity.by_cookies, has_entries))

  return subject, '\n'.join(lines)


class DailySummaryJob:
  """Aggregates the previous local day and mails the summary."""

  def __init__(
    self,
    engine: AggregationEngine,
    mail_sender: MailSender,
    settings: Settings,
    now_fn: Optional[Callable[[], datetime]] = None,
  ):
    self.engine = engine
    self.mail_sender = mail_sender
    self.settings = settings
    self.now_fn = now_fn or (lambda: datetime.now(timezone.utc))

  async def run(self) -> bool:
    """Send the summary for yesterday.

    Returns:
        True if an email was sent, False if the run was skipped

    Raises:
        Exception: Propagates mail delivery failures; nothing is retried
    """
    if not self.settings.email_enabled:
      logger.info('Daily summary email disabled, skipping')
      record_summary_email('skipped')
      return False

    recipients = self.settings.recipients
    if not recipients:
      logger.warning('No summary recipients configured, skipping')
      record_summary_email('skipped')
      return False

    tz = self.settings.tzinfo
    start, end = previous_day_window(self.now_fn(), tz)
    summary = self.engine.summarize(start, end)
    subject, body = render_summary_email(summary, start.astimezone(tz), end.astimezone(tz), self.settings)

    try:
      await self.mail_sender.send(recipients, subject, body)
    except Exception:
      record_summary_email('failed')
      raise

    record_summary_email('sent')
    logger.info(f'Sent daily summary for {start.astimezone(tz).date()} to {len(recipients)} recipient(s)')
    return True
