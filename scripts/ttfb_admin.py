"""Administrative commands for the TTFB monitor.

- schedule: Create (or update) the Databricks job that sends the daily summary
- clear: Delete the daily summary job
- status: Show the configured thresholds, recipients and job state
- seed: Insert sample measurements through the ingest classifier (local development)
"""

import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import click
from databricks.sdk import WorkspaceClient
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from ttfb_monitor.bootstrap import build_container
from ttfb_monitor.lib.config import Settings
from ttfb_monitor.models.ingest import RequestContext, TtfbReportInput
from ttfb_monitor.services.schedule_service import SummaryScheduler, quartz_cron_for

# Load environment variables from .env.local
env_path = Path(__file__).parent.parent / '.env.local'
console = Console()
if env_path.exists():
  load_dotenv(env_path)
  console.print(f'[dim]Loaded environment from {env_path}[/dim]')

SEED_URLS = ['/', '/shop', '/shop/cart', '/blog/launch', '/account']
SEED_QUERY_KEYS = [[], ['utm_source'], ['page'], ['utm_source', 'utm_campaign']]
SEED_COOKIES = [[], ['session'], ['session', 'consent']]


def _load_settings() -> Settings:
  try:
    return Settings.from_env()
  except ValueError as e:
    console.print(f'[red]Invalid configuration: {e}[/red]')
    sys.exit(1)


@click.group()
def cli():
  """TTFB monitor administration."""
  pass


@cli.command()
def schedule():
  """Schedule the daily summary job."""
  settings = _load_settings()
  scheduler = SummaryScheduler(WorkspaceClient(), settings)

  try:
    job_id = scheduler.schedule()
  except ValueError as e:
    console.print(f'[red]Error: {e}[/red]')
    sys.exit(1)

  console.print(
    f'[green]Daily summary job {job_id} runs at {settings.summary_time:%H:%M} {settings.timezone}[/green]'
  )


@cli.command()
def clear():
  """Remove the daily summary job."""
  scheduler = SummaryScheduler(WorkspaceClient(), _load_settings())
  if scheduler.clear():
    console.print('[green]Daily summary job deleted[/green]')
  else:
    console.print('[yellow]No daily summary job found[/yellow]')


@cli.command()
@click.option('--check-job/--no-check-job', default=True, help='Look up the scheduled job in the workspace')
def status(check_job):
  """Show the active configuration."""
  settings = _load_settings()

  table = Table(title='TTFB monitor settings')
  table.add_column('Setting', style='cyan')
  table.add_column('Value')
  table.add_row('Warning threshold', f'> {settings.warning_threshold_ms} ms')
  table.add_row('Slow threshold', f'>= {settings.bad_threshold_ms} ms')
  table.add_row('Email enabled', 'yes' if settings.email_enabled else 'no')
  table.add_row('Recipients', ', '.join(settings.recipients) or '(none)')
  table.add_row('Summary schedule', f'{quartz_cron_for(settings)} ({settings.timezone})')

  if check_job:
    job_id = SummaryScheduler(WorkspaceClient(), settings).find_job_id()
    table.add_row('Summary job', str(job_id) if job_id is not None else '(not scheduled)')

  console.print(table)


@cli.command()
@click.option('--count', default=50, type=int, help='Number of measurements to report (max 500)')
@click.option('--days', default=7, type=int, help='Spread timestamps over this many past days')
def seed(count, days):
  """Insert sample measurements for local development."""
  if count > 500:
    console.print('[yellow]Warning: Limiting count to 500[/yellow]')
    count = 500

  container = build_container(_load_settings())
  if container.classifier is None:
    console.print('[red]Error: No sample database configured (set DATABASE_URL)[/red]')
    sys.exit(1)

  now = datetime.now(timezone.utc)
  outcomes = {}
  for _ in range(count):
    recorded_at = now - timedelta(seconds=random.randint(0, days * 86400))
    report = TtfbReportInput(
      ttfb=random.randint(400, 4000),
      url=random.choice(SEED_URLS),
      timestamp=recorded_at.isoformat(),
      query_param_keys=random.choice(SEED_QUERY_KEYS),
      cookie_names=random.choice(SEED_COOKIES),
      device_type=random.choice(['desktop', 'mobile', 'tablet']),
      browser=random.choice(['Chrome', 'Safari', 'Firefox', 'Edge']),
    )
    result = container.classifier.classify_and_store(report, RequestContext(country='US'))
    key = result.category.value if result.logged else (result.reason or 'failed')
    outcomes[key] = outcomes.get(key, 0) + 1

  table = Table(title='Seeded measurements')
  table.add_column('Outcome', style='cyan')
  table.add_column('Count', justify='right')
  for outcome, total in sorted(outcomes.items()):
    table.add_row(outcome, str(total))
  console.print(table)


if __name__ == '__main__':
  cli()
