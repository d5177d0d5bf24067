"""Daily TTFB summary email job script.

Aggregates the previous local calendar day of slow samples and emails the
summary to the configured recipients.

Designed to run as a Databricks scheduled job (see `ttfb-admin schedule` in scripts/ttfb_admin.py).
Entry point: main() function (configured in pyproject.toml console_scripts)

Exit codes:
    0: Summary sent, or skipped because email is disabled / has no recipients
    1: Setup failed (configuration or database)
    2: The run failed (aggregation or mail delivery)
"""

import asyncio
import logging
import sys

from ttfb_monitor.bootstrap import build_container
from ttfb_monitor.lib.config import Settings, load_env_files
from ttfb_monitor.lib.distributed_tracing import generate_correlation_id, set_correlation_id

# Configure logging
logging.basicConfig(
  level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
  """Main entry point for the daily summary job."""
  run_id = generate_correlation_id()
  set_correlation_id(run_id)

  logger.info('=' * 80)
  logger.info(f'Starting daily TTFB summary job (run {run_id})')
  logger.info('=' * 80)

  try:
    load_env_files()
    settings = Settings.from_env()
    job = build_container(settings).summary_job()
  except Exception as e:
    logger.error(
      f'Fatal error in daily summary setup (run {run_id}): {e}. '
      'Check TTFB_* settings and DATABASE_URL or the Lakebase variables.',
      exc_info=True,
    )
    sys.exit(1)

  try:
    sent = asyncio.run(job.run())
  except Exception as e:
    logger.error(f'Daily summary job failed (run {run_id}): {e}', exc_info=True)
    sys.exit(2)

  logger.info('Daily summary job completed: ' + ('email sent' if sent else 'skipped'))
  sys.exit(0)


if __name__ == '__main__':
  main()
