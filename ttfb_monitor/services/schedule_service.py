"""Scheduling of the daily summary as a Databricks job.

The job runs the `ttfb-daily-summary` entry point of the ttfb-monitor wheel once
a day at the configured local time. When TTFB_SUMMARY_JOB_WHEEL names a wheel
(e.g. a /Volumes or workspace path) it is attached to the task as a library;
otherwise the wheel must already be installed on the job cluster.

Jobs are found by name, so schedule() and clear() can be called repeatedly.
"""

import logging
from typing import Optional

from databricks.sdk import WorkspaceClient
from databricks.sdk.service.compute import Library
from databricks.sdk.service.jobs import CronSchedule, JobSettings, PauseStatus, PythonWheelTask, Task

from ttfb_monitor.lib.config import Settings

logger = logging.getLogger(__name__)

ENTRY_POINT = 'ttfb-daily-summary'
TASK_KEY = 'daily_summary'


def quartz_cron_for(settings: Settings) -> str:
  """Quartz expression firing daily at settings.summary_time."""
  return f'0 {settings.summary_time.minute} {settings.summary_time.hour} * * ?'


class SummaryScheduler:
  """Creates, updates and removes the daily summary job."""

  def __init__(self, workspace_client: WorkspaceClient, settings: Settings):
    self.client = workspace_client
    self.settings = settings

  def _cron_schedule(self) -> CronSchedule:
    return CronSchedule(
      quartz_cron_expression=quartz_cron_for(self.settings),
      timezone_id=self.settings.timezone,
      pause_status=PauseStatus.UNPAUSED,
    )

  def find_job_id(self) -> Optional[int]:
    """Return the id of the existing summary job, if any."""
    for job in self.client.jobs.list(name=self.settings.summary_job_name):
      if job.settings and job.settings.name == self.settings.summary_job_name:
        return job.job_id
    return None

  def schedule(self) -> int:
    """Ensure the summary job exists with the configured schedule.

    Returns:
        The job id

    Raises:
        ValueError: If no cluster is configured for a new job
    """
    schedule = self._cron_schedule()
    job_id = self.find_job_id()

    if job_id is not None:
      current = self.client.jobs.get(job_id=job_id).settings
      current_schedule = current.schedule if current else None
      if (
        current_schedule is not None
        and current_schedule.quartz_cron_expression == schedule.quartz_cron_expression
        and current_schedule.timezone_id == schedule.timezone_id
      ):
        logger.info(f'Summary job {job_id} already scheduled')
        return job_id

      self.client.jobs.update(job_id=job_id, new_settings=JobSettings(schedule=schedule))
      logger.info(f'Updated summary job {job_id} schedule to {schedule.quartz_cron_expression}')
      return job_id

    if not self.settings.summary_job_cluster_id:
      raise ValueError('TTFB_SUMMARY_JOB_CLUSTER_ID must be set to create the summary job')

    libraries = None
    if self.settings.summary_job_wheel:
      libraries = [Library(whl=self.settings.summary_job_wheel)]
    else:
      logger.warning('TTFB_SUMMARY_JOB_WHEEL not set; the wheel must be installed on the cluster')

    created = self.client.jobs.create(
      name=self.settings.summary_job_name,
      schedule=schedule,
      tasks=[
        Task(
          task_key=TASK_KEY,
          existing_cluster_id=self.settings.summary_job_cluster_id,
          libraries=libraries,
          python_wheel_task=PythonWheelTask(
            package_name=self.settings.package_name,
            entry_point=ENTRY_POINT,
          ),
        )
      ],
    )
    logger.info(f'Created summary job {created.job_id} ({schedule.quartz_cron_expression} {schedule.timezone_id})')
    return created.job_id

  def clear(self) -> bool:
    """Delete the summary job.

    Returns:
        True if a job was deleted, False if none existed
    """
    job_id = self.find_job_id()
    if job_id is None:
      logger.info('No summary job to clear')
      return False

    self.client.jobs.delete(job_id=job_id)
    logger.info(f'Deleted summary job {job_id}')
    return True
