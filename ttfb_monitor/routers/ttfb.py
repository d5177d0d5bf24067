"""TTFB API endpoints.

The ingest and probe-config endpoints are called by page visitors; the
listing and insights endpoints require administrator privileges.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

from ttfb_monitor.bootstrap import Container
from ttfb_monitor.lib.auth import authorize_ingest, get_admin_user
from ttfb_monitor.lib.tokens import SESSION_COOKIE_NAME, new_session_id
from ttfb_monitor.models.ingest import Category, RequestContext, TtfbReportInput
from ttfb_monitor.models.summary import AggregationSummary, SampleListResponse, SampleView
from ttfb_monitor.models.user_session import UserIdentity
from ttfb_monitor.services.aggregation import insights_window
from ttfb_monitor.services.sample_store import SampleFilter
from ttfb_monitor.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/v1/ttfb', tags=['TTFB'])


def get_container(request: Request) -> Container:
  return request.app.state.container


def require_database(container: Container = Depends(get_container)) -> Container:
  """Raise 503 when no sample database is configured."""
  if not container.database_available:
    raise HTTPException(status_code=503, detail='TTFB service unavailable: database not configured')
  return container


@router.get('/probe-config')
async def get_probe_config(request: Request, response: Response, container: Container = Depends(get_container)):
  """Configuration for the page probe.

  Issues an anti-forgery token bound to the caller's session cookie, setting
  the cookie when the caller does not have one yet.
  """
  session_id = request.cookies.get(SESSION_COOKIE_NAME)
  if not session_id:
    session_id = new_session_id()
    response.set_cookie(
      SESSION_COOKIE_NAME,
      session_id,
      max_age=container.settings.token_lifetime_hours * 3600,
      httponly=True,
      samesite='lax',
    )

  return {
    'restUrl': str(request.url_for('log_ttfb')),
    'token': container.tokens.issue(session_id),
    'warningThreshold': container.settings.warning_threshold_ms,
    'slowThreshold': container.settings.bad_threshold_ms,
  }


@router.post('/log', name='log_ttfb')
async def log_ttfb(
  report: TtfbReportInput,
  request: Request,
  user_token: Optional[str] = Depends(authorize_ingest),
  container: Container = Depends(require_database),
):
  """Record one TTFB measurement.

  Returns:
      200 {logged: false, reason: "below-threshold"} when not slow enough
      201 {logged: true, category} when stored

  Raises:
      500: The sample could not be stored
  """
  context = RequestContext(
    user_role=await UserService(user_token=user_token).get_user_role(),
    country=request.headers.get(container.settings.country_header, ''),
  )

  result = container.classifier.classify_and_store(report, context)

  if result.reason == 'below-threshold':
    return JSONResponse(status_code=200, content={'logged': False, 'reason': result.reason})

  if not result.logged:
    raise HTTPException(status_code=500, detail='Unable to store TTFB sample.')

  return JSONResponse(status_code=201, content={'logged': True, 'category': result.category.value})


@router.get('/logs', response_model=SampleListResponse)
async def list_samples(
  admin_user: UserIdentity = Depends(get_admin_user),
  category: Optional[Category] = None,
  search: Optional[str] = Query(None, max_length=255),
  page: int = Query(1, ge=1),
  per_page: int = Query(20, ge=1, le=100),
  container: Container = Depends(require_database),
):
  """List stored samples, newest recorded first (admin only)."""
  sample_filter = SampleFilter(
    category=category.value if category else None,
    search=search,
    page=page,
    per_page=per_page,
  )

  logger.info(
    f'TTFB logs requested by admin user {admin_user.user_id} '
    f'(category={sample_filter.category}, search={search!r}, page={page})'
  )

  samples = container.store.list(sample_filter)
  return SampleListResponse(
    items=[SampleView.from_sample(sample) for sample in samples],
    total=container.store.count(sample_filter),
    page=page,
    per_page=per_page,
  )


@router.get('/insights', response_model=AggregationSummary)
async def get_insights(
  admin_user: UserIdentity = Depends(get_admin_user),
  container: Container = Depends(require_database),
):
  """Summary of the trailing seven days (admin only)."""
  start, end = insights_window(datetime.now(timezone.utc), container.settings.tzinfo)
  logger.info(f'TTFB insights requested by admin user {admin_user.user_id}')
  return container.engine.summarize(start, end)
