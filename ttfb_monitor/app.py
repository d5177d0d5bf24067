"""FastAPI application for the TTFB monitor."""

import time
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy.orm import sessionmaker

from ttfb_monitor.bootstrap import build_container
from ttfb_monitor.lib.auth import get_user_token
from ttfb_monitor.lib.config import Settings, load_env_files
from ttfb_monitor.lib.distributed_tracing import set_correlation_id
from ttfb_monitor.lib.metrics import record_ingest, record_request_duration
from ttfb_monitor.lib.structured_logger import log_request
from ttfb_monitor.routers import router
from ttfb_monitor.services.mail_sender import MailSender


async def add_correlation_id(request: Request, call_next):
  """Inject correlation ID and authentication context into request.

  - Extracts X-Correlation-ID header or generates new UUID
  - Adds X-Correlation-ID to response headers
  - Extracts the forwarded user access token for OBO authentication
  - Records request duration and logs the request
  """
  correlation_id = request.headers.get('X-Correlation-ID', str(uuid4()))
  set_correlation_id(correlation_id)
  request.state.correlation_id = correlation_id

  # Set by the Databricks Apps proxy for signed-in users
  request.state.user_token = request.headers.get('X-Forwarded-Access-Token')

  start_time = time.time()
  response = await call_next(request)
  duration_seconds = time.time() - start_time

  response.headers['X-Correlation-ID'] = correlation_id

  # Skip health and metrics endpoints to reduce noise
  if request.url.path not in ['/health', '/api/health', '/metrics']:
    record_request_duration(
      endpoint=request.url.path,
      method=request.method,
      status=response.status_code,
      duration_seconds=duration_seconds,
    )
    log_request(
      endpoint=request.url.path,
      method=request.method,
      status_code=response.status_code,
      duration_ms=duration_seconds * 1000,
    )

  return response


async def validation_exception_handler(request: Request, exc: RequestValidationError):
  """Return 422 with the pydantic error list; count rejected ingests."""
  if request.url.path.endswith('/ttfb/log'):
    record_ingest('invalid')
  return JSONResponse(status_code=422, content={'detail': jsonable_encoder(jsonable_errors(exc))})


def jsonable_errors(exc: RequestValidationError) -> list:
  # ctx may carry exception instances that are not JSON serializable
  errors = []
  for error in exc.errors():
    error = dict(error)
    if 'ctx' in error:
      error['ctx'] = {key: str(value) for key, value in error['ctx'].items()}
    errors.append(error)
  return errors


def create_app(
  settings: Optional[Settings] = None,
  session_factory: Optional[sessionmaker] = None,
  mail_sender: Optional[MailSender] = None,
) -> FastAPI:
  """Build the application.

  Args:
      settings: Runtime settings (defaults to the environment plus .env files)
      session_factory: Sample database session factory override
      mail_sender: Mail transport override

  Returns:
      Configured FastAPI app with the service container on app.state
  """
  if settings is None:
    load_env_files()
    settings = Settings.from_env()

  app = FastAPI(
    title='TTFB Monitor API',
    description='Collects slow time-to-first-byte samples from real visitors and reports on them',
    version='0.1.0',
  )
  app.state.container = build_container(settings, session_factory, mail_sender)

  app.middleware('http')(add_correlation_id)
  app.add_exception_handler(RequestValidationError, validation_exception_handler)

  @app.get('/health')
  async def health_root():
    """Health check endpoint at root level (for load balancers)."""
    return {'status': 'healthy'}

  @app.get('/api/health')
  async def health_api():
    """Health check endpoint under /api prefix."""
    return {
      'status': 'healthy',
      'database': 'configured' if app.state.container.database_available else 'not_configured',
    }

  @app.get('/metrics')
  async def metrics_root(request: Request):
    """Prometheus metrics endpoint.

    Raises:
        401: Authentication required (missing token)
    """
    await get_user_token(request)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

  app.include_router(router)
  return app
