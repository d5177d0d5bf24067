"""Authentication utilities for FastAPI endpoints.

Two kinds of callers reach the API: browsers reporting measurements, which
present an anti-forgery token bound to their session cookie, and users
authenticated by the Databricks Apps proxy, whose access token arrives in the
X-Forwarded-Access-Token header and is put on request.state by middleware.
"""

from typing import Optional

from fastapi import HTTPException, Request

from ttfb_monitor.lib.metrics import record_ingest
from ttfb_monitor.lib.structured_logger import StructuredLogger
from ttfb_monitor.lib.tokens import SESSION_COOKIE_NAME, TOKEN_HEADER_NAME
from ttfb_monitor.models.user_session import AuthenticationErrorCode, UserIdentity
from ttfb_monitor.services.admin_service import cache_admin_status, get_cached_admin_status, is_admin_groups
from ttfb_monitor.services.user_service import UserService

logger = StructuredLogger(__name__)


async def get_user_token(request: Request) -> str:
  """Extract the required user access token from request state.

  Raises:
      HTTPException: 401 if token is missing or empty
  """
  user_token = getattr(request.state, 'user_token', None)

  if not user_token:
    raise HTTPException(
      status_code=401,
      detail={
        'error_code': AuthenticationErrorCode.AUTH_MISSING.value,
        'message': 'User authentication required. Please provide a valid user access token.',
      },
    )

  return user_token


async def get_user_token_optional(request: Request) -> Optional[str]:
  """Extract the user access token if present; anonymous callers get None."""
  return getattr(request.state, 'user_token', None)


async def authorize_ingest(request: Request) -> Optional[str]:
  """FastAPI dependency guarding the ingest endpoint.

  Accepts either a valid anti-forgery token for the caller's session or an
  authenticated user session.

  Returns:
      The user access token when the caller is authenticated, else None

  Raises:
      HTTPException: 403 when neither credential is valid
  """
  user_token = await get_user_token_optional(request)
  if user_token:
    return user_token

  tokens = request.app.state.container.tokens
  token = request.headers.get(TOKEN_HEADER_NAME)
  session_id = request.cookies.get(SESSION_COOKIE_NAME)
  if tokens.verify(token, session_id):
    return None

  record_ingest('forbidden')
  logger.warning('Rejected ingest with invalid security token', endpoint=request.url.path)
  raise HTTPException(
    status_code=403,
    detail={
      'error_code': AuthenticationErrorCode.AUTH_FORBIDDEN.value,
      'message': 'Invalid security token.',
    },
  )


async def get_admin_user(request: Request) -> UserIdentity:
  """FastAPI dependency that enforces admin-only access.

  Raises:
      HTTPException: 401 if token is missing or identity lookup fails
      HTTPException: 403 if user is not in an admin group
  """
  user_token = await get_user_token(request)
  identity = await UserService(user_token=user_token).get_user_info()

  is_admin = get_cached_admin_status(identity.user_id)
  if is_admin is None:
    is_admin = is_admin_groups(identity.groups)
    cache_admin_status(identity.user_id, is_admin)

  if not is_admin:
    logger.warning(f'Access denied for non-admin user: {identity.user_id}', endpoint=request.url.path)
    raise HTTPException(
      status_code=403,
      detail={
        'error': 'Access Denied',
        'message': 'Administrator privileges required to view TTFB reports',
        'status_code': 403,
      },
    )

  logger.info(f'Admin access granted for user: {identity.user_id}', endpoint=request.url.path)
  return identity
