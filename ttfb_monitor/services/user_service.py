"""User service for Databricks identity lookups with OBO authentication."""

import asyncio
import os
import time
from typing import Optional

from databricks.sdk import WorkspaceClient
from fastapi import HTTPException

from ttfb_monitor.lib.structured_logger import StructuredLogger, log_event
from ttfb_monitor.models.user_session import AuthenticationErrorCode, UserIdentity

logger = StructuredLogger(__name__)


class UserService:
  """Resolves the identity behind a forwarded user access token."""

  def __init__(self, user_token: Optional[str] = None):
    """Initialize the user service.

    Args:
        user_token: User access token from X-Forwarded-Access-Token
    """
    self.user_token = user_token
    self.workspace_url = os.getenv('DATABRICKS_HOST', '')

  def _get_client(self) -> WorkspaceClient:
    """Get a WorkspaceClient authenticated as the user (OBO)."""
    if not self.workspace_url:
      raise ValueError('DATABRICKS_HOST environment variable is not set')

    host = self.workspace_url if self.workspace_url.startswith('http') else f'https://{self.workspace_url}'
    return WorkspaceClient(host=host, token=self.user_token, auth_type='pat')

  async def get_user_info(self) -> UserIdentity:
    """Get the authenticated user's identity and group membership.

    Returns:
        UserIdentity with groups in workspace order

    Raises:
        HTTPException: 401 if the token is missing or the lookup fails
    """
    if not self.user_token:
      raise HTTPException(
        status_code=401,
        detail={
          'error_code': AuthenticationErrorCode.AUTH_MISSING.value,
          'message': 'User authentication required.',
        },
      )

    start_time = time.time()
    try:
      client = self._get_client()
      # Blocking SDK call
      user = await asyncio.to_thread(client.current_user.me)
    except Exception as e:
      log_event('auth.failed', level='ERROR', context={
        'error_type': type(e).__name__,
        'error_message': str(e),
        'service': 'UserService',
      })
      raise HTTPException(
        status_code=401,
        detail={
          'error_code': AuthenticationErrorCode.AUTH_USER_IDENTITY_FAILED.value,
          'message': 'User authentication required. Please provide a valid user access token.',
        },
      ) from e

    identity = UserIdentity(
      user_id=user.user_name or 'unknown@example.com',
      display_name=user.display_name or 'Unknown User',
      groups=[group.display for group in (user.groups or []) if group.display],
    )

    log_event('auth.user_id_extracted', context={
      'user_id': identity.user_id,
      'method': 'UserService.get_user_info',
      'duration_ms': (time.time() - start_time) * 1000,
    })
    return identity

  async def get_user_role(self) -> str:
    """Return the user's first group, or 'guest' when it cannot be resolved.

    Ingest must not fail because the identity lookup did, so lookup errors
    degrade to 'guest'.
    """
    if not self.user_token:
      return 'guest'
    try:
      identity = await self.get_user_info()
    except HTTPException:
      logger.warning('Could not resolve user role, recording as guest')
      return 'guest'
    return identity.role
