"""Admin privilege checking for the listing and insights views.

A user is an admin when any of their workspace groups is listed in
ADMIN_GROUPS. Results are cached for 5 minutes to reduce API calls.
"""

import logging
import os
from datetime import datetime, timedelta
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

# In-memory cache for admin status (5-minute TTL)
# Structure: {cache_key: {"is_admin": bool, "expires_at": datetime}}
_admin_cache: dict[str, dict] = {}


def _get_admin_group_names() -> set[str]:
  """Admin group names from ADMIN_GROUPS (lowercased for comparison)."""
  admin_groups_env = os.getenv('ADMIN_GROUPS', 'admins,workspace_admins,administrators')
  return {name.strip().lower() for name in admin_groups_env.split(',') if name.strip()}


def is_admin_groups(groups: Iterable[str]) -> bool:
  """Check group names against the configured admin groups (case-insensitive)."""
  admin_group_names = _get_admin_group_names()
  return any(group.lower() in admin_group_names for group in groups if group)


def get_cached_admin_status(user_id: str) -> Optional[bool]:
  cache_key = f'admin_check:{user_id}'
  cached_result = _admin_cache.get(cache_key)
  if cached_result is None:
    return None
  if datetime.utcnow() < cached_result['expires_at']:
    logger.debug(f'Admin check cache hit for user {user_id}: {cached_result["is_admin"]}')
    return cached_result['is_admin']
  del _admin_cache[cache_key]
  return None


def cache_admin_status(user_id: str, is_admin: bool) -> None:
  _admin_cache[f'admin_check:{user_id}'] = {
    'is_admin': is_admin,
    'expires_at': datetime.utcnow() + timedelta(minutes=5),
  }


def clear_admin_cache(user_id: Optional[str] = None) -> None:
  """Clear admin cache for a specific user or all users."""
  if user_id:
    _admin_cache.pop(f'admin_check:{user_id}', None)
    logger.info(f'Cleared admin cache for user {user_id}')
  else:
    _admin_cache.clear()
    logger.info('Cleared entire admin cache')
