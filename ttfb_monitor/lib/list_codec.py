"""Encoding for the list-valued sample fields (query parameter keys, cookie names).

Contract:
    encode_list(list[str]) -> compact JSON text, or None for an empty list
    decode_list(text | None) -> list[str]; never raises
    display_list(text | None) -> comma-joined string, '' when empty
"""

import json
from typing import Iterable, List, Optional

MAX_SIGNAL_ENTRIES = 20


def unique_ordered(items: Iterable[Optional[str]], limit: int = MAX_SIGNAL_ENTRIES) -> List[str]:
  """De-duplicate preserving first-seen order, dropping falsy entries.

  Stops once `limit` unique entries have been collected.
  """
  seen = set()
  result = []
  for item in items:
    if not item or item in seen:
      continue
    seen.add(item)
    result.append(item)
    if len(result) >= limit:
      break
  return result


def encode_list(values: Iterable[str]) -> Optional[str]:
  """Encode an ordered list of strings; an empty list is stored as absent."""
  values = list(values)
  if not values:
    return None
  return json.dumps(values, separators=(',', ':'), ensure_ascii=False)


def decode_list(value: Optional[str]) -> List[str]:
  """Decode a stored list field.

  Text that is not a JSON list is treated as a single legacy value.
  """
  if not value:
    return []
  try:
    decoded = json.loads(value)
  except (ValueError, TypeError):
    return [value]
  if not isinstance(decoded, list):
    return [value]
  return [str(item).strip() for item in decoded if item is not None and str(item).strip()]


def display_list(value: Optional[str]) -> str:
  """Render a stored list field as a comma-joined string."""
  return ', '.join(decode_list(value))
