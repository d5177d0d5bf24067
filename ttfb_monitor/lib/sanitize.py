"""Input sanitizers for client-supplied sample fields."""

import re

ALLOWED_SCHEMES = ('http', 'https', 'ftp', 'ftps', 'mailto', 'tel')

_SCRIPT_STYLE_RE = re.compile(r'<(script|style)[^>]*?>.*?</\1>', re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r'<[^>]*>')
_OCTET_RE = re.compile(r'%[a-fA-F0-9]{2}')
_WHITESPACE_RE = re.compile(r'\s+')
_URL_DISALLOWED_RE = re.compile(r"[^a-zA-Z0-9\-~+_.?#=!&;,/:%@$|*'()\[\]\u0080-\U0010ffff]")
_SCHEME_RE = re.compile(r'^([a-zA-Z][a-zA-Z0-9+.\-]*):')


def collapse_ws(text: str) -> str:
  if not text:
    return ''
  return _WHITESPACE_RE.sub(' ', text).strip()


def sanitize_text_field(value) -> str:
  """Reduce a value to a single line of plain text.

  Tags (and the bodies of script/style elements) are removed, percent-encoded
  octets are stripped, and whitespace runs collapse to one space.
  """
  if value is None:
    return ''
  text = str(value)
  if '<' in text:
    text = _SCRIPT_STYLE_RE.sub('', text)
    text = _TAG_RE.sub('', text)
  # Repeat until stable so "%2%41" cannot reassemble into an octet
  while True:
    stripped = _OCTET_RE.sub('', text)
    if stripped == text:
      break
    text = stripped
  return collapse_ws(text)


def sanitize_url(value) -> str:
  """Clean a URL for storage, returning '' for unsafe or empty input.

  Absolute URLs must use one of ALLOWED_SCHEMES. Paths starting with '/',
  '?' or '#' are kept as relative references; anything else without a scheme
  is treated as a host and prefixed with http://.
  """
  if value is None:
    return ''
  url = str(value).strip()
  if not url:
    return ''

  url = url.replace(' ', '%20')
  url = _URL_DISALLOWED_RE.sub('', url)
  if not url:
    return ''

  if url.startswith(('/', '?', '#')):
    return url

  match = _SCHEME_RE.match(url)
  if match is None:
    return f'http://{url}'

  if match.group(1).lower() not in ALLOWED_SCHEMES:
    return ''
  return url
