"""Outbound mail transport for the daily summary."""

import logging
import re
from email.header import Header
from email.mime.text import MIMEText
from typing import List, Protocol

import aiosmtplib

from ttfb_monitor.lib.config import Settings

logger = logging.getLogger(__name__)

# Newlines and control characters that would allow header injection
_HEADER_INJECTION_RE = re.compile(r'[\r\n\x00\x0b\x0c]')


class MailDeliveryError(Exception):
  """Raised when the mail transport rejects or fails to deliver a message."""


def sanitize_header(value: str, max_length: int = 998) -> str:
  """Strip control characters from a header value and cap its length."""
  if not value:
    return ''
  return _HEADER_INJECTION_RE.sub('', value)[:max_length].strip()


class MailSender(Protocol):
  """Anything that can deliver a plain-text message to a list of recipients."""

  async def send(self, recipients: List[str], subject: str, body: str) -> None: ...


class SmtpMailSender:
  """Sends plain-text mail over SMTP with aiosmtplib."""

  def __init__(self, settings: Settings, timeout_seconds: float = 30.0):
    self.host = settings.smtp_host
    self.port = settings.smtp_port
    self.username = settings.smtp_username
    self.password = settings.smtp_password
    self.use_tls = settings.smtp_use_tls
    self.start_tls = settings.smtp_start_tls
    self.mail_from = settings.mail_from
    self.timeout_seconds = timeout_seconds

  def build_message(self, recipients: List[str], subject: str, body: str) -> MIMEText:
    message = MIMEText(body, 'plain', 'utf-8')
    message['Subject'] = Header(sanitize_header(subject), 'utf-8')
    message['From'] = sanitize_header(self.mail_from)
    message['To'] = ', '.join(sanitize_header(recipient) for recipient in recipients)
    return message

  async def send(self, recipients: List[str], subject: str, body: str) -> None:
    """Deliver one message.

    Raises:
        MailDeliveryError: If the SMTP exchange fails
    """
    message = self.build_message(recipients, subject, body)

    try:
      async with aiosmtplib.SMTP(
        hostname=self.host,
        port=self.port,
        use_tls=self.use_tls,
        start_tls=self.start_tls,
        timeout=self.timeout_seconds,
      ) as smtp:
        if self.username:
          await smtp.login(self.username, self.password)
        await smtp.send_message(message)
    except aiosmtplib.SMTPException as e:
      raise MailDeliveryError(f'SMTP delivery to {self.host}:{self.port} failed: {e}') from e
    except OSError as e:
      raise MailDeliveryError(f'Could not reach SMTP server {self.host}:{self.port}: {e}') from e

    logger.info(f'Sent "{subject}" to {len(recipients)} recipient(s)')
