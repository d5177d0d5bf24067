"""Unit tests for the SMTP mail sender (aiosmtplib mocked)."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiosmtplib
import pytest

from ttfb_monitor.lib.config import Settings
from ttfb_monitor.services.mail_sender import MailDeliveryError, SmtpMailSender, sanitize_header


@pytest.fixture
def smtp_settings():
    return Settings(
        token_secret='x',
        smtp_host='smtp.example.com',
        smtp_port=465,
        smtp_username='mailer',
        smtp_password='secret',
        mail_from='ttfb@example.com',
    )


@pytest.fixture
def mock_smtp():
    with patch('ttfb_monitor.services.mail_sender.aiosmtplib.SMTP') as smtp_cls:
        smtp = AsyncMock()
        smtp_cls.return_value = MagicMock()
        smtp_cls.return_value.__aenter__.return_value = smtp
        smtp_cls.return_value.__aexit__.return_value = False
        yield smtp_cls, smtp


def test_sanitize_header_removes_newlines():
    assert sanitize_header('Subject\r\nBcc: victim@example.com') == 'SubjectBcc: victim@example.com'
    assert sanitize_header('') == ''


def test_build_message(smtp_settings):
    message = SmtpMailSender(smtp_settings).build_message(
        ['a@example.com', 'b@example.com'], 'TTFB summary for March 4, 2025', 'body'
    )

    assert message['From'] == 'ttfb@example.com'
    assert message['To'] == 'a@example.com, b@example.com'
    assert message.get_content_type() == 'text/plain'
    assert message.get_payload(decode=True).decode('utf-8') == 'body'


async def test_send_logs_in_and_sends(smtp_settings, mock_smtp):
    smtp_cls, smtp = mock_smtp

    await SmtpMailSender(smtp_settings).send(['a@example.com'], 'subject', 'body')

    assert smtp_cls.call_args.kwargs['hostname'] == 'smtp.example.com'
    assert smtp_cls.call_args.kwargs['port'] == 465
    smtp.login.assert_awaited_once_with('mailer', 'secret')
    smtp.send_message.assert_awaited_once()


async def test_send_without_credentials_skips_login(smtp_settings, mock_smtp):
    _, smtp = mock_smtp
    settings = smtp_settings.model_copy(update={'smtp_username': ''})

    await SmtpMailSender(settings).send(['a@example.com'], 'subject', 'body')

    smtp.login.assert_not_awaited()


async def test_smtp_error_raises_delivery_error(smtp_settings, mock_smtp):
    _, smtp = mock_smtp
    smtp.send_message.side_effect = aiosmtplib.SMTPException('rejected')

    with pytest.raises(MailDeliveryError):
        await SmtpMailSender(smtp_settings).send(['a@example.com'], 'subject', 'body')


async def test_connection_error_raises_delivery_error(smtp_settings, mock_smtp):
    smtp_cls, _ = mock_smtp
    smtp_cls.return_value.__aenter__.side_effect = ConnectionRefusedError('refused')

    with pytest.raises(MailDeliveryError):
        await SmtpMailSender(smtp_settings).send(['a@example.com'], 'subject', 'body')


async def test_default_settings_negotiate_starttls_on_submission_port(mock_smtp):
    smtp_cls, _ = mock_smtp

    await SmtpMailSender(Settings(token_secret='x')).send(['a@example.com'], 'subject', 'body')

    kwargs = smtp_cls.call_args.kwargs
    assert kwargs['port'] == 587
    assert kwargs['use_tls'] is False
    # None lets aiosmtplib upgrade when the server advertises STARTTLS
    assert kwargs['start_tls'] is None


async def test_implicit_tls_for_smtps_port(smtp_settings, mock_smtp):
    smtp_cls, _ = mock_smtp
    settings = smtp_settings.model_copy(update={'smtp_use_tls': True})

    await SmtpMailSender(settings).send(['a@example.com'], 'subject', 'body')

    assert smtp_cls.call_args.kwargs['use_tls'] is True
    assert smtp_cls.call_args.kwargs['port'] == 465
