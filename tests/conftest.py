"""Shared test fixtures and utilities for all tests.

This conftest.py provides reusable fixtures that can be used across
unit, contract, and integration tests: settings, an in-memory SQLite sample
store, the app wired to both, and mocked Databricks identities.
"""

import sys
from datetime import datetime
from pathlib import Path

# Ensure the project root is first in sys.path so `scripts` resolves here
project_root = str(Path(__file__).parent.parent.absolute())
if project_root not in sys.path:
    sys.path.insert(0, project_root)
elif sys.path[0] != project_root:
    sys.path.remove(project_root)
    sys.path.insert(0, project_root)

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ttfb_monitor.app import create_app
from ttfb_monitor.lib.config import Settings
from ttfb_monitor.lib.database import Base
from ttfb_monitor.lib.list_codec import encode_list
from ttfb_monitor.models.ttfb_sample import TtfbSample
from ttfb_monitor.models.user_session import UserIdentity
from ttfb_monitor.services.admin_service import clear_admin_cache
from ttfb_monitor.services.sample_store import SampleStore


# ============================================================================
# Settings and Database Fixtures
# ============================================================================

@pytest.fixture
def settings():
    """Settings with default thresholds and a fixed token secret."""
    return Settings(
        token_secret='test-secret',
        email_enabled=True,
        email_recipients='ops@example.com, dev@example.com',
        timezone='UTC',
    )


@pytest.fixture
def db_engine():
    """In-memory SQLite shared across sessions via StaticPool."""
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=db_engine)


@pytest.fixture
def store(session_factory):
    return SampleStore(session_factory)


@pytest.fixture
def make_sample(store):
    """Insert a sample directly, bypassing the classifier."""

    def _make(ttfb_ms, url='/a', recorded_at=None, category=None, query_params=None, cookies=None, **extra):
        sample = TtfbSample(
            recorded_at=recorded_at or datetime(2025, 3, 4, 12, 0, 0),
            ttfb_ms=ttfb_ms,
            category=category or ('bad' if ttfb_ms >= 1800 else 'warning'),
            url=url,
            query_params=encode_list(query_params or []),
            cookies=encode_list(cookies or []),
            user_role=extra.get('user_role', 'guest'),
            country=extra.get('country', ''),
            device_type=extra.get('device_type', 'desktop'),
            browser=extra.get('browser', 'Chrome'),
            referrer=extra.get('referrer'),
        )
        assert store.insert(sample)
        return sample

    return _make


# ============================================================================
# Mail Fixtures
# ============================================================================

class RecordingMailSender:
    """MailSender that keeps messages instead of sending them."""

    def __init__(self):
        self.messages = []

    async def send(self, recipients, subject, body):
        self.messages.append({'recipients': recipients, 'subject': subject, 'body': body})


@pytest.fixture
def mail_sender():
    return RecordingMailSender()


# ============================================================================
# FastAPI Application Fixtures
# ============================================================================

@pytest.fixture
def app(settings, session_factory, mail_sender):
    """The real app wired to the in-memory store."""
    return create_app(settings=settings, session_factory=session_factory, mail_sender=mail_sender)


@pytest.fixture
def client(app):
    """Fixture that provides a test client for the app."""
    return TestClient(app)


@pytest.fixture
def probe_headers(client):
    """Anti-forgery header for the client's session (sets the session cookie)."""
    config = client.get('/api/v1/ttfb/probe-config').json()
    return {'X-TTFB-Token': config['token']}


# ============================================================================
# Mock User Identity Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def reset_admin_cache():
    clear_admin_cache()
    yield
    clear_admin_cache()


@pytest.fixture
def admin_identity():
    return UserIdentity(user_id='admin@example.com', display_name='Admin', groups=['admins', 'users'])


@pytest.fixture
def editor_identity():
    return UserIdentity(user_id='editor@example.com', display_name='Editor', groups=['editors'])


@pytest.fixture
def as_admin(admin_identity):
    """Resolve every forwarded user token to an admin identity."""
    with patch(
        'ttfb_monitor.services.user_service.UserService.get_user_info',
        new=AsyncMock(return_value=admin_identity),
    ):
        yield {'X-Forwarded-Access-Token': 'mock-admin-token'}


@pytest.fixture
def as_editor(editor_identity):
    """Resolve every forwarded user token to a non-admin identity."""
    with patch(
        'ttfb_monitor.services.user_service.UserService.get_user_info',
        new=AsyncMock(return_value=editor_identity),
    ):
        yield {'X-Forwarded-Access-Token': 'mock-editor-token'}
