"""
Contract tests for the /api/v1/ttfb endpoints.

Covers the probe-config handshake, ingest authorization, status codes for
every ingest outcome, and the admin-only listing and insights views.
"""

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from ttfb_monitor.app import create_app
from ttfb_monitor.services.sample_store import SampleFilter

LOG_URL = '/api/v1/ttfb/log'


def recent(hours=1):
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0) - timedelta(hours=hours)


# ============================================================================
# GET /api/v1/ttfb/probe-config
# ============================================================================

def test_probe_config_returns_thresholds_and_token(client):
    response = client.get('/api/v1/ttfb/probe-config')

    assert response.status_code == 200
    data = response.json()
    assert data['restUrl'].endswith('/api/v1/ttfb/log')
    assert data['token']
    assert data['warningThreshold'] == 800
    assert data['slowThreshold'] == 1800


def test_probe_config_sets_session_cookie(client):
    response = client.get('/api/v1/ttfb/probe-config')

    assert 'ttfb_session' in response.cookies
    assert 'httponly' in response.headers['set-cookie'].lower()


def test_probe_config_reuses_existing_session(client):
    client.get('/api/v1/ttfb/probe-config')
    response = client.get('/api/v1/ttfb/probe-config')

    assert 'set-cookie' not in response.headers


# ============================================================================
# POST /api/v1/ttfb/log: authorization
# ============================================================================

def test_ingest_without_token_is_forbidden(client):
    response = client.post(LOG_URL, json={'ttfb': 1200, 'url': 'https://example.com/'})

    assert response.status_code == 403
    assert response.json()['detail']['error_code'] == 'AUTH_FORBIDDEN'


def test_ingest_with_invalid_token_is_forbidden(client, probe_headers):
    response = client.post(
        LOG_URL, json={'ttfb': 1200, 'url': 'https://example.com/'}, headers={'X-TTFB-Token': '1.bogus'}
    )

    assert response.status_code == 403


def test_token_from_another_session_is_forbidden(app, probe_headers):
    other_client = TestClient(app)
    other_client.get('/api/v1/ttfb/probe-config')

    response = other_client.post(LOG_URL, json={'ttfb': 1200, 'url': 'https://example.com/'}, headers=probe_headers)

    assert response.status_code == 403


def test_ingest_with_user_session_needs_no_token(client, as_editor, store):
    response = client.post(LOG_URL, json={'ttfb': 1200, 'url': 'https://example.com/'}, headers=as_editor)

    assert response.status_code == 201
    [sample] = store.list(SampleFilter())
    assert sample.user_role == 'editors'


# ============================================================================
# POST /api/v1/ttfb/log: outcomes
# ============================================================================

def test_below_threshold_returns_200(client, probe_headers, store):
    response = client.post(LOG_URL, json={'ttfb': 800, 'url': 'https://example.com/'}, headers=probe_headers)

    assert response.status_code == 200
    assert response.json() == {'logged': False, 'reason': 'below-threshold'}
    assert store.count() == 0


def test_warning_sample_returns_201(client, probe_headers):
    response = client.post(LOG_URL, json={'ttfb': 1200, 'url': 'https://example.com/'}, headers=probe_headers)

    assert response.status_code == 201
    assert response.json() == {'logged': True, 'category': 'warning'}


def test_bad_sample_returns_201(client, probe_headers, store):
    payload = {
        'ttfb': 2500,
        'url': 'https://example.com/shop?page=2',
        'timestamp': '2025-03-04T10:15:30.000Z',
        'queryParamKeys': ['page', 'page'],
        'cookieNames': ['session'],
        'deviceType': 'mobile',
        'browser': 'Safari',
        'referrer': 'https://google.com/',
    }
    response = client.post(LOG_URL, json=payload, headers={**probe_headers, 'CF-IPCountry': 'gb'})

    assert response.status_code == 201
    assert response.json() == {'logged': True, 'category': 'bad'}

    [sample] = store.list(SampleFilter())
    assert sample.recorded_at == datetime(2025, 3, 4, 10, 15, 30)
    assert sample.query_params == '["page"]'
    assert sample.country == 'GB'
    assert sample.user_role == 'guest'


def test_missing_url_returns_422(client, probe_headers):
    response = client.post(LOG_URL, json={'ttfb': 1200}, headers=probe_headers)

    assert response.status_code == 422


def test_non_positive_ttfb_returns_422(client, probe_headers):
    response = client.post(LOG_URL, json={'ttfb': 0, 'url': 'https://example.com/'}, headers=probe_headers)

    assert response.status_code == 422


def test_non_numeric_ttfb_returns_422(client, probe_headers):
    response = client.post(LOG_URL, json={'ttfb': 'slow', 'url': 'https://example.com/'}, headers=probe_headers)

    assert response.status_code == 422


def test_out_of_range_timestamp_is_stored_at_ingest_time(client, probe_headers, store):
    payload = {'ttfb': 2000, 'url': 'https://example.com/', 'timestamp': '0001-01-01T00:00:00+01:00'}

    response = client.post(LOG_URL, json=payload, headers=probe_headers)

    assert response.status_code == 201
    [sample] = store.list(SampleFilter())
    assert sample.recorded_at >= recent()


def test_store_failure_returns_500(app, client, probe_headers, monkeypatch):
    monkeypatch.setattr(app.state.container.store, 'insert', lambda sample: False)

    response = client.post(LOG_URL, json={'ttfb': 2500, 'url': 'https://example.com/'}, headers=probe_headers)

    assert response.status_code == 500


def test_unconfigured_database_returns_503(settings, monkeypatch):
    for var in ('PGHOST', 'LAKEBASE_HOST', 'LAKEBASE_DATABASE'):
        monkeypatch.delenv(var, raising=False)
    client = TestClient(create_app(settings=settings))
    headers = {'X-TTFB-Token': client.get('/api/v1/ttfb/probe-config').json()['token']}

    response = client.post(LOG_URL, json={'ttfb': 2500, 'url': 'https://example.com/'}, headers=headers)

    assert response.status_code == 503


# ============================================================================
# GET /api/v1/ttfb/logs
# ============================================================================

def test_logs_require_authentication(client):
    assert client.get('/api/v1/ttfb/logs').status_code == 401


def test_logs_require_admin(client, as_editor):
    assert client.get('/api/v1/ttfb/logs', headers=as_editor).status_code == 403


def test_logs_newest_first(client, as_admin, make_sample):
    make_sample(1200, '/older', recorded_at=recent(hours=3))
    make_sample(2500, '/newer', recorded_at=recent(hours=1))

    response = client.get('/api/v1/ttfb/logs', headers=as_admin)

    assert response.status_code == 200
    data = response.json()
    assert data['total'] == 2
    assert data['page'] == 1
    assert data['per_page'] == 20
    assert [item['url'] for item in data['items']] == ['/newer', '/older']


def test_logs_filter_by_category_and_search(client, as_admin, make_sample):
    make_sample(1200, '/shop/cart')
    make_sample(2500, '/shop/checkout')
    make_sample(2600, '/blog')

    response = client.get('/api/v1/ttfb/logs?category=bad&search=shop', headers=as_admin)

    data = response.json()
    assert data['total'] == 1
    assert data['items'][0]['url'] == '/shop/checkout'


def test_logs_decode_signal_lists(client, as_admin, make_sample):
    make_sample(2500, '/a', cookies=['session', 'consent'])

    item = client.get('/api/v1/ttfb/logs', headers=as_admin).json()['items'][0]

    assert item['cookies'] == ['session', 'consent']
    assert item['query_params'] == []


def test_logs_validate_pagination(client, as_admin):
    assert client.get('/api/v1/ttfb/logs?per_page=0', headers=as_admin).status_code == 422
    assert client.get('/api/v1/ttfb/logs?per_page=101', headers=as_admin).status_code == 422
    assert client.get('/api/v1/ttfb/logs?category=fast', headers=as_admin).status_code == 422


# ============================================================================
# GET /api/v1/ttfb/insights
# ============================================================================

def test_insights_require_admin(client, as_editor):
    assert client.get('/api/v1/ttfb/insights', headers=as_editor).status_code == 403


def test_insights_summarize_trailing_week(client, as_admin, make_sample):
    make_sample(2000, '/a', recorded_at=recent(hours=2))
    make_sample(1900, '/a', recorded_at=recent(hours=1))
    make_sample(900, '/b', recorded_at=recent(hours=1))
    make_sample(3000, '/old', recorded_at=recent(hours=24 * 10))

    response = client.get('/api/v1/ttfb/insights', headers=as_admin)

    assert response.status_code == 200
    data = response.json()
    assert data['counts'] == {'warning': 1, 'bad': 2}
    assert [s['ttfb_ms'] for s in data['top_slowest']] == [2000, 1900]
    assert data['similarity']['by_url'] == [{'label': '/a', 'count': 2, 'average': 1950}]


def test_insights_empty(client, as_admin):
    data = client.get('/api/v1/ttfb/insights', headers=as_admin).json()

    assert data['counts'] == {'warning': 0, 'bad': 0}
    assert data['top_slowest'] == []
    assert data['similarity'] == {'by_url': [], 'by_query_params': [], 'by_cookies': []}
