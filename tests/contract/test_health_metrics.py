"""
Contract tests for health, Prometheus metrics and correlation ID handling.
"""

import uuid

LOG_URL = '/api/v1/ttfb/log'


def test_health_endpoints(client):
    assert client.get('/health').json() == {'status': 'healthy'}

    data = client.get('/api/health').json()
    assert data['status'] == 'healthy'
    assert data['database'] == 'configured'


def test_metrics_requires_authentication(client):
    response = client.get('/metrics')

    assert response.status_code == 401
    assert response.json()['detail']['error_code'] == 'AUTH_MISSING'


def test_metrics_exposes_ingest_counters(client, probe_headers):
    client.post(LOG_URL, json={'ttfb': 2500, 'url': 'https://example.com/'}, headers=probe_headers)

    response = client.get('/metrics', headers={'X-Forwarded-Access-Token': 'any-token'})

    assert response.status_code == 200
    assert 'text/plain' in response.headers['content-type']
    assert 'ttfb_ingest_requests_total' in response.text
    assert 'ttfb_reported_ms' in response.text
    assert 'request_duration_seconds' in response.text


def test_correlation_id_is_echoed(client):
    correlation_id = str(uuid.uuid4())

    response = client.get('/health', headers={'X-Correlation-ID': correlation_id})

    assert response.headers['X-Correlation-ID'] == correlation_id


def test_correlation_id_is_generated(client):
    response = client.get('/health')

    generated = response.headers['X-Correlation-ID']
    assert uuid.UUID(generated)
