import json
import logging

import pytest

from conftest import bearer


@pytest.mark.parametrize('path', [
    '/api/roadmap',
    '/api/roadmap/generate',
    '/api/roadmap/progress',
    '/api/signup',
    '/api/contact',
    '/api/does-not-exist',
])
def test_options_short_circuits_with_bare_200(client, fake_ai, fake_mailer, path):
    r = client.options(path, headers={'Origin': 'http://localhost:3001', 'Access-Control-Request-Method': 'POST'})
    assert r.status_code == 200
    assert r.content == b''
    assert r.headers['access-control-allow-origin'] == 'http://localhost:3001'
    assert r.headers['access-control-allow-credentials'] == 'true'
    assert 'Authorization' in r.headers['access-control-allow-headers']
    assert fake_ai.calls == []
    assert fake_mailer.sent == []


def test_options_without_origin_or_token(client):
    r = client.options('/api/roadmap')
    assert r.status_code == 200
    assert r.headers['access-control-allow-origin'] == '*'


def test_origin_reflected_on_normal_and_error_responses(client):
    ok = client.get('/health', headers={'Origin': 'http://example.org'})
    assert ok.headers['access-control-allow-origin'] == 'http://example.org'
    assert ok.headers['access-control-allow-methods'] == 'GET, POST, PUT, DELETE, OPTIONS'
    denied = client.get('/api/roadmap', headers={'Origin': 'http://example.org'})
    assert denied.status_code == 401
    assert denied.headers['access-control-allow-origin'] == 'http://example.org'


def test_missing_origin_falls_back_to_wildcard(client, signup):
    token, _ = signup()
    r = client.get('/api/roadmap', headers=bearer(token))
    assert r.headers['access-control-allow-origin'] == '*'
    assert r.headers['x-request-id']


def test_unexpected_error_is_json_500_with_cors(client, fake_ai, monkeypatch):
    def broken(*args):
        raise RuntimeError('boom')

    monkeypatch.setattr(fake_ai, 'execute_code', broken)
    r = client.post('/api/execute', json={'code': 'x'}, headers={'Origin': 'http://example.org'})
    assert r.status_code == 500
    assert r.json() == {'error': 'Internal server error'}
    assert r.headers['access-control-allow-origin'] == 'http://example.org'
    assert r.headers['x-request-id']


def test_api_request_log_carries_user_id(client, signup, caplog):
    token, user = signup()
    caplog.set_level(logging.INFO, logger='codefuture.api')
    client.get('/api/roadmap', headers={**bearer(token), 'X-Request-ID': 'req-42'})

    lines = [json.loads(r.getMessage().split(' ', 1)[1]) for r in caplog.records if r.getMessage().startswith('api_request')]
    assert lines[-1]['request_id'] == 'req-42'
    assert lines[-1]['user_id'] == user['id']
    assert lines[-1]['status'] == 200
    assert lines[-1]['path'] == '/api/roadmap'
