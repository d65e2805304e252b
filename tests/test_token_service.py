from datetime import timedelta

import pytest
import requests

import services.token_service as token_module
from datamanager.sql_data_manager import SQLDataManager
from models import Token
from services.token_service import TokenService, TokenServiceError
from utils import utcnow


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


@pytest.fixture
def service(app):
    return TokenService(data_manager=SQLDataManager())


def test_fetches_and_stores_a_new_token(service, monkeypatch):
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append(json)
        return FakeResponse({'token': 'fresh-token'})

    monkeypatch.setattr(token_module.requests, 'post', fake_post)

    assert service.get_valid_token('CODE1') == 'fresh-token'
    assert calls == [{'username': 'seret', 'password': 'secret', 'accessCode': 'CODE1'}]
    stored = Token.query.filter_by(access_code='CODE1').one()
    assert stored.expired_date > utcnow() + timedelta(days=29)

    # Zweiter Aufruf nutzt das gespeicherte Token / second call uses the stored token
    assert service.get_valid_token('CODE1') == 'fresh-token'
    assert len(calls) == 1


def test_expired_token_is_refreshed(service, monkeypatch):
    service.data_manager.store_token('CODE2', 'stale', utcnow() - timedelta(days=1))
    monkeypatch.setattr(token_module.requests, 'post', lambda *a, **kw: FakeResponse({'token': 'renewed'}))

    assert service.get_stored_token('CODE2') is None
    assert service.get_valid_token('CODE2') == 'renewed'
    assert Token.query.filter_by(access_code='CODE2').one().token == 'renewed'


def test_failed_requests_raise_after_retries(service, monkeypatch):
    attempts = []

    def failing_post(*args, **kwargs):
        attempts.append(1)
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(token_module.requests, 'post', failing_post)

    with pytest.raises(TokenServiceError):
        service.get_and_store_token('CODE3')
    assert len(attempts) == 2


def test_response_without_token_is_an_error(service, monkeypatch):
    monkeypatch.setattr(token_module.requests, 'post', lambda *a, **kw: FakeResponse({'status': 'ok'}))
    with pytest.raises(TokenServiceError):
        service.get_and_store_token('CODE4')


def test_refresh_token_cli_command(app, monkeypatch):
    monkeypatch.setattr(token_module.requests, 'post', lambda *a, **kw: FakeResponse({'token': 'cli-token'}))

    result = app.test_cli_runner().invoke(args=['refresh-token', 'CODE5'])
    assert result.exit_code == 0
    assert 'CODE5' in result.output
    assert Token.query.filter_by(access_code='CODE5').one().token == 'cli-token'
