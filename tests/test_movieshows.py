import requests

import services.movieshows_sync as movieshows_sync
from db_logger import log_info
from models import LogEntry, Movieshow
from services.movieshows_sync import summarize_sync_logs

FEED = [
    {'SHOWTIME_PID': 's1', 'MoviePID': '100', 'MOVIE_Name': 'הערת שוליים', 'MOVIE_English': 'Footnote',
     'DAY': '2025-01-10T00:00:00', 'TIME': '20:00', 'CINEMA': 'Cinema City', 'CITY': 'Jerusalem',
     'AvailableSEATS': '42'},
    {'SHOWTIME_PID': 's2', 'MoviePID': '100', 'MOVIE_Name': 'הערת שוליים', 'MOVIE_English': 'Footnote',
     'DAY': '2025-01-09T00:00:00', 'TIME': '18:00', 'CINEMA': 'Lev', 'CITY': 'Tel Aviv'},
    {'SHOWTIME_PID': 's3', 'MoviePID': '200', 'MOVIE_Name': 'ואלס עם באשיר', 'DAY': '2025-01-10T00:00:00',
     'TIME': '21:30'},
]


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = str(payload)

    def json(self):
        return self._payload


def fake_feed(monkeypatch, payload, status_code=200):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append({'url': url, 'params': params})
        return FakeResponse(payload, status_code)

    monkeypatch.setattr(movieshows_sync.requests, 'get', fake_get)
    return calls


def test_sync_inserts_new_and_skips_existing(client, monkeypatch):
    calls = fake_feed(monkeypatch, {'data': FEED})

    response = client.post('/api/movieshows/sync')
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['traceId'].startswith('sync-')
    assert body['results']['success'] == 3
    assert body['results']['existing'] == 0
    assert calls[0]['params'] == {'key': 'test-key'}
    assert Movieshow.query.count() == 3

    body = client.post('/api/movieshows/sync').get_json()
    assert body['results']['success'] == 0
    assert body['results']['existing'] == 3
    assert Movieshow.query.count() == 3


def test_sync_requires_key_when_secret_is_set(app, client, monkeypatch):
    fake_feed(monkeypatch, {'data': []})
    app.config['SYNC_SECRET'] = 'sync-secret'

    assert client.post('/api/movieshows/sync').status_code == 401
    assert client.post('/api/movieshows/sync', headers={'X-Sync-Key': 'wrong'}).status_code == 401
    assert client.post('/api/movieshows/sync', headers={'X-Sync-Key': 'sync-secret'}).status_code == 200


def test_sync_failure_is_reported_with_trace_id(client, monkeypatch):
    fake_feed(monkeypatch, {'error': 'down'}, status_code=503)

    response = client.post('/api/movieshows/sync')
    assert response.status_code == 502
    body = response.get_json()
    assert body['success'] is False
    assert body['error'] == 'Sync failed'
    assert body['traceId'].startswith('sync-')

    status = client.get(f"/api/movieshows/status?traceId={body['traceId']}").get_json()
    assert status['status'] == 'FAILED'


def test_sync_rejects_malformed_feed(client, monkeypatch):
    fake_feed(monkeypatch, {'data': [{'MoviePID': '1'}]})
    assert client.post('/api/movieshows/sync').status_code == 502


def test_sync_counts_non_object_rows_as_failed(client, monkeypatch):
    fake_feed(monkeypatch, {'data': [FEED[0], 'garbage']})

    response = client.post('/api/movieshows/sync')
    assert response.status_code == 200
    body = response.get_json()
    assert body['results']['success'] == 1
    assert body['results']['failed'] == 1
    assert Movieshow.query.count() == 1

    status = client.get(f"/api/movieshows/status?traceId={body['traceId']}").get_json()
    assert status['status'] == 'COMPLETED'


def test_sync_connection_error(client, monkeypatch):
    def broken_get(*args, **kwargs):
        raise requests.exceptions.ConnectionError("no route to host")

    monkeypatch.setattr(movieshows_sync.requests, 'get', broken_get)
    body = client.post('/api/movieshows/sync').get_json()
    assert 'Failed to connect' in body['details']


def test_status_after_completed_sync(client, monkeypatch):
    fake_feed(monkeypatch, {'data': FEED})
    trace_id = client.post('/api/movieshows/sync').get_json()['traceId']

    response = client.get(f'/api/movieshows/status?traceId={trace_id}')
    assert response.status_code == 200
    body = response.get_json()
    assert body['status'] == 'COMPLETED'
    assert body['results']['success'] == 3
    assert body['progress']['percentComplete'] == 100
    assert body['lastMessage'] == 'Operation completed: movieshows_sync'


def test_status_validation(client):
    assert client.get('/api/movieshows/status').status_code == 400
    assert client.get('/api/movieshows/status?traceId=x&hours=abc').status_code == 400
    assert client.get('/api/movieshows/status?traceId=x&hours=0').status_code == 400
    assert client.get('/api/movieshows/status?traceId=x&hours=1000000000').status_code == 400
    response = client.get('/api/movieshows/status?traceId=sync-unknown')
    assert response.status_code == 404
    assert response.get_json()['status'] == 'NOT_FOUND'


def test_summary_in_progress(app):
    log_info('Background sync started', {'traceId': 'sync-1'})
    log_info('Sync progress', {'traceId': 'sync-1', 'processed': 5, 'total': 10, 'percentComplete': 50})
    log_info('Unrelated', {'traceId': 'sync-2'})

    summary = summarize_sync_logs(LogEntry.query.order_by(LogEntry.id).all(), 'sync-1')
    assert summary['status'] == 'IN_PROGRESS'
    assert summary['entries'] == 2
    assert summary['progress'] == {'processed': 5, 'total': 10, 'percentComplete': 50}
    assert summary['results'] is None
    assert summarize_sync_logs([], 'sync-1') is None


def test_list_movieshows_by_moviepid(client, monkeypatch):
    fake_feed(monkeypatch, {'data': FEED})
    client.post('/api/movieshows/sync')

    response = client.get('/api/movieshows?moviepid=100')
    assert response.status_code == 200
    body = response.get_json()
    assert body['count'] == 2
    # Nach Tag sortiert / ordered by day
    assert [show['showtime_pid'] for show in body['data']] == ['s2', 's1']
    assert body['data'][1]['available_seats'] == 42

    assert client.get('/api/movieshows').status_code == 400
