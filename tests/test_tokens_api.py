from models import Token


def test_get_requires_access_code(client):
    response = client.get('/api/tokens')
    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_get_unknown_access_code(client):
    response = client.get('/api/tokens?accessCode=nope')
    assert response.status_code == 200
    assert response.get_json() == {'valid': False, 'reason': 'not_found'}


def test_store_validates_fields(client):
    assert client.post('/api/tokens', json={'accessCode': 'A1'}).status_code == 400
    response = client.post('/api/tokens', json={'accessCode': 'A1', 'token': 't', 'expiryDate': 'tomorrow'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid expiryDate format'


def test_store_then_fetch_valid_token(client):
    response = client.post('/api/tokens', json={
        'accessCode': 'A1', 'token': 'tok-1', 'expiryDate': '2099-01-01T00:00:00Z',
    })
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['data'][0]['accessCode'] == 'A1'

    body = client.get('/api/tokens?accessCode=A1').get_json()
    assert body == {'token': 'tok-1', 'valid': True, 'expires': '2099-01-01T00:00:00Z'}


def test_storing_again_updates_existing_row(client):
    client.post('/api/tokens', json={'accessCode': 'A1', 'token': 'old', 'expiryDate': '2099-01-01T00:00:00Z'})
    client.post('/api/tokens', json={'accessCode': 'A1', 'token': 'new', 'expiryDate': '2099-02-01T00:00:00Z'})

    assert Token.query.filter_by(access_code='A1').count() == 1
    assert client.get('/api/tokens?accessCode=A1').get_json()['token'] == 'new'


def test_expired_token_is_reported_without_value(client):
    client.post('/api/tokens', json={'accessCode': 'A2', 'token': 'tok', 'expiryDate': '2000-01-01T00:00:00Z'})

    body = client.get('/api/tokens?accessCode=A2').get_json()
    assert body == {'valid': False, 'reason': 'expired', 'expires': '2000-01-01T00:00:00Z'}
