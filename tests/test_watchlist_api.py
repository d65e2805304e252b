from models import WatchlistItem
from tests.conftest import login


def test_status_is_false_without_session(client, make_movie):
    movie = make_movie()
    response = client.get(f'/api/watchlist?movieId={movie.id}')
    assert response.status_code == 200
    assert response.get_json() == {'inWatchlist': False}


def test_status_is_false_without_movie_id(client, make_user):
    login(client, make_user())
    response = client.get('/api/watchlist')
    assert response.status_code == 200
    assert response.get_json() == {'inWatchlist': False}


def test_add_requires_session(client, make_movie):
    movie = make_movie()
    response = client.post('/api/watchlist', json={'movieId': movie.id})
    assert response.status_code == 401
    assert response.get_json() == {'success': False, 'error': 'Unauthorized'}


def test_add_validates_movie(client, make_user):
    login(client, make_user())
    assert client.post('/api/watchlist', json={}).status_code == 400
    assert client.post('/api/watchlist', json={'movieId': 'abc'}).status_code == 400
    assert client.post('/api/watchlist', json={'movieId': 999}).status_code == 404


def test_add_check_and_remove(client, make_user, make_movie):
    user = make_user()
    movie = make_movie()
    login(client, user)

    response = client.post('/api/watchlist', json={'movieId': movie.id})
    assert response.status_code == 200
    assert response.get_json() == {'success': True}
    assert client.get(f'/api/watchlist?movieId={movie.id}').get_json() == {'inWatchlist': True}

    # Zweites Hinzufügen ist idempotent / adding twice is idempotent
    assert client.post('/api/watchlist', json={'movieId': movie.id}).status_code == 200
    assert WatchlistItem.query.filter_by(user_id=user.id, movie_id=movie.id).count() == 1

    response = client.delete('/api/watchlist', json={'movieId': movie.id})
    assert response.status_code == 200
    assert client.get(f'/api/watchlist?movieId={movie.id}').get_json() == {'inWatchlist': False}


def test_remove_requires_session_and_movie_id(client, make_user):
    assert client.delete('/api/watchlist', json={'movieId': 1}).status_code == 401
    login(client, make_user())
    assert client.delete('/api/watchlist', json={}).status_code == 400


def test_api_responses_are_not_cached(client):
    response = client.get('/api/watchlist')
    assert response.headers['Cache-Control'] == 'no-store'
