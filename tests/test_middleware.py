from tests.conftest import login


def test_root_redirects_to_default_locale(client):
    response = client.get('/')
    assert response.status_code == 302
    assert response.headers['Location'] == '/en'
    assert 'LOCALE=en' in response.headers['Set-Cookie']


def test_root_detects_hebrew_speakers(client):
    response = client.get('/', headers={'Accept-Language': 'he-IL,he;q=0.9'})
    assert response.headers['Location'] == '/he'

    response = client.get('/', headers={'CF-IPCountry': 'IL'})
    assert response.headers['Location'] == '/he'


def test_root_prefers_locale_cookie(client):
    client.set_cookie('LOCALE', 'he')
    response = client.get('/', headers={'Accept-Language': 'en-US'})
    assert response.headers['Location'] == '/he'


def test_unprefixed_paths_get_locale_prefix(client):
    response = client.get('/movies?page=2')
    assert response.status_code == 302
    assert response.headers['Location'] == '/en/movies?page=2'

    client.set_cookie('LOCALE', 'he')
    response = client.get('/actors/gila-almagor')
    assert response.headers['Location'] == '/he/actors/gila-almagor'


def test_own_profile_requires_session(client):
    response = client.get('/he/profile')
    assert response.status_code == 302
    assert response.headers['Location'] == '/he/auth'


def test_public_pages_are_cacheable_for_anonymous_visitors(client):
    client.set_cookie('LOCALE', 'en')
    response = client.get('/en/about')
    assert response.status_code == 200
    assert response.headers['Cache-Control'] == 'public, max-age=0, s-maxage=60, stale-while-revalidate=300'
    assert 'Cookie' in response.headers['Vary']


def test_first_visit_sets_locale_cookie_and_stays_private(client):
    response = client.get('/he/about')
    assert 'LOCALE=he' in response.headers['Set-Cookie']
    assert response.headers['Cache-Control'] == 'private, no-cache'


def test_signed_in_pages_are_private(client, make_user):
    login(client, make_user())
    client.set_cookie('LOCALE', 'en')
    response = client.get('/en/about')
    assert response.headers['Cache-Control'] == 'private, no-cache'


def test_static_and_api_cache_headers(client):
    assert client.get('/static/css/style.css').headers['Cache-Control'] == 'public, max-age=31536000, immutable'
    assert client.get('/api/tokens').headers['Cache-Control'] == 'no-store'


def test_error_pages_are_private(client):
    client.set_cookie('LOCALE', 'en')
    response = client.get('/en/movies/does-not-exist')
    assert response.status_code == 404
    assert response.headers['Cache-Control'] == 'private, no-cache'
