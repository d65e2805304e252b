from models import db, Actor, Theater


def test_search_requires_query(client):
    response = client.get('/api/search')
    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_search_matches_both_languages(client, make_movie):
    make_movie(title='Footnote', hebrew_title='הערת שוליים', poster_url='/footnote.jpg')
    db.session.add(Actor(name='Shlomo Bar-Aba', hebrew_name='שלמה בר-אבא', slug='shlomo-bar-aba'))
    db.session.add(Theater(name='Jerusalem Cinematheque', hebrew_name='סינמטק ירושלים', slug='jerusalem-cinematheque',
                           location='Jerusalem'))
    db.session.commit()

    body = client.get('/api/search', query_string={'q': 'שוליים'}).get_json()
    assert [movie['title'] for movie in body['movies']] == ['Footnote']
    assert body['movies'][0]['poster_url'].endswith('/footnote.jpg')

    body = client.get('/api/search?q=jerusalem').get_json()
    assert [theater['slug'] for theater in body['theaters']] == ['jerusalem-cinematheque']

    body = client.get('/api/search?q=bar-aba').get_json()
    assert body['actors'][0]['hebrew_name'] == 'שלמה בר-אבא'


def test_search_treats_wildcards_literally(client, make_movie):
    make_movie(title='Footnote')
    body = client.get('/api/search?q=%25').get_json()
    assert body['movies'] == []


def test_search_results_are_cached(client, make_movie):
    movie = make_movie(title='Footnote')
    assert len(client.get('/api/search?q=foot').get_json()['movies']) == 1

    db.session.delete(movie)
    db.session.commit()

    # Gleiche Anfrage kommt aus dem Cache / same request is served from the cache
    assert len(client.get('/api/search?q=foot').get_json()['movies']) == 1
    assert client.get('/api/search?q=foot&limit=5').get_json()['movies'] == []


def test_search_rejects_bad_limit(client):
    assert client.get('/api/search?q=a&limit=abc').status_code == 400
