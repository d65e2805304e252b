"""
Gemeinsame pytest-Fixtures: App mit In-Memory-SQLite, Test-Client und Datenhelfer.
Shared pytest fixtures: app on in-memory SQLite, test client and data helpers.
"""

import os
from datetime import date

# Muss vor dem Import der App gesetzt sein / must be set before the app is imported
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SECRET_KEY'] = 'test-secret'

import pytest

from app import app as flask_app
from cache_manager import cache_manager
from models import db, AdminUser, Movie, User


@pytest.fixture
def app(tmp_path):
    flask_app.config.update(
        TESTING=True,
        WTF_CSRF_ENABLED=False,
        FETCH_RETRIES=2,
        FETCH_RETRY_DELAY=0,
        SYNC_SECRET=None,
        ENABLE_DEBUG_ROUTES=False,
        MIGRATIONS_DIR=str(tmp_path),
        SHOWTIMES_API_URL='https://showtimes.example.com/api',
        SHOWTIMES_API_KEY='test-key',
        TICKETING_API_URL='https://ticketing.example.com/login',
        TICKETING_API_USERNAME='seret',
        TICKETING_API_PASSWORD='secret',
    )
    cache_manager.clear()
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()
    cache_manager.clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(username='dana', email=None, password='pass1234', admin=False):
        user = User(email=email or f"{username}@example.com", username=username)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        if admin:
            db.session.add(AdminUser(user_id=user.id))
            db.session.commit()
        return user
    return _make_user


@pytest.fixture
def make_movie(app):
    def _make_movie(title='Footnote', slug=None, hebrew_title=None, **fields):
        fields.setdefault('release_date', date(2011, 6, 2))
        movie = Movie(title=title, slug=slug or title.lower().replace(' ', '-'), hebrew_title=hebrew_title, **fields)
        db.session.add(movie)
        db.session.commit()
        return movie
    return _make_movie


def login(client, user):
    with client.session_transaction() as sess:
        sess['user_id'] = user.id
