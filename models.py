"""
models.py
Dieses Modul enthält die SQLAlchemy-Modelle für die SeretWeb-Anwendung.
This module contains the SQLAlchemy models for the SeretWeb application.

Die Tabellen gehören der Datenbank; die Anwendung liest und schreibt nur Zeilen.
The tables are owned by the database; the application only reads and writes rows.
"""

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

from utils import utcnow

# Globale SQLAlchemy-Instanz (wird in app.py initialisiert)
db = SQLAlchemy()


class User(db.Model):
    """
    User
    Repräsentiert einen registrierten Benutzer (Profil).
    Represents a registered user (profile).
    """
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    username = db.Column(db.String(100), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255), nullable=True)
    avatar_url = db.Column(db.String(500), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    # Beziehungen
    watchlist = db.relationship('WatchlistItem', back_populates='user', cascade="all, delete-orphan")
    reviews = db.relationship('Review', back_populates='user', cascade="all, delete-orphan")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<User id={self.id} username={self.username}>"


class AdminUser(db.Model):
    """Marks a user as administrator / Kennzeichnet einen Benutzer als Administrator."""
    __tablename__ = 'admin_users'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    created_at = db.Column(db.DateTime, default=utcnow)


class Movie(db.Model):
    """
    Movie
    Repräsentiert einen Film mit englischen und hebräischen Feldern.
    Represents a movie with English and Hebrew fields.
    """
    __tablename__ = 'movies'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    hebrew_title = db.Column(db.String(255), nullable=True)
    slug = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    hebrew_description = db.Column(db.Text, nullable=True)
    poster_url = db.Column(db.String(500), nullable=True) # TMDB-Pfad oder volle URL / TMDB path or full URL
    release_date = db.Column(db.Date, nullable=True)
    runtime = db.Column(db.Integer, nullable=True) # Minuten / minutes
    rating = db.Column(db.Float, nullable=True) # TMDB vote average (0-10)
    tmdb_id = db.Column(db.Integer, nullable=True, unique=True)
    trailer_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # Beziehungen
    cast = db.relationship('MovieActor', back_populates='movie', cascade="all, delete-orphan")
    genres = db.relationship('MovieGenre', back_populates='movie', cascade="all, delete-orphan")
    reviews = db.relationship('Review', back_populates='movie', cascade="all, delete-orphan")
    watchlisted_by = db.relationship('WatchlistItem', back_populates='movie', cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Movie id={self.id} title={self.title}>"


class Actor(db.Model):
    """
    Actor
    Repräsentiert einen Schauspieler.
    Represents an actor.
    """
    __tablename__ = 'actors'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    hebrew_name = db.Column(db.String(255), nullable=True)
    slug = db.Column(db.String(255), nullable=False, unique=True)
    bio = db.Column(db.Text, nullable=True)
    hebrew_bio = db.Column(db.Text, nullable=True)
    photo_url = db.Column(db.String(500), nullable=True)
    birth_date = db.Column(db.Date, nullable=True)
    tmdb_id = db.Column(db.Integer, nullable=True, unique=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    roles = db.relationship('MovieActor', back_populates='actor', cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Actor id={self.id} name={self.name}>"


class MovieActor(db.Model):
    """Verbindet Filme und Schauspieler (n:m) / Connects movies and actors (many-to-many)."""
    __tablename__ = 'movie_actors'
    id = db.Column(db.Integer, primary_key=True)
    movie_id = db.Column(db.Integer, db.ForeignKey('movies.id'), nullable=False)
    actor_id = db.Column(db.Integer, db.ForeignKey('actors.id'), nullable=False)
    role = db.Column(db.String(255), nullable=True)
    billing_order = db.Column(db.Integer, default=0)

    movie = db.relationship('Movie', back_populates='cast')
    actor = db.relationship('Actor', back_populates='roles')


class Genre(db.Model):
    __tablename__ = 'genres'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    hebrew_name = db.Column(db.String(100), nullable=True)
    slug = db.Column(db.String(100), nullable=False, unique=True)

    movies = db.relationship('MovieGenre', back_populates='genre', cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Genre id={self.id} slug={self.slug}>"


class MovieGenre(db.Model):
    __tablename__ = 'movie_genres'
    id = db.Column(db.Integer, primary_key=True)
    movie_id = db.Column(db.Integer, db.ForeignKey('movies.id'), nullable=False)
    genre_id = db.Column(db.Integer, db.ForeignKey('genres.id'), nullable=False)

    movie = db.relationship('Movie', back_populates='genres')
    genre = db.relationship('Genre', back_populates='movies')


class Theater(db.Model):
    """
    Theater
    Repräsentiert ein Kino.
    Represents a movie theater.
    """
    __tablename__ = 'theaters'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    hebrew_name = db.Column(db.String(255), nullable=True)
    slug = db.Column(db.String(255), nullable=False, unique=True)
    location = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    website = db.Column(db.String(500), nullable=True)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(500), nullable=True)
    bigger_id = db.Column(db.String(50), nullable=True) # ID im Ticketing-System / ID in the ticketing system

    showings = db.relationship('TheaterMovie', back_populates='theater', cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Theater id={self.id} name={self.name}>"


class TheaterMovie(db.Model):
    """
    TheaterMovie
    Ein Film, der in einem Kino über einen Zeitraum gezeigt wird.
    A movie screened at a theater over a date range.
    """
    __tablename__ = 'theater_movies'
    id = db.Column(db.Integer, primary_key=True)
    theater_id = db.Column(db.Integer, db.ForeignKey('theaters.id'), nullable=False)
    movie_id = db.Column(db.Integer, db.ForeignKey('movies.id'), nullable=False)
    active_status = db.Column(db.Boolean, default=True, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    language = db.Column(db.String(50), nullable=True)
    subtitles = db.Column(db.String(50), nullable=True)
    format = db.Column(db.String(50), nullable=True) # z.B. / e.g. "2D", "IMAX"

    theater = db.relationship('Theater', back_populates='showings')
    movie = db.relationship('Movie')
    showtimes = db.relationship('Showtime', back_populates='showing', cascade="all, delete-orphan",
                                order_by='Showtime.starts_at')


class Showtime(db.Model):
    __tablename__ = 'showtimes'
    id = db.Column(db.Integer, primary_key=True)
    theater_movie_id = db.Column(db.Integer, db.ForeignKey('theater_movies.id'), nullable=False)
    starts_at = db.Column(db.DateTime, nullable=False)
    hall = db.Column(db.String(50), nullable=True)
    format = db.Column(db.String(50), nullable=True)
    available_seats = db.Column(db.Integer, nullable=True)
    total_seats = db.Column(db.Integer, nullable=True)
    price = db.Column(db.Float, nullable=True)

    showing = db.relationship('TheaterMovie', back_populates='showtimes')


class Review(db.Model):
    """
    Review
    Bewertung (1-5) und Text eines Benutzers zu einem Film.
    A user's rating (1-5) and text for a movie.
    """
    __tablename__ = 'reviews'
    __table_args__ = (db.UniqueConstraint('user_id', 'movie_id', name='uq_reviews_user_movie'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    movie_id = db.Column(db.Integer, db.ForeignKey('movies.id'), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    content = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=utcnow)

    user = db.relationship('User', back_populates='reviews')
    movie = db.relationship('Movie', back_populates='reviews')

    def __repr__(self):
        return f"<Review id={self.id} user_id={self.user_id} movie_id={self.movie_id}>"


class WatchlistItem(db.Model):
    """Ein gespeicherter Film auf der Merkliste / A movie saved to a user's watchlist."""
    __tablename__ = 'watchlists'
    __table_args__ = (db.UniqueConstraint('user_id', 'movie_id', name='uq_watchlists_user_movie'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    movie_id = db.Column(db.Integer, db.ForeignKey('movies.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User', back_populates='watchlist')
    movie = db.relationship('Movie', back_populates='watchlisted_by')


class BlogPost(db.Model):
    __tablename__ = 'blog_posts'
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    hebrew_title = db.Column(db.String(255), nullable=True)
    slug = db.Column(db.String(255), nullable=False, unique=True)
    content = db.Column(db.Text, nullable=False) # Markdown
    hebrew_content = db.Column(db.Text, nullable=True)
    excerpt = db.Column(db.Text, nullable=True)
    cover_image = db.Column(db.String(500), nullable=True)
    published = db.Column(db.Boolean, default=False, nullable=False)
    published_at = db.Column(db.DateTime, nullable=True)
    movie_id = db.Column(db.Integer, db.ForeignKey('movies.id'), nullable=True)

    movie = db.relationship('Movie')


class Movieshow(db.Model):
    """
    Movieshow
    Eine Vorstellung, wie sie vom externen Showtimes-Feed synchronisiert wird.
    A screening as synchronised from the external showtimes feed.
    """
    __tablename__ = 'movieshows'
    id = db.Column(db.Integer, primary_key=True)
    moviepid = db.Column(db.String(50), nullable=False, index=True)
    showtime_pid = db.Column(db.String(50), nullable=False, unique=True)
    movie_name = db.Column(db.String(255), nullable=True)
    movie_english = db.Column(db.String(255), nullable=True)
    banner = db.Column(db.String(500), nullable=True)
    genres = db.Column(db.Text, nullable=True)
    day = db.Column(db.DateTime, nullable=True)
    time = db.Column(db.String(10), nullable=True)
    cinema = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(255), nullable=True)
    chain = db.Column(db.String(255), nullable=True)
    available_seats = db.Column(db.Integer, nullable=True)
    deep_link = db.Column(db.String(500), nullable=True)
    imdbid = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'moviepid': self.moviepid,
            'showtime_pid': self.showtime_pid,
            'movie_name': self.movie_name,
            'movie_english': self.movie_english,
            'banner': self.banner,
            'genres': self.genres,
            'day': self.day.isoformat() if self.day else None,
            'time': self.time,
            'cinema': self.cinema,
            'city': self.city,
            'chain': self.chain,
            'available_seats': self.available_seats,
            'deep_link': self.deep_link,
            'imdbid': self.imdbid,
        }


class LogEntry(db.Model):
    """
    LogEntry
    Betriebsprotokoll in der Tabelle `logs` (z.B. für den Showtimes-Sync).
    Operational log row in the `logs` table (e.g. for the showtimes sync).
    """
    __tablename__ = 'logs'
    id = db.Column(db.Integer, primary_key=True)
    level = db.Column(db.String(10), nullable=False)
    message = db.Column(db.Text, nullable=False)
    # 'metadata' ist in deklarativen Modellen reserviert / 'metadata' is reserved on declarative models
    details = db.Column('metadata', db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def __repr__(self):
        return f"<LogEntry id={self.id} level={self.level}>"


class Token(db.Model):
    """
    Token
    Zwischengespeichertes Drittanbieter-Token pro Zugangscode.
    Cached third-party access token per access code.
    """
    __tablename__ = 'tokens'
    id = db.Column(db.Integer, primary_key=True)
    access_code = db.Column(db.String(100), nullable=False, index=True)
    token = db.Column(db.Text, nullable=False)
    expired_date = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'accessCode': self.access_code,
            'token': self.token,
            'expiryDate': self.expired_date.isoformat(),
        }


class AppliedMigration(db.Model):
    __tablename__ = 'applied_migrations'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    applied_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    sql_content = db.Column(db.Text, nullable=False)
    applied_at = db.Column(db.DateTime, default=utcnow)
