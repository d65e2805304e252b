"""
sql_data_manager.py
Dieses Modul implementiert die DataManagerInterface mit SQLAlchemy.
This module implements the DataManagerInterface using SQLAlchemy.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import func, inspect, or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from datamanager.data_manager_interface import DataManagerInterface
from models import (
    db, User, AdminUser, Movie, Actor, MovieActor, Genre, MovieGenre, Theater, TheaterMovie,
    Review, WatchlistItem, BlogPost, Movieshow, LogEntry, Token, AppliedMigration,
)
from utils import utcnow

DEFAULT_PAGE_SIZE = 24
PAST_SHOWINGS_LIMIT = 8


def _like_pattern(query: str) -> str:
    """Escapes LIKE wildcards so user input is matched literally."""
    escaped = query.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped}%"


class SQLDataManager(DataManagerInterface):
    """
    SQLDataManager
    Concrete implementation of the DataManagerInterface using SQLAlchemy.
    It handles all database interactions of the site: users, movies, actors, genres,
    theaters and showings, reviews, watchlists, blog posts, synced movieshows, tokens and logs.

    Konkrete Umsetzung des DataManagerInterface mit SQLAlchemy.
    Diese Klasse handhabt alle Datenbankinteraktionen der Seite.

    Lesemethoden für Seiten fangen SQLAlchemyError ab und liefern einen neutralen Wert.
    Methoden, auf denen API-Entscheidungen beruhen (Watchlist-Status, Tokens, Logs),
    reichen Fehler an die Route weiter.
    Page reads catch SQLAlchemyError and return a neutral value. Methods that API
    decisions rest on (watchlist state, tokens, logs) let errors reach the route.
    """

    # --- Users / Benutzer ---

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        try:
            return db.session.get(User, user_id)
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching user by ID {user_id}: {e}.")
            return None

    def get_user_by_username(self, username: str) -> Optional[User]:
        if not username:
            return None
        try:
            return User.query.filter(func.lower(User.username) == username.strip().lower()).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching user by username '{username}': {e}.")
            return None

    def get_user_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        try:
            return User.query.filter(func.lower(User.email) == email.strip().lower()).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching user by email: {e}.")
            return None

    def add_user(self, email: str, username: str, password: str) -> Optional[User]:
        """
        Registers a new user. Handles input validation (stripping, lowercasing the email,
        empty check) and checks for duplicates before adding the user.

        Registriert einen neuen Benutzer. Behandelt die Eingabevalidierung und prüft auf
        Duplikate, bevor der Benutzer hinzugefügt wird.
        """
        email_processed = (email or '').strip().lower()
        username_processed = (username or '').strip()
        if not email_processed or not username_processed or not password:
            current_app.logger.warning("Attempted to register user with empty fields.")
            return None

        try:
            if self.get_user_by_email(email_processed) or self.get_user_by_username(username_processed):
                current_app.logger.warning(f"Attempted to register duplicate user '{username_processed}'.")
                return None

            user = User(email=email_processed, username=username_processed)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            current_app.logger.info(f"User '{user.username}' (ID: {user.id}) registered successfully.")
            return user
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error registering user '{username_processed}': {e}.")
            return None

    def authenticate(self, identifier: str, password: str) -> Optional[User]:
        identifier = (identifier or '').strip()
        if not identifier or not password:
            return None
        user = self.get_user_by_email(identifier) if '@' in identifier else self.get_user_by_username(identifier)
        if user and user.check_password(password):
            return user
        current_app.logger.warning(f"Failed login attempt for '{identifier}'.")
        return None

    def is_admin(self, user_id: int) -> bool:
        """Raises SQLAlchemyError so an admin check never silently passes on a DB failure."""
        return AdminUser.query.filter_by(user_id=user_id).first() is not None

    # --- Movies / Filme ---

    def get_movies(self, page: int = 1, per_page: int = DEFAULT_PAGE_SIZE):
        """
        Liefert eine Seite aller Filme (neueste zuerst) als Pagination-Objekt.
        Returns one page of all movies (newest first) as a Pagination object.
        """
        try:
            return Movie.query.order_by(Movie.release_date.desc(), Movie.id.desc()) \
                .paginate(page=page, per_page=per_page, error_out=False)
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching movies page {page}: {e}.")
            return None

    def get_movie_by_slug(self, slug: str) -> Optional[Movie]:
        try:
            return Movie.query.filter_by(slug=slug).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching movie by slug '{slug}': {e}.")
            return None

    def get_movie_by_id(self, movie_id: int) -> Optional[Movie]:
        """Raises SQLAlchemyError; used by API routes to tell a missing movie from a DB failure."""
        return db.session.get(Movie, movie_id)

    def get_latest_movies(self, limit: int = 12) -> List[Movie]:
        try:
            return Movie.query.filter(Movie.release_date.isnot(None), Movie.release_date <= utcnow().date()) \
                .order_by(Movie.release_date.desc()).limit(limit).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching latest movies: {e}.")
            return []

    def get_top_rated_movies(self, limit: int = 12) -> List[Movie]:
        try:
            return Movie.query.filter(Movie.rating.isnot(None)) \
                .order_by(Movie.rating.desc(), Movie.title).limit(limit).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching top rated movies: {e}.")
            return []

    def get_coming_soon_movies(self, limit: int = 12) -> List[Movie]:
        try:
            return Movie.query.filter(Movie.release_date > utcnow().date()) \
                .order_by(Movie.release_date.asc()).limit(limit).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching coming soon movies: {e}.")
            return []

    def get_now_in_theaters_movies(self) -> List[Movie]:
        """
        Filme mit mindestens einer aktiven Vorstellung, die heute läuft.
        Movies with at least one active showing running today.
        """
        today = utcnow().date()
        try:
            return Movie.query.join(TheaterMovie, TheaterMovie.movie_id == Movie.id) \
                .filter(TheaterMovie.active_status.is_(True),
                        TheaterMovie.start_date <= today,
                        TheaterMovie.end_date >= today) \
                .distinct().order_by(Movie.title).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching movies now in theaters: {e}.")
            return []

    def get_movie_cast(self, movie_id: int) -> List[MovieActor]:
        try:
            return MovieActor.query.filter_by(movie_id=movie_id) \
                .order_by(MovieActor.billing_order, MovieActor.id).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching cast for movie {movie_id}: {e}.")
            return []

    def get_movie_genres(self, movie_id: int) -> List[Genre]:
        try:
            return Genre.query.join(MovieGenre, MovieGenre.genre_id == Genre.id) \
                .filter(MovieGenre.movie_id == movie_id).order_by(Genre.name).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching genres for movie {movie_id}: {e}.")
            return []

    # --- Actors / Schauspieler ---

    def get_actors(self, page: int = 1, per_page: int = DEFAULT_PAGE_SIZE):
        try:
            return Actor.query.order_by(Actor.name).paginate(page=page, per_page=per_page, error_out=False)
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching actors page {page}: {e}.")
            return None

    def get_actor_by_slug(self, slug: str) -> Optional[Actor]:
        try:
            return Actor.query.filter_by(slug=slug).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching actor by slug '{slug}': {e}.")
            return None

    def get_actor_movies(self, actor_id: int) -> List[MovieActor]:
        """
        Liefert die Rollen eines Schauspielers, neueste Filme zuerst.
        Returns an actor's roles, newest movies first.
        """
        try:
            return MovieActor.query.join(Movie, MovieActor.movie_id == Movie.id) \
                .filter(MovieActor.actor_id == actor_id) \
                .order_by(Movie.release_date.desc(), Movie.id.desc()).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching movies for actor {actor_id}: {e}.")
            return []

    # --- Genres ---

    def get_all_genres(self) -> List[Genre]:
        try:
            return Genre.query.order_by(Genre.name).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching genres: {e}.")
            return []

    def get_genre_by_slug(self, slug: str) -> Optional[Genre]:
        try:
            return Genre.query.filter_by(slug=slug).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching genre by slug '{slug}': {e}.")
            return None

    def get_genre_movies(self, genre_id: int) -> List[Movie]:
        try:
            return Movie.query.join(MovieGenre, MovieGenre.movie_id == Movie.id) \
                .filter(MovieGenre.genre_id == genre_id) \
                .order_by(Movie.release_date.desc(), Movie.id.desc()).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching movies for genre {genre_id}: {e}.")
            return []

    # --- Theaters / Kinos ---

    def get_all_theaters(self) -> List[Theater]:
        try:
            return Theater.query.order_by(Theater.name).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching theaters: {e}.")
            return []

    def get_theater_by_slug(self, slug: str) -> Optional[Theater]:
        try:
            return Theater.query.filter_by(slug=slug).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching theater by slug '{slug}': {e}.")
            return None

    def get_active_showings(self, theater_id: int) -> List[TheaterMovie]:
        try:
            return TheaterMovie.query.filter(TheaterMovie.theater_id == theater_id,
                                             TheaterMovie.active_status.is_(True),
                                             TheaterMovie.end_date >= utcnow().date()) \
                .order_by(TheaterMovie.start_date.desc()).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching active showings for theater {theater_id}: {e}.")
            return []

    def get_past_showings(self, theater_id: int, limit: int = PAST_SHOWINGS_LIMIT) -> List[TheaterMovie]:
        try:
            return TheaterMovie.query.filter(TheaterMovie.theater_id == theater_id,
                                             TheaterMovie.active_status.is_(False),
                                             TheaterMovie.end_date < utcnow().date()) \
                .order_by(TheaterMovie.end_date.desc()).limit(limit).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching past showings for theater {theater_id}: {e}.")
            return []

    # --- Reviews / Bewertungen ---

    def get_reviews_for_movie(self, movie_id: int) -> List[Review]:
        try:
            return Review.query.filter_by(movie_id=movie_id) \
                .order_by(Review.created_at.desc(), Review.id.desc()).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching reviews for movie {movie_id}: {e}.")
            return []

    def get_reviews_by_user(self, user_id: int) -> List[Review]:
        try:
            return Review.query.filter_by(user_id=user_id) \
                .order_by(Review.created_at.desc(), Review.id.desc()).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching reviews of user {user_id}: {e}.")
            return []

    def get_user_review(self, user_id: int, movie_id: int) -> Optional[Review]:
        try:
            return Review.query.filter_by(user_id=user_id, movie_id=movie_id).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching review of user {user_id} for movie {movie_id}: {e}.")
            return None

    def add_or_update_review(self, user_id: int, movie_id: int, rating: int, content: Optional[str]) -> Optional[Review]:
        """
        Erstellt oder aktualisiert die Bewertung eines Benutzers für einen Film.
        Creates or updates a user's review of a movie.

        Returns:
            Review | None: None bei ungültiger Bewertung oder DB-Fehler.
                           None on an invalid rating or a database error.
        """
        if not isinstance(rating, int) or not (1 <= rating <= 5):
            current_app.logger.warning(f"Review rejected: rating {rating!r} is outside 1-5 (user {user_id}, movie {movie_id}).")
            return None
        content = (content or '').strip() or None
        try:
            review = Review.query.filter_by(user_id=user_id, movie_id=movie_id).first()
            if review:
                review.rating = rating
                review.content = content
            else:
                review = Review(user_id=user_id, movie_id=movie_id, rating=rating, content=content)
                db.session.add(review)
            db.session.commit()
            current_app.logger.info(f"Review of user {user_id} for movie {movie_id} saved (rating {rating}).")
            return review
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error saving review of user {user_id} for movie {movie_id}: {e}.")
            return None

    # --- Watchlist / Merkliste ---

    def is_in_watchlist(self, user_id: int, movie_id: int) -> bool:
        return WatchlistItem.query.filter_by(user_id=user_id, movie_id=movie_id).first() is not None

    def add_to_watchlist(self, user_id: int, movie_id: int) -> bool:
        try:
            if self.is_in_watchlist(user_id, movie_id):
                current_app.logger.info(f"Movie {movie_id} is already in watchlist of user {user_id}. No action needed.")
                return True
            db.session.add(WatchlistItem(user_id=user_id, movie_id=movie_id))
            db.session.commit()
            current_app.logger.info(f"Movie {movie_id} added to watchlist of user {user_id}.")
            return True
        except IntegrityError:
            # Paralleler Insert derselben Zeile / concurrent insert of the same row
            db.session.rollback()
            return self.is_in_watchlist(user_id, movie_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error adding movie {movie_id} to watchlist of user {user_id}: {e}.")
            return False

    def remove_from_watchlist(self, user_id: int, movie_id: int) -> bool:
        try:
            deleted = WatchlistItem.query.filter_by(user_id=user_id, movie_id=movie_id).delete()
            db.session.commit()
            current_app.logger.info(f"Removed {deleted} watchlist row(s) for user {user_id}, movie {movie_id}.")
            return True
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error removing movie {movie_id} from watchlist of user {user_id}: {e}.")
            return False

    def get_watchlist(self, user_id: int) -> List[WatchlistItem]:
        try:
            return WatchlistItem.query.filter_by(user_id=user_id) \
                .order_by(WatchlistItem.created_at.desc(), WatchlistItem.id.desc()).all()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching watchlist of user {user_id}: {e}.")
            return []

    # --- Blog ---

    def get_published_posts(self, page: int = 1, per_page: int = 10):
        try:
            return BlogPost.query.filter_by(published=True) \
                .order_by(BlogPost.published_at.desc(), BlogPost.id.desc()) \
                .paginate(page=page, per_page=per_page, error_out=False)
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching blog posts page {page}: {e}.")
            return None

    def get_post_by_slug(self, slug: str) -> Optional[BlogPost]:
        try:
            return BlogPost.query.filter_by(slug=slug, published=True).first()
        except SQLAlchemyError as e:
            current_app.logger.error(f"Error fetching blog post '{slug}': {e}.")
            return None

    # --- Search / Suche ---

    def search(self, query: str, limit: int = 10) -> Dict[str, list]:
        """
        Sucht case-insensitiv in beiden Sprachvarianten von Filmen, Schauspielern und Kinos.
        Case-insensitive search over both language variants of movies, actors and theaters.
        """
        pattern = _like_pattern(query.strip())
        movies = Movie.query.filter(or_(Movie.title.ilike(pattern, escape='\\'),
                                        Movie.hebrew_title.ilike(pattern, escape='\\'))) \
            .order_by(Movie.release_date.desc(), Movie.id.desc()).limit(limit).all()
        actors = Actor.query.filter(or_(Actor.name.ilike(pattern, escape='\\'),
                                        Actor.hebrew_name.ilike(pattern, escape='\\'))) \
            .order_by(Actor.name).limit(limit).all()
        theaters = Theater.query.filter(or_(Theater.name.ilike(pattern, escape='\\'),
                                            Theater.hebrew_name.ilike(pattern, escape='\\'),
                                            Theater.location.ilike(pattern, escape='\\'))) \
            .order_by(Theater.name).limit(limit).all()
        return {'movies': movies, 'actors': actors, 'theaters': theaters}

    # --- Tokens ---

    def get_latest_token(self, access_code: str) -> Optional[Token]:
        return Token.query.filter_by(access_code=access_code) \
            .order_by(Token.expired_date.desc()).first()

    def store_token(self, access_code: str, token: str, expiry: datetime) -> Optional[List[Token]]:
        """
        Aktualisiert vorhandene Zeilen des Zugangscodes oder legt eine neue an.
        Updates the existing rows of the access code, or inserts a new one.
        """
        try:
            rows = Token.query.filter_by(access_code=access_code).all()
            if rows:
                current_app.logger.info(f"Updating existing token for access code: {access_code}")
                for row in rows:
                    row.token = token
                    row.expired_date = expiry
            else:
                current_app.logger.info(f"Inserting new token for access code: {access_code}")
                rows = [Token(access_code=access_code, token=token, expired_date=expiry)]
                db.session.add(rows[0])
            db.session.commit()
            return rows
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error storing token for access code {access_code}: {e}.")
            return None

    # --- Logs ---

    def get_logs_since(self, since: datetime) -> List[LogEntry]:
        return LogEntry.query.filter(LogEntry.created_at >= since) \
            .order_by(LogEntry.created_at.asc(), LogEntry.id.asc()).all()

    # --- Movieshows (synced showtimes) ---

    def get_movieshows_by_moviepid(self, moviepid: str) -> List[Movieshow]:
        return Movieshow.query.filter_by(moviepid=moviepid) \
            .order_by(Movieshow.day.asc(), Movieshow.time.asc()).all()

    def movieshow_exists(self, showtime_pid: str) -> bool:
        return Movieshow.query.filter_by(showtime_pid=showtime_pid).first() is not None

    def add_movieshow(self, fields: Dict[str, Any]) -> Optional[Movieshow]:
        try:
            movieshow = Movieshow(**fields)
            db.session.add(movieshow)
            db.session.commit()
            return movieshow
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error inserting movieshow {fields.get('showtime_pid')}: {e}.")
            return None

    # --- Admin: migrations & schema ---

    def execute_sql_statements(self, statements: List[str]) -> None:
        """
        Führt SQL-Anweisungen in einer Transaktion aus.
        Executes SQL statements in one transaction.

        Raises:
            SQLAlchemyError: Nach Rollback. / After rolling back.
        """
        try:
            for statement in statements:
                db.session.execute(text(statement))
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

    def record_applied_migration(self, name: str, user_id: Optional[int], sql_content: str) -> bool:
        try:
            db.session.add(AppliedMigration(name=name, applied_by=user_id, sql_content=sql_content))
            db.session.commit()
            return True
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error tracking migration '{name}': {e}.")
            return False

    def describe_schema(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Liest Tabellen und Spalten aus dem Datenbankkatalog.
        Reads tables and columns from the database catalog.
        """
        inspector = inspect(db.engine)
        schema = {}
        for table_name in sorted(inspector.get_table_names()):
            schema[table_name] = [{
                'name': column['name'],
                'type': str(column['type']),
                'nullable': bool(column.get('nullable', True)),
            } for column in inspector.get_columns(table_name)]
        return schema
