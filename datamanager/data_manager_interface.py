"""
data_manager_interface.py
Definiert das Interface für DataManager-Implementierungen.
Defines the interface for DataManager implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from models import User, Movie, Actor, Theater, TheaterMovie, Review, WatchlistItem, Token, LogEntry


class DataManagerInterface(ABC):
    """
    DataManagerInterface
    Abstraktes Interface für Datenzugriffsoperationen.
    Abstract interface for data access operations.
    """

    @abstractmethod
    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Liefert einen Benutzer anhand seiner ID.
        Returns a user by their ID.
        """
        pass

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]:
        """
        Liefert einen Benutzer anhand seines Namens (case-insensitive).
        Returns a user by their username (case-insensitive).
        """
        pass

    @abstractmethod
    def add_user(self, email: str, username: str, password: str) -> Optional[User]:
        """
        Registriert einen neuen Benutzer.
        Registers a new user.
        """
        pass

    @abstractmethod
    def authenticate(self, identifier: str, password: str) -> Optional[User]:
        """
        Prüft E-Mail/Benutzername und Passwort.
        Checks email/username and password.
        """
        pass

    @abstractmethod
    def is_admin(self, user_id: int) -> bool:
        pass

    @abstractmethod
    def get_movie_by_slug(self, slug: str) -> Optional[Movie]:
        """
        Liefert einen Film anhand seines Slugs.
        Returns a movie by its slug.
        """
        pass

    @abstractmethod
    def get_movie_by_id(self, movie_id: int) -> Optional[Movie]:
        pass

    @abstractmethod
    def get_latest_movies(self, limit: int = 12) -> List[Movie]:
        """
        Liefert die zuletzt erschienenen Filme.
        Returns the most recently released movies.
        """
        pass

    @abstractmethod
    def get_top_rated_movies(self, limit: int = 12) -> List[Movie]:
        pass

    @abstractmethod
    def get_actor_by_slug(self, slug: str) -> Optional[Actor]:
        pass

    @abstractmethod
    def get_theater_by_slug(self, slug: str) -> Optional[Theater]:
        pass

    @abstractmethod
    def get_active_showings(self, theater_id: int) -> List[TheaterMovie]:
        """
        Liefert die aktuell laufenden Vorstellungen eines Kinos.
        Returns the currently running showings of a theater.
        """
        pass

    @abstractmethod
    def get_reviews_for_movie(self, movie_id: int) -> List[Review]:
        """
        Liefert alle Bewertungen eines Films, neueste zuerst.
        Returns all reviews of a movie, newest first.
        """
        pass

    @abstractmethod
    def is_in_watchlist(self, user_id: int, movie_id: int) -> bool:
        pass

    @abstractmethod
    def add_to_watchlist(self, user_id: int, movie_id: int) -> bool:
        """
        Fügt einen Film zur Merkliste hinzu (idempotent).
        Adds a movie to the watchlist (idempotent).
        """
        pass

    @abstractmethod
    def remove_from_watchlist(self, user_id: int, movie_id: int) -> bool:
        pass

    @abstractmethod
    def get_watchlist(self, user_id: int) -> List[WatchlistItem]:
        pass

    @abstractmethod
    def get_latest_token(self, access_code: str) -> Optional[Token]:
        """
        Liefert das Token mit dem spätesten Ablaufdatum für einen Zugangscode.
        Returns the token with the latest expiry for an access code.
        """
        pass

    @abstractmethod
    def store_token(self, access_code: str, token: str, expiry: datetime) -> Optional[List[Token]]:
        """
        Speichert oder aktualisiert das Token eines Zugangscodes.
        Stores or updates the token of an access code.
        """
        pass

    @abstractmethod
    def get_logs_since(self, since: datetime) -> List[LogEntry]:
        pass
