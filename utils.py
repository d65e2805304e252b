"""
utils.py
Hilfsfunktionen für Texte, Datumswerte, Bild-URLs und Wiederholungsversuche.
Helper functions for text, dates, image URLs and retries.
"""

import logging
import math
import random
import re
import string
import time
from datetime import datetime, date, timezone
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

TMDB_IMAGE_BASE_URL = 'https://media.themoviedb.org/t/p/w600_and_h900_bestv2'
RANDOM_STRING_ALPHABET = string.ascii_letters + string.digits


def utcnow() -> datetime:
    """
    Aktuelle Zeit in UTC ohne Zeitzoneninfo (so wird sie in der DB gespeichert).
    Current UTC time without tzinfo (the form stored in the database).
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


# --- String utilities ---

def slugify(text: str) -> str:
    """
    Wandelt einen String in einen URL-freundlichen Slug um.
    Converts a string to a URL-friendly slug.

    Example:
        slugify("Tel Aviv Cinema!") -> "tel-aviv-cinema"
    """
    slug = text.lower().strip()
    slug = re.sub(r'[^\w\s-]', '', slug) # Sonderzeichen entfernen / remove special characters
    slug = re.sub(r'[\s_-]+', '-', slug)
    return re.sub(r'^-+|-+$', '', slug)


def truncate(text: str, length: int, ending: str = '...') -> str:
    """
    Kürzt einen String auf die angegebene Länge (inklusive Endung).
    Truncates a string to the given length (ending included).
    """
    if len(text) > length:
        # Die Endung wird bei sehr kleinem length mitgekürzt / the ending is cut too for a very small length
        return (text[:max(length - len(ending), 0)] + ending)[:max(length, 0)]
    return text


def format_date(value, include_time: bool = False) -> str:
    """
    Formatiert ein Datum (datetime, date oder ISO-String) für die Anzeige.
    Formats a date (datetime, date or ISO string) for display.
    """
    if not value:
        return 'N/A'
    if isinstance(value, str):
        value = parse_iso_datetime(value)
    if include_time and isinstance(value, datetime):
        return value.strftime('%d/%m/%Y %H:%M')
    return value.strftime('%d/%m/%Y')


def markdown_to_plain_text(markdown: str) -> str:
    """Converts markdown to plain text."""
    text = re.sub(r'#{1,6}\s?([^\n]+)', r'\1', markdown) # Überschriften / headers
    text = re.sub(r'\*\*(.+?)\*\*', r'\1', text)
    text = re.sub(r'\*(.+?)\*', r'\1', text)
    text = re.sub(r'\[(.+?)\]\(.+?\)', r'\1', text) # Links
    text = text.replace('\n', ' ')
    return re.sub(r'\s+', ' ', text).strip()


def calculate_reading_time(text: str, words_per_minute: int = 200) -> int:
    """
    Geschätzte Lesezeit in Minuten, mindestens 1.
    Estimated reading time in minutes, at least 1.
    """
    words = len(text.split())
    return max(1, math.ceil(words / words_per_minute))


def generate_random_string(length: int = 8) -> str:
    return ''.join(random.choice(RANDOM_STRING_ALPHABET) for _ in range(length))


# --- Localization helpers ---

def get_localized_field(en_value: Optional[str], he_value: Optional[str], locale: str) -> Optional[str]:
    """
    Liefert das Feld in der gewünschten Sprache, sonst die andere Sprache.
    Returns the field in the requested language, falling back to the other one.

    Example:
        get_localized_field(None, "כלבו", "he") -> "כלבו"
        get_localized_field("Dog", None, "he") -> "Dog"
    """
    if locale == 'he' and he_value:
        return he_value
    return en_value or he_value or None


def format_tmdb_image_url(path: Optional[str]) -> Optional[str]:
    """
    Formatiert einen relativen TMDB-Bildpfad als volle URL.
    Formats a relative TMDB image path as a full URL.
    """
    if not path:
        return None
    if path.startswith('http'): # Bereits eine volle URL / already a full URL
        return path
    return f"{TMDB_IMAGE_BASE_URL}{path}"


# --- Date parsing ---

def parse_iso_datetime(value: str) -> datetime:
    """
    Parst einen ISO-8601-String (auch mit 'Z') zu einem naiven UTC-datetime.
    Parses an ISO-8601 string (including a trailing 'Z') into a naive UTC datetime.

    Raises:
        ValueError: Bei ungültigem Format. / On an invalid format.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid ISO datetime: {value!r}")
    cleaned = value.strip()
    if cleaned.endswith('Z'):
        cleaned = cleaned[:-1] + '+00:00'
    parsed = datetime.fromisoformat(cleaned)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat() + 'Z' if value.tzinfo is None else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


# --- Retry ---

def fetch_with_retry(operation: Callable[[], T], retries: int = 3, delay: float = 1.0) -> T:
    """
    Führt eine Operation aus und wiederholt sie bei Fehlern mit exponentiellem Backoff.
    Runs an operation and retries it on failure with exponential backoff.

    Args:
        operation: Aufzurufende Funktion ohne Argumente. / Zero-argument callable to run.
        retries (int): Maximale Anzahl Versuche. / Maximum number of attempts.
        delay (float): Basiswartezeit in Sekunden, verdoppelt je Versuch.
                       Base wait in seconds, doubled per attempt.

    Returns:
        Das Ergebnis der Operation. / The operation's result.

    Raises:
        Die letzte Ausnahme, wenn alle Versuche fehlschlagen.
        The last exception once every attempt has failed.
    """
    last_error: Optional[BaseException] = None
    for attempt in range(retries):
        try:
            return operation()
        except Exception as e:
            last_error = e
            logger.warning(f"Fetch attempt {attempt + 1} failed. Retrying... ({e})")
            if attempt < retries - 1:
                time.sleep(delay * (2 ** attempt))

    logger.error(f"All {retries} fetch attempts failed: {last_error}")
    if last_error is None:
        raise ValueError("fetch_with_retry needs at least one attempt")
    raise last_error


def as_bool(value: Any) -> bool:
    """Interpretiert Umgebungswerte wie 'true', '1', 'yes' / Interprets env values like 'true', '1', 'yes'."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')
