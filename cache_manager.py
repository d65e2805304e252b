"""
cache_manager.py
Einfacher prozessweiter Speicher-Cache mit Ablaufzeit.
Simple process-wide memory cache with expiry.

Einträge werden erst beim Lesen geprüft und gelöscht (kein Hintergrund-Sweep,
keine Größenbegrenzung, keine Sperren).
Entries are checked and removed lazily on read (no background sweep, no size
bound, no locking).
"""

import json
import re
import time
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from flask import current_app, request

DEFAULT_TTL = 3600  # 1 Stunde / 1 hour
CACHE_TIMEOUT = 300  # 5 Minuten für API-Antworten / 5 minutes for API responses


class CacheManager:
    """
    CacheManager
    Schlüssel -> (Wert, Ablaufzeitpunkt). Eine Instanz pro Prozess (siehe `cache_manager`).
    Key -> (value, expiry timestamp). One instance per process (see `cache_manager`).
    """

    _instance: Optional['CacheManager'] = None

    def __init__(self):
        self._store: Dict[str, Tuple[Any, float]] = {}

    @classmethod
    def get_instance(cls) -> 'CacheManager':
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def get(self, key: str) -> Optional[Any]:
        """
        Liefert den Wert, solange er nicht abgelaufen ist; sonst wird der Eintrag gelöscht.
        Returns the value while it has not expired; otherwise the entry is deleted.
        """
        cached = self._store.get(key)
        if cached is not None and cached[1] > time.time():
            return cached[0]
        self._store.pop(key, None)
        return None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Stores a value for `ttl` seconds (default one hour)."""
        ttl = DEFAULT_TTL if ttl is None else ttl
        self._store[key] = (value, time.time() + ttl)

    def invalidate(self, patterns: Iterable[str]) -> int:
        """
        Entfernt alle Schlüssel, die auf eines der Muster passen ('*' = beliebig).
        Removes every key matching one of the patterns ('*' matches anything).

        Returns:
            int: Anzahl entfernter Einträge. / Number of removed entries.
        """
        removed = 0
        for pattern in patterns:
            regex = re.compile('^' + '.*'.join(re.escape(part) for part in pattern.split('*')) + '$')
            for key in [k for k in self._store if regex.match(k)]:
                del self._store[key]
                removed += 1
        return removed

    def clear(self) -> None:
        self._store.clear()

    def with_cache(self, key: str, fetch: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        """
        Liefert den gecachten Wert oder ruft `fetch` auf und speichert das Ergebnis.
        Returns the cached value, or calls `fetch` and stores its result.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        value = fetch()
        self.set(key, value, ttl)
        return value

    def __contains__(self, key: str) -> bool:
        # Nur für Diagnose: prüft den rohen Speicher ohne Ablauf.
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)


cache_manager = CacheManager.get_instance()


def generate_cache_key(base: str, params: Dict[str, Any]) -> str:
    """Builds a stable cache key from a base name and query parameters."""
    return f"{base}:{json.dumps(params, sort_keys=True, default=str)}"


def cache_response(timeout=CACHE_TIMEOUT):
    """
    Decorator für das Caching von API-Antworten.
    Decorator for caching API responses.

    Der Schlüssel besteht aus Funktionsname, Pfad und Query-Parametern.
    The key is made of the function name, path and query parameters.

    Args:
        timeout (int): Cache-Timeout in Sekunden.
                      Cache timeout in seconds.

    Returns:
        function: Decorierte Funktion.
                 Decorated function.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            cache_key = generate_cache_key(
                f"api:{f.__name__}:{request.path}",
                request.args.to_dict(flat=False),
            )
            cached = cache_manager.get(cache_key)
            if cached is not None:
                body, mimetype = cached
                return current_app.response_class(body, status=200, mimetype=mimetype)

            response = current_app.make_response(f(*args, **kwargs))
            # Nur Body und Typ cachen, nie das Response-Objekt (Cookies!)
            # Cache body and type only, never the response object (cookies!)
            if response.status_code == 200:
                cache_manager.set(cache_key, (response.get_data(), response.mimetype), timeout)
            return response
        return decorated_function
    return decorator
