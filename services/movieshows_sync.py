"""
movieshows_sync.py
Synchronisiert Vorstellungen aus dem externen Showtimes-Feed in die Tabelle `movieshows`
und protokolliert den Fortschritt mit einer Trace-ID in der Tabelle `logs`.

Synchronises screenings from the external showtimes feed into the `movieshows` table
and records progress, tagged with a trace ID, in the `logs` table.
"""

import time
from collections import Counter
from typing import Any, Dict, List, Optional

import requests
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from datamanager.sql_data_manager import SQLDataManager
from db_logger import log_error, log_info, save_operation_log
from models import db, LogEntry
from utils import fetch_with_retry, generate_random_string, parse_iso_datetime, to_iso

SYNC_OPERATION_NAME = 'movieshows_sync'
SYNC_FAILED_MESSAGE = 'Sync failed'
REQUIRED_FIELDS = ('SHOWTIME_PID', 'MOVIE_Name', 'MoviePID')
REQUEST_TIMEOUT = 30  # Sekunden / seconds

STATUS_COMPLETED = 'COMPLETED'
STATUS_FAILED = 'FAILED'
STATUS_IN_PROGRESS = 'IN_PROGRESS'


class MovieshowsSyncError(Exception):
    """Raised when the showtimes feed cannot be fetched or has an unexpected shape."""


def generate_trace_id() -> str:
    return f"sync-{int(time.time() * 1000)}-{generate_random_string(7).lower()}"


def fetch_showtimes() -> List[Dict[str, Any]]:
    """
    Lädt die Vorstellungen vom externen Feed und prüft das Format.
    Loads the screenings from the external feed and checks their shape.

    Raises:
        MovieshowsSyncError: Bei HTTP-Fehlern oder unerwartetem Format.
                             On HTTP errors or an unexpected shape.
    """
    url = current_app.config.get('SHOWTIMES_API_URL')
    if not url:
        raise MovieshowsSyncError("SHOWTIMES_API_URL is not configured.")

    current_app.logger.info(f"Fetching showtimes from external API: {url}")
    try:
        response = requests.get(url, params={'key': current_app.config.get('SHOWTIMES_API_KEY')},
                                timeout=REQUEST_TIMEOUT)
    except requests.exceptions.RequestException as e:
        raise MovieshowsSyncError(f"Failed to connect to showtimes API: {e}") from e

    if not response.ok:
        raise MovieshowsSyncError(f"API responded with status: {response.status_code}, body: {response.text}")

    try:
        payload = response.json()
    except ValueError as e:
        raise MovieshowsSyncError("API returned invalid JSON.") from e

    if not isinstance(payload, dict):
        raise MovieshowsSyncError("API returned invalid response format")

    data = payload.get('data')
    if not isinstance(data, list):
        raise MovieshowsSyncError(f"API data is not an array: {type(data).__name__}")

    if data:
        missing = [field for field in REQUIRED_FIELDS if field not in data[0]]
        if missing:
            raise MovieshowsSyncError(f"API response missing required fields: {', '.join(missing)}")

    current_app.logger.info(f"Successfully fetched {len(data)} showtimes")
    return data


def _to_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def movieshow_fields(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Bildet einen Feed-Eintrag auf die Spalten der Tabelle `movieshows` ab.
    Maps a feed item onto the columns of the `movieshows` table.

    Raises:
        ValueError: Wenn DAY kein gültiges Datum ist. / If DAY is not a valid date.
    """
    day = item.get('DAY')
    return {
        'moviepid': str(item['MoviePID']),
        'showtime_pid': str(item['SHOWTIME_PID']),
        'movie_name': item.get('MOVIE_Name'),
        'movie_english': item.get('MOVIE_English'),
        'banner': item.get('BANNER'),
        'genres': item.get('GENRES'),
        'day': parse_iso_datetime(day) if day else None,
        'time': item.get('TIME'),
        'cinema': item.get('CINEMA'),
        'city': item.get('CITY'),
        'chain': item.get('CHAIN'),
        'available_seats': _to_int(item.get('AvailableSEATS')),
        'deep_link': item.get('DeepLink'),
        'imdbid': item.get('IMDBID'),
    }


def sync_movieshows(trace_id: Optional[str] = None, data_manager: Optional[SQLDataManager] = None) -> Dict[str, Any]:
    """
    Führt einen vollständigen Sync-Lauf aus und liefert die Ergebniszähler.
    Runs one complete sync and returns the result counters.

    Neue showtime_pid-Werte werden eingefügt, vorhandene übersprungen. Fortschritt wird
    ungefähr alle 10 % protokolliert.
    New showtime_pid values are inserted, existing ones skipped. Progress is logged
    roughly every 10 %.

    Raises:
        MovieshowsSyncError: Wenn der Feed nicht geladen werden kann (nach Wiederholungen).
                             If the feed cannot be loaded (after retries).
    """
    data_manager = data_manager or SQLDataManager()
    trace_id = trace_id or generate_trace_id()
    log_info('Background sync started', {'traceId': trace_id})

    start_fetch = time.perf_counter()
    try:
        showtimes = fetch_with_retry(
            fetch_showtimes,
            retries=current_app.config.get('FETCH_RETRIES', 3),
            delay=current_app.config.get('FETCH_RETRY_DELAY', 1.0),
        )
    except Exception as e:
        log_error(SYNC_FAILED_MESSAGE, {'traceId': trace_id, 'error': str(e)})
        raise

    log_info('External API fetch completed', {
        'traceId': trace_id,
        'recordCount': len(showtimes),
        'executionTimeMs': round((time.perf_counter() - start_fetch) * 1000, 2),
    })

    results = {'success': 0, 'existing': 0, 'failed': 0, 'errors': []}
    total = len(showtimes)
    progress_interval = max(total // 10, 1)
    start_process = time.perf_counter()

    try:
        for index, item in enumerate(showtimes):
            if index % progress_interval == 0 or index == total - 1:
                log_info('Sync progress', {
                    'traceId': trace_id,
                    'processed': index + 1,
                    'total': total,
                    'percentComplete': round((index + 1) / total * 100),
                })

            if not isinstance(item, dict):
                results['failed'] += 1
                results['errors'].append(f"Invalid showtime row at index {index}")
                continue

            showtime_pid = str(item.get('SHOWTIME_PID'))
            try:
                if data_manager.movieshow_exists(showtime_pid):
                    results['existing'] += 1
                    continue
                if data_manager.add_movieshow(movieshow_fields(item)) is None:
                    results['failed'] += 1
                    results['errors'].append(f"Error inserting {showtime_pid}")
                    continue
                results['success'] += 1
            except (SQLAlchemyError, KeyError, ValueError, TypeError, AttributeError) as e:
                db.session.rollback()
                current_app.logger.error(f"Showtime processing error for {showtime_pid}: {e}")
                results['failed'] += 1
                results['errors'].append(f"Error processing showtime {showtime_pid}: {e}")
    except Exception as e:
        log_error(SYNC_FAILED_MESSAGE, {'traceId': trace_id, 'error': str(e)})
        raise

    results['executionTimeMs'] = round((time.perf_counter() - start_process) * 1000, 2)
    save_operation_log(SYNC_OPERATION_NAME, dict(results, traceId=trace_id))
    results['traceId'] = trace_id
    return results


def summarize_sync_logs(entries: List[LogEntry], trace_id: str) -> Optional[Dict[str, Any]]:
    """
    Fasst die Log-Einträge eines Sync-Laufs zusammen.
    Summarises the log entries of one sync run.

    Returns:
        dict | None: Zusammenfassung oder None, wenn kein Eintrag zur Trace-ID passt.
                     Summary, or None when no entry matches the trace ID.
    """
    matching = [e for e in entries if isinstance(e.details, dict) and e.details.get('traceId') == trace_id]
    if not matching:
        return None

    completion = next((e for e in reversed(matching)
                       if e.message == f"Operation completed: {SYNC_OPERATION_NAME}"), None)
    failed = any(e.level == 'error' and e.message == SYNC_FAILED_MESSAGE for e in matching)
    if completion is not None:
        status = STATUS_COMPLETED
    elif failed:
        status = STATUS_FAILED
    else:
        status = STATUS_IN_PROGRESS

    progress_entry = next((e for e in reversed(matching) if 'percentComplete' in e.details), None)
    progress = None
    if progress_entry is not None:
        progress = {key: progress_entry.details.get(key) for key in ('processed', 'total', 'percentComplete')}

    results = None
    if completion is not None:
        results = {k: v for k, v in completion.details.items() if k != 'traceId'}

    return {
        'traceId': trace_id,
        'status': status,
        'entries': len(matching),
        'levels': dict(Counter(e.level for e in matching)),
        'startedAt': to_iso(matching[0].created_at),
        'lastUpdatedAt': to_iso(matching[-1].created_at),
        'lastMessage': matching[-1].message,
        'progress': progress,
        'results': results,
    }
