"""
api/routes.py
API-Routen für die SeretWeb-Anwendung.
API routes for the SeretWeb application.
"""

import hmac
import os
import re
from datetime import timedelta
from functools import wraps

from flask import Blueprint, jsonify, request, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from cache_manager import cache_response
from datamanager.sql_data_manager import SQLDataManager
from services.movieshows_sync import MovieshowsSyncError, generate_trace_id, summarize_sync_logs, sync_movieshows
from utils import format_tmdb_image_url, parse_iso_datetime, to_iso, utcnow

# Blueprint für API-Routen erstellen
# Create blueprint for API routes
api = Blueprint('api', __name__)

# DataManager-Instanz
data_manager = SQLDataManager()

MIGRATION_NAME_PATTERN = re.compile(r'[A-Za-z0-9_\-]+')
DEFAULT_STATUS_WINDOW_HOURS = 24
MAX_SEARCH_LIMIT = 50


def error_response(message, status_code, **extra):
    """
    Einheitliche JSON-Fehlerantwort.
    Uniform JSON error response.
    """
    body = {'success': False, 'error': message}
    body.update(extra)
    return jsonify(body), status_code


def handle_api_error(f):
    """
    Decorator für die Fehlerbehandlung von API-Routen.
    Decorator for error handling of API routes.

    Args:
        f (function): Zu dekorierende Funktion.
                     Function to decorate.

    Returns:
        function: Decorierte Funktion.
                 Decorated function.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except Exception as e:
            # Log API error for server-side diagnostics.
            # Logge API-Fehler für serverseitige Diagnose.
            current_app.logger.error(f"API Error in endpoint '{f.__name__}': {str(e)}", exc_info=True)
            return error_response('Server error', 500)
    return decorated_function


def _parse_movie_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# --- Watchlist ---

@api.route('/watchlist', methods=['GET'])
@handle_api_error
def get_watchlist_status():
    """
    GET /api/watchlist?movieId=
    Prüft, ob ein Film auf der Merkliste des angemeldeten Benutzers steht.
    Checks whether a movie is on the signed-in user's watchlist.

    Ohne Anmeldung oder movieId immer {'inWatchlist': false} mit 200, nie ein Fehler.
    Without a session or movieId always {'inWatchlist': false} with 200, never an error.
    """
    user = g.get('user')
    movie_id = _parse_movie_id(request.args.get('movieId'))
    if not user or movie_id is None:
        return jsonify({'inWatchlist': False}), 200
    return jsonify({'inWatchlist': data_manager.is_in_watchlist(user.id, movie_id)}), 200


@api.route('/watchlist', methods=['POST'])
@handle_api_error
def add_to_watchlist():
    """
    POST /api/watchlist
    Fügt einen Film zur Merkliste hinzu. Erwartet JSON mit 'movieId'.
    Adds a movie to the watchlist. Expects JSON with 'movieId'.
    """
    user = g.get('user')
    if not user:
        return error_response('Unauthorized', 401)

    data = request.get_json(silent=True) or {}
    movie_id = _parse_movie_id(data.get('movieId'))
    if movie_id is None:
        return error_response('Missing movieId', 400)

    if data_manager.get_movie_by_id(movie_id) is None:
        return error_response('Movie not found', 404)

    if not data_manager.add_to_watchlist(user.id, movie_id):
        return error_response('Failed to add movie to watchlist', 500)
    return jsonify({'success': True}), 200


@api.route('/watchlist', methods=['DELETE'])
@handle_api_error
def remove_from_watchlist():
    """
    DELETE /api/watchlist
    Entfernt einen Film von der Merkliste. Erwartet JSON mit 'movieId'.
    Removes a movie from the watchlist. Expects JSON with 'movieId'.
    """
    user = g.get('user')
    if not user:
        return error_response('Unauthorized', 401)

    data = request.get_json(silent=True) or {}
    movie_id = _parse_movie_id(data.get('movieId'))
    if movie_id is None:
        return error_response('Missing movieId', 400)

    if not data_manager.remove_from_watchlist(user.id, movie_id):
        return error_response('Failed to remove movie from watchlist', 500)
    return jsonify({'success': True}), 200


# --- Tokens ---

@api.route('/tokens', methods=['GET'])
@handle_api_error
def get_token():
    """
    GET /api/tokens?accessCode=
    Liefert das zuletzt ablaufende Token eines Zugangscodes und ob es noch gültig ist.
    Returns the latest-expiring token of an access code and whether it is still valid.
    """
    access_code = request.args.get('accessCode')
    if not access_code:
        return error_response('Access code is required', 400)

    stored = data_manager.get_latest_token(access_code)
    if stored is None:
        return jsonify({'valid': False, 'reason': 'not_found'}), 200

    expires = to_iso(stored.expired_date)
    if stored.expired_date > utcnow():
        return jsonify({'token': stored.token, 'valid': True, 'expires': expires}), 200
    return jsonify({'valid': False, 'reason': 'expired', 'expires': expires}), 200


@api.route('/tokens', methods=['POST'])
@handle_api_error
def store_token():
    """
    POST /api/tokens
    Speichert ein Token. Erwartet JSON mit 'accessCode', 'token' und 'expiryDate' (ISO-8601).
    Stores a token. Expects JSON with 'accessCode', 'token' and 'expiryDate' (ISO-8601).
    """
    data = request.get_json(silent=True) or {}
    access_code = data.get('accessCode')
    token = data.get('token')
    expiry_raw = data.get('expiryDate')
    if not access_code or not token or not expiry_raw:
        return error_response('Missing required fields', 400)

    try:
        expiry = parse_iso_datetime(expiry_raw)
    except ValueError:
        return error_response('Invalid expiryDate format', 400)

    rows = data_manager.store_token(access_code, token, expiry)
    if rows is None:
        return error_response('Failed to store token', 500)
    return jsonify({'success': True, 'data': [row.to_dict() for row in rows]}), 200


# --- Movieshows ---

@api.route('/movieshows', methods=['GET'])
@handle_api_error
def get_movieshows():
    """
    GET /api/movieshows?moviepid=
    Liefert die synchronisierten Vorstellungen eines Films, nach Tag und Uhrzeit sortiert.
    Returns the synced screenings of a movie, ordered by day and time.
    """
    moviepid = request.args.get('moviepid')
    if not moviepid:
        return error_response('Missing moviepid parameter', 400)

    movieshows = data_manager.get_movieshows_by_moviepid(moviepid)
    return jsonify({
        'success': True,
        'data': [show.to_dict() for show in movieshows],
        'count': len(movieshows),
    }), 200


@api.route('/movieshows/sync', methods=['POST'])
@handle_api_error
def run_movieshows_sync():
    """
    POST /api/movieshows/sync
    Startet den Showtimes-Sync. Wenn SYNC_SECRET gesetzt ist, muss der Header X-Sync-Key passen.
    Runs the showtimes sync. When SYNC_SECRET is set, the X-Sync-Key header must match.
    """
    secret = current_app.config.get('SYNC_SECRET')
    if secret and not hmac.compare_digest(request.headers.get('X-Sync-Key', ''), secret):
        return error_response('Unauthorized', 401)

    trace_id = generate_trace_id()
    current_app.logger.info(f"Starting movieshows sync, traceId={trace_id}")
    try:
        results = sync_movieshows(trace_id=trace_id, data_manager=data_manager)
    except MovieshowsSyncError as e:
        return error_response('Sync failed', 502, details=str(e), traceId=trace_id)

    return jsonify({
        'success': True,
        'message': 'Sync completed',
        'traceId': trace_id,
        'results': results,
        'timestamp': to_iso(utcnow()),
    }), 200


@api.route('/movieshows/status', methods=['GET'])
@handle_api_error
def get_movieshows_sync_status():
    """
    GET /api/movieshows/status?traceId=&hours=
    Fasst die Einträge der Tabelle `logs` zu einem Sync-Lauf zusammen.
    Summarises the `logs` table entries of one sync run.
    """
    trace_id = request.args.get('traceId')
    if not trace_id:
        return error_response('Missing traceId parameter', 400)

    try:
        hours = int(request.args.get('hours', DEFAULT_STATUS_WINDOW_HOURS))
    except ValueError:
        return error_response('Invalid hours parameter', 400)
    if hours <= 0:
        return error_response('Invalid hours parameter', 400)
    try:
        since = utcnow() - timedelta(hours=hours)
    except OverflowError:
        return error_response('Invalid hours parameter', 400)

    entries = data_manager.get_logs_since(since)
    summary = summarize_sync_logs(entries, trace_id)
    if summary is None:
        return error_response('No log entries found for traceId', 404, traceId=trace_id, status='NOT_FOUND')
    return jsonify(dict(summary, success=True)), 200


# --- Admin ---

def split_sql_statements(sql):
    """
    Entfernt Zeilenkommentare und teilt ein SQL-Skript an Semikolons.
    Strips line comments and splits an SQL script on semicolons.
    """
    lines = [line for line in sql.splitlines() if not line.strip().startswith('--')]
    return [statement.strip() for statement in '\n'.join(lines).split(';') if statement.strip()]


@api.route('/admin/migrations/apply', methods=['POST'])
@handle_api_error
def apply_migration():
    """
    POST /api/admin/migrations/apply
    Führt eine benannte SQL-Datei aus dem Migrationsverzeichnis aus (nur für Admins).
    Executes a named SQL file from the migrations directory (admins only).
    Erwartet JSON mit 'migrationName' (ohne .sql).
    Expects JSON with 'migrationName' (without .sql).
    """
    user = g.get('user')
    if not user:
        return error_response('Unauthorized', 401)
    if not data_manager.is_admin(user.id):
        return error_response('Unauthorized - Admin access required', 403)

    data = request.get_json(silent=True) or {}
    migration_name = data.get('migrationName')
    if not migration_name:
        return error_response('Missing migration name', 400)
    if not isinstance(migration_name, str) or not MIGRATION_NAME_PATTERN.fullmatch(migration_name):
        return error_response('Invalid migration name', 400)

    migration_path = os.path.join(current_app.config['MIGRATIONS_DIR'], f"{migration_name}.sql")
    if not os.path.isfile(migration_path):
        return error_response('Migration file not found', 404)

    with open(migration_path, encoding='utf-8') as migration_file:
        migration_sql = migration_file.read()

    statements = split_sql_statements(migration_sql)
    if not statements:
        return error_response('Migration file is empty', 400)

    try:
        data_manager.execute_sql_statements(statements)
    except SQLAlchemyError as e:
        current_app.logger.error(f"Migration error in '{migration_name}': {e}")
        return error_response(f"Error applying migration: {e}", 500)

    # Ein Fehler beim Protokollieren lässt die Anfrage nicht scheitern
    # A failure while recording does not fail the request
    data_manager.record_applied_migration(migration_name, user.id, migration_sql)
    current_app.logger.info(f"Migration '{migration_name}' applied by user {user.id}.")
    return jsonify({'success': True, 'message': f'Migration "{migration_name}" applied successfully'}), 200


@api.route('/debug/schema', methods=['GET'])
@handle_api_error
def debug_schema():
    """
    GET /api/debug/schema
    Liefert Tabellen und Spalten der Datenbank. Nur mit ENABLE_DEBUG_ROUTES oder als Admin.
    Returns the database tables and columns. Only with ENABLE_DEBUG_ROUTES or as an admin.
    """
    user = g.get('user')
    allowed = current_app.config.get('ENABLE_DEBUG_ROUTES') or (user and data_manager.is_admin(user.id))
    if not allowed:
        return error_response('Forbidden', 403)
    return jsonify({'schema': data_manager.describe_schema()}), 200


# --- Metrics ---

@api.route('/metrics', methods=['POST'])
@handle_api_error
def ingest_metric():
    """
    POST /api/metrics
    Nimmt Performance-Messwerte des Browsers entgegen und protokolliert sie.
    Accepts browser performance beacons and logs them.
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return error_response('Invalid metric payload', 400)

    metric = {
        'name': body.get('name'),
        'value': body.get('value'),
        'id': body.get('id'),
        'page': body.get('page'),
        'timestamp': to_iso(utcnow()),
    }
    current_app.logger.info(f"Performance metric: {metric}")
    return jsonify({'success': True}), 200


# --- Search ---

@api.route('/search', methods=['GET'])
@handle_api_error
@cache_response()
def search():
    """
    GET /api/search?q=&limit=
    Sucht Filme, Schauspieler und Kinos (beide Sprachen).
    Searches movies, actors and theaters (both languages).
    """
    query = (request.args.get('q') or '').strip()
    if not query:
        return error_response('Missing query parameter: q', 400)

    try:
        limit = min(max(int(request.args.get('limit', 10)), 1), MAX_SEARCH_LIMIT)
    except ValueError:
        return error_response('Invalid limit parameter', 400)

    results = data_manager.search(query, limit=limit)
    return jsonify({
        'success': True,
        'query': query,
        'movies': [{
            'id': movie.id,
            'title': movie.title,
            'hebrew_title': movie.hebrew_title,
            'slug': movie.slug,
            'poster_url': format_tmdb_image_url(movie.poster_url),
            'release_date': to_iso(movie.release_date),
        } for movie in results['movies']],
        'actors': [{
            'id': actor.id,
            'name': actor.name,
            'hebrew_name': actor.hebrew_name,
            'slug': actor.slug,
            'photo_url': format_tmdb_image_url(actor.photo_url),
        } for actor in results['actors']],
        'theaters': [{
            'id': theater.id,
            'name': theater.name,
            'hebrew_name': theater.hebrew_name,
            'slug': theater.slug,
            'location': theater.location,
        } for theater in results['theaters']],
    }), 200
