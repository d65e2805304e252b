"""
app.py
Hauptmodul für die SeretWeb-Anwendung.
Main module for the SeretWeb application.
"""

import os
from datetime import timedelta

import click
from flask import Flask, render_template, request, redirect, current_app, flash, jsonify, session, url_for, g, abort
from dotenv import load_dotenv
from flask_wtf.csrf import CSRFProtect

# Environment variables
# Umgebungsvariablen laden
load_dotenv()

import middleware
from models import db
from datamanager.sql_data_manager import SQLDataManager
from api.routes import api as api_blueprint
from i18n import DEFAULT_LOCALE, LOCALES, LOCALE_NAMES, text_direction, translate
from services.movieshows_sync import MovieshowsSyncError, sync_movieshows
from services.token_service import TokenServiceError, token_service
from utils import (as_bool, calculate_reading_time, format_date, format_tmdb_image_url, get_localized_field,
                   markdown_to_plain_text, truncate)

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
LOCALE_PREFIX = '/<any(%s):locale>' % ','.join(LOCALES)

# Flask-Anwendung initialisieren
# Initialize Flask application
app = Flask(__name__)
app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL', 'sqlite:///seretweb.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'dev_secret')
app.config['SITE_URL'] = os.getenv('SITE_URL', 'http://localhost:5000')
app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=int(os.getenv('SESSION_LIFETIME_DAYS', '7')))
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
app.config['ENABLE_DEBUG_ROUTES'] = as_bool(os.getenv('ENABLE_DEBUG_ROUTES'))
app.config['MIGRATIONS_DIR'] = os.getenv('MIGRATIONS_DIR', os.path.join(BASE_DIR, 'migrations'))
app.config['SHOWTIMES_API_URL'] = os.getenv('SHOWTIMES_API_URL')
app.config['SHOWTIMES_API_KEY'] = os.getenv('SHOWTIMES_API_KEY')
app.config['SYNC_SECRET'] = os.getenv('SYNC_SECRET')
app.config['TICKETING_API_URL'] = os.getenv('TICKETING_API_URL')
app.config['TICKETING_API_USERNAME'] = os.getenv('TICKETING_API_USERNAME')
app.config['TICKETING_API_PASSWORD'] = os.getenv('TICKETING_API_PASSWORD')
app.config['FETCH_RETRIES'] = 3
app.config['FETCH_RETRY_DELAY'] = 1.0

app.logger.setLevel(os.getenv('LOG_LEVEL', 'INFO').upper())

csrf = CSRFProtect(app) # Initialize CSRFProtect / CSRFProtect initialisieren
# JSON-API ohne Formular-Token / JSON API without form tokens
csrf.exempt(api_blueprint)

# Datenbank an die App binden
# Bind database to the app
db.init_app(app)

# Sprach-Routing und Cache-Header
# Locale routing and cache headers
middleware.init_app(app)

# Blueprints registrieren
# Register blueprints
app.register_blueprint(api_blueprint, url_prefix='/api')

# DataManager instanziieren
# Instantiate DataManager
data_manager = SQLDataManager()


@app.before_request
def load_logged_in_user():
    """
    Loads the logged-in user from the session before each request.
    Sets `g.user` to the user object or None if not logged in.

    Lädt den eingeloggten Benutzer aus der Session vor jeder Anfrage.
    Setzt `g.user` auf das Benutzerobjekt oder None, falls nicht eingeloggt.
    """
    user_id = session.get('user_id')
    if user_id is None:
        g.user = None
    else:
        g.user = data_manager.get_user_by_id(user_id)


@app.url_value_preprocessor
def pull_locale(endpoint, values):
    if values and 'locale' in values:
        g.locale = values['locale']


@app.url_defaults
def add_locale(endpoint, values):
    """
    Ergänzt die aktuelle Sprache in url_for(), wenn die Route sie erwartet.
    Fills in the current locale for url_for() when the route expects one.
    """
    if 'locale' in values or not app.url_map.is_endpoint_expecting(endpoint, 'locale'):
        return
    values['locale'] = g.get('locale', DEFAULT_LOCALE)


@app.context_processor
def inject_user_status():
    """
    Injects user login status and current user object into the template context.
    Stellt den Login-Status des Benutzers und das aktuelle Benutzerobjekt dem Template-Kontext zur Verfügung.
    """
    user = g.get('user')
    return dict(g_is_user_logged_in=user is not None, g_current_user=user)


@app.context_processor
def inject_locale():
    """
    Stellt Sprache, Schreibrichtung, Übersetzungsfunktion und den Link zur anderen Sprache bereit.
    Provides locale, text direction, the translation function and the link to the other locale.
    """
    locale = g.get('locale', DEFAULT_LOCALE)
    alternate = next(code for code in LOCALES if code != locale)
    path = request.path
    if path.startswith(f"/{locale}"):
        alternate_url = f"/{alternate}{path[len(locale) + 1:]}"
    else:
        alternate_url = f"/{alternate}"
    return dict(
        locale=locale,
        direction=text_direction(locale),
        t=lambda key: translate(key, locale),
        locale_names=LOCALE_NAMES,
        alternate_locale=alternate,
        alternate_locale_url=alternate_url,
    )


# --- Jinja-Filter / Jinja filters ---

@app.template_filter('localized')
def localized_filter(obj, field):
    """
    {{ movie|localized('title') }} -> hebrew_title auf Hebräisch, sonst title.
    {{ movie|localized('title') }} -> hebrew_title in Hebrew, otherwise title.
    """
    return get_localized_field(getattr(obj, field, None), getattr(obj, f"hebrew_{field}", None),
                               g.get('locale', DEFAULT_LOCALE))


app.add_template_filter(format_tmdb_image_url, 'tmdb_image')
app.add_template_filter(format_date, 'format_date')
app.add_template_filter(truncate, 'truncate_chars')
app.add_template_filter(calculate_reading_time, 'reading_time')
app.add_template_filter(markdown_to_plain_text, 'plain_text')


# --- Pages / Seiten ---

@app.route(LOCALE_PREFIX)
@app.route(LOCALE_PREFIX + '/')
def home(locale):
    """
    Home route: displays the latest, top-rated and upcoming movies.
    Zeigt die Startseite mit neuesten, bestbewerteten und kommenden Filmen.
    """
    return render_template('home.html',
                           latest_movies=data_manager.get_latest_movies(),
                           top_rated_movies=data_manager.get_top_rated_movies(),
                           coming_soon_movies=data_manager.get_coming_soon_movies())


@app.route(LOCALE_PREFIX + '/movies')
def movies(locale):
    """
    Paginated list of all movies (?page=).
    Seitenweise Liste aller Filme (?page=).
    """
    page = request.args.get('page', 1, type=int)
    pagination = data_manager.get_movies(page=max(page, 1))
    return render_template('movie_list.html', title_key='movies.all',
                           movies=pagination.items if pagination else [], pagination=pagination)


MOVIE_COLLECTIONS = {
    'latest': ('movies.latest', lambda: data_manager.get_latest_movies(limit=48)),
    'top-rated': ('movies.top_rated', lambda: data_manager.get_top_rated_movies(limit=48)),
    'coming-soon': ('movies.coming_soon', lambda: data_manager.get_coming_soon_movies(limit=48)),
    'now-in-theaters': ('movies.now_in_theaters', data_manager.get_now_in_theaters_movies),
}


@app.route(LOCALE_PREFIX + '/movies/latest', defaults={'collection': 'latest'})
@app.route(LOCALE_PREFIX + '/movies/top-rated', defaults={'collection': 'top-rated'})
@app.route(LOCALE_PREFIX + '/movies/coming-soon', defaults={'collection': 'coming-soon'})
@app.route(LOCALE_PREFIX + '/movies/now-in-theaters', defaults={'collection': 'now-in-theaters'})
def movie_collection(locale, collection):
    title_key, loader = MOVIE_COLLECTIONS[collection]
    return render_template('movie_list.html', title_key=title_key, movies=loader(), pagination=None)


@app.route(LOCALE_PREFIX + '/movies/<slug>')
def movie_detail(locale, slug):
    """
    Renders the detail page for a movie: cast, genres, reviews and watchlist state.
    Zeigt die Detailseite eines Films: Besetzung, Genres, Bewertungen und Merklisten-Status.
    """
    movie = data_manager.get_movie_by_slug(slug)
    if movie is None:
        abort(404)

    user = g.user
    in_watchlist = bool(user) and data_manager.is_in_watchlist(user.id, movie.id)
    user_review = data_manager.get_user_review(user.id, movie.id) if user else None
    return render_template('movie_detail.html',
                           movie=movie,
                           cast=data_manager.get_movie_cast(movie.id),
                           genres=data_manager.get_movie_genres(movie.id),
                           reviews=data_manager.get_reviews_for_movie(movie.id),
                           in_watchlist=in_watchlist,
                           user_review=user_review)


@app.route(LOCALE_PREFIX + '/movies/<slug>/reviews', methods=['POST'])
def add_movie_review(locale, slug):
    """
    Creates or updates the signed-in user's review (rating 1-5, optional text).
    Erstellt oder aktualisiert die Bewertung des angemeldeten Benutzers (1-5, optionaler Text).
    """
    movie = data_manager.get_movie_by_slug(slug)
    if movie is None:
        abort(404)

    if not g.user:
        flash(translate('reviews.login_required', locale), 'warning')
        return redirect(url_for('auth'))

    rating = request.form.get('rating', type=int)
    review = data_manager.add_or_update_review(g.user.id, movie.id, rating, request.form.get('content'))
    if review is None:
        flash(translate('reviews.invalid', locale), 'danger')
    else:
        flash(translate('reviews.saved', locale), 'success')
    return redirect(url_for('movie_detail', slug=slug))


@app.route(LOCALE_PREFIX + '/actors')
def actors(locale):
    page = request.args.get('page', 1, type=int)
    pagination = data_manager.get_actors(page=max(page, 1))
    return render_template('actors.html', actors=pagination.items if pagination else [], pagination=pagination)


@app.route(LOCALE_PREFIX + '/actors/<slug>')
def actor_detail(locale, slug):
    """
    Actor page with filmography, newest first.
    Schauspielerseite mit Filmografie, neueste zuerst.
    """
    actor = data_manager.get_actor_by_slug(slug)
    if actor is None:
        abort(404)
    return render_template('actor_detail.html', actor=actor, roles=data_manager.get_actor_movies(actor.id))


@app.route(LOCALE_PREFIX + '/genres/<slug>')
def genre_detail(locale, slug):
    genre = data_manager.get_genre_by_slug(slug)
    if genre is None:
        abort(404)
    return render_template('genre.html', genre=genre, movies=data_manager.get_genre_movies(genre.id))


@app.route(LOCALE_PREFIX + '/theaters')
def theaters(locale):
    return render_template('theaters.html', theaters=data_manager.get_all_theaters())


@app.route(LOCALE_PREFIX + '/theaters/<slug>')
def theater_detail(locale, slug):
    """
    Theater page: active showings with their showtimes and recently screened movies.
    Kinoseite: aktive Vorstellungen mit Spielzeiten und zuletzt gezeigte Filme.
    """
    theater = data_manager.get_theater_by_slug(slug)
    if theater is None:
        abort(404)
    return render_template('theater_detail.html', theater=theater,
                           active_showings=data_manager.get_active_showings(theater.id),
                           past_showings=data_manager.get_past_showings(theater.id))


def _render_profile(profile_user, is_own):
    return render_template('profile.html',
                           profile_user=profile_user,
                           is_own=is_own,
                           watchlist=data_manager.get_watchlist(profile_user.id),
                           reviews=data_manager.get_reviews_by_user(profile_user.id))


@app.route(LOCALE_PREFIX + '/profile')
def profile(locale):
    """
    The signed-in user's own profile. Without a session the middleware has already redirected.
    Eigenes Profil des angemeldeten Benutzers. Ohne Sitzung hat die Middleware bereits umgeleitet.
    """
    if not g.user:
        # Sitzung verweist auf einen gelöschten Benutzer / session points at a deleted user
        session.pop('user_id', None)
        return redirect(url_for('auth'))
    return _render_profile(g.user, is_own=True)


@app.route(LOCALE_PREFIX + '/profile/<username>')
def public_profile(locale, username):
    profile_user = data_manager.get_user_by_username(username)
    if profile_user is None:
        abort(404)
    return _render_profile(profile_user, is_own=bool(g.user) and g.user.id == profile_user.id)


@app.route(LOCALE_PREFIX + '/auth', methods=['GET', 'POST'])
def auth(locale):
    """
    Auth route: shows the sign-in/registration form and handles both submissions.
    The form field 'action' is either 'login' or 'register'.

    Auth-Route: Zeigt das Anmelde-/Registrierungsformular und verarbeitet beide Varianten.
    Das Formularfeld 'action' ist entweder 'login' oder 'register'.
    """
    if request.method == 'GET':
        if g.user:
            return redirect(url_for('profile'))
        return render_template('auth.html')

    action = request.form.get('action', 'login')
    password = request.form.get('password', '')

    if action == 'register':
        email = request.form.get('email', '').strip()
        username = request.form.get('username', '').strip()
        if not email or not username or not password:
            current_app.logger.warning("Registration attempt with missing fields.")
            flash(translate('auth.missing', locale), 'danger')
            return render_template('auth.html', active_tab='register'), 400

        new_user = data_manager.add_user(email, username, password)
        if not new_user:
            current_app.logger.warning(f"Registration attempt failed for username '{username}'. User might already exist.")
            flash(translate('auth.exists', locale), 'danger')
            return render_template('auth.html', active_tab='register'), 409

        session['user_id'] = new_user.id
        session.permanent = True
        current_app.logger.info(f"User '{new_user.username}' (ID: {new_user.id}) registered and logged in successfully.")
        flash(translate('auth.welcome', locale), 'success')
        return redirect(url_for('profile'))

    identifier = request.form.get('identifier', '').strip()
    user = data_manager.authenticate(identifier, password) if identifier and password else None
    if not user:
        current_app.logger.warning(f"Failed login attempt for '{identifier}'.")
        flash(translate('auth.invalid', locale), 'danger')
        return render_template('auth.html', active_tab='login'), 401

    session['user_id'] = user.id
    session.permanent = True
    current_app.logger.info(f"User '{user.username}' (ID: {user.id}) logged in successfully.")
    flash(translate('auth.welcome', locale), 'success')
    return redirect(url_for('profile'))


@app.route(LOCALE_PREFIX + '/logout')
def logout(locale):
    """
    Logout route: logs the current user out by clearing the session.
    Logout-Route: Meldet den aktuellen Benutzer ab, indem die Session geleert wird.
    """
    session.pop('user_id', None)
    g.user = None # Reset g.user for the current request as well. / g.user auch für die aktuelle Anfrage zurücksetzen.
    flash(translate('auth.logged_out', locale), 'success')
    return redirect(url_for('home'))


@app.route(LOCALE_PREFIX + '/blog')
def blog(locale):
    page = request.args.get('page', 1, type=int)
    pagination = data_manager.get_published_posts(page=max(page, 1))
    return render_template('blog.html', posts=pagination.items if pagination else [], pagination=pagination)


@app.route(LOCALE_PREFIX + '/blog/<slug>')
def blog_post(locale, slug):
    post = data_manager.get_post_by_slug(slug)
    if post is None:
        abort(404)
    content = get_localized_field(post.content, post.hebrew_content, locale) or ''
    return render_template('blog_post.html', post=post, content=content,
                           reading_time=calculate_reading_time(markdown_to_plain_text(content)))


@app.route(LOCALE_PREFIX + '/search')
def search(locale):
    """
    Search page: movies, actors and theaters matching ?q= in either language.
    Suchseite: Filme, Schauspieler und Kinos, die ?q= in einer der Sprachen enthalten.
    """
    query = request.args.get('q', '').strip()
    results = data_manager.search(query) if query else None
    return render_template('search.html', query=query, results=results)


@app.route(LOCALE_PREFIX + '/about')
def about(locale):
    """
    About page: displays information about the site.
    Zeigt Informationen über die Seite.
    """
    return render_template('about.html')


# --- Error pages / Fehlerseiten ---

def _error_locale():
    prefix = request.path.strip('/').split('/', 1)[0]
    return prefix if prefix in LOCALES else DEFAULT_LOCALE


@app.errorhandler(404)
def page_not_found(e):
    """
    404 error page: JSON for API paths, otherwise the localized 404.html.
    404-Fehlerseite: JSON für API-Pfade, sonst die lokalisierte 404.html.
    """
    if request.path.startswith('/api/'):
        return jsonify({'success': False, 'error': 'Not found'}), 404
    g.locale = _error_locale()
    return render_template('404.html'), 404


@app.errorhandler(500)
def internal_error(e):
    """
    500 error page: render 500.html template.
    Rendern der 500-Seite.
    """
    db.session.rollback()
    if request.path.startswith('/api/'):
        return jsonify({'success': False, 'error': 'Server error'}), 500
    g.locale = _error_locale()
    return render_template('500.html'), 500


# --- CLI ---

@app.cli.command('init-db')
def init_db_command():
    """Creates all database tables. / Legt alle Datenbanktabellen an."""
    db.create_all()
    click.echo('Database tables created.')


@app.cli.command('sync-movieshows')
def sync_movieshows_command():
    """Runs the showtimes sync once. / Führt den Showtimes-Sync einmal aus."""
    try:
        results = sync_movieshows(data_manager=data_manager)
    except MovieshowsSyncError as e:
        raise click.ClickException(f"Sync failed: {e}")
    click.echo(f"Sync {results['traceId']}: {results['success']} inserted, "
               f"{results['existing']} existing, {results['failed']} failed.")


@app.cli.command('refresh-token')
@click.argument('access_code')
def refresh_token_command(access_code):
    """Fetches and stores a new ticketing token. / Holt und speichert ein neues Ticketing-Token."""
    try:
        token_service.get_and_store_token(access_code)
    except TokenServiceError as e:
        raise click.ClickException(str(e))
    click.echo(f"Stored a new token for access code {access_code}.")


if __name__ == '__main__':
    with app.app_context():
        db.create_all()
    app.run(debug=as_bool(os.getenv('FLASK_DEBUG')))
