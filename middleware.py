"""
middleware.py
Request-Hooks für Sprach-Routing, Sitzungsauffrischung und Cache-Control-Header.
Request hooks for locale routing, session refresh and cache-control headers.
"""

import re
from typing import Optional

from flask import Flask, redirect, request, session

from i18n import DEFAULT_LOCALE, ISRAEL_LOCALE, LOCALES

LOCALE_COOKIE = 'LOCALE'
LOCALE_COOKIE_MAX_AGE = 60 * 60 * 24 * 30  # 30 Tage / 30 days
ISRAEL_COUNTRY_CODE = 'IL'

NON_LOCALIZED_ROUTE = re.compile(r'^/(actors|movies|genres|theaters|blog|search)(/.*)?$')
OWN_PROFILE_ROUTE = re.compile(r'^/(%s)/profile/?$' % '|'.join(LOCALES))
LOCALIZED_ROUTE = re.compile(r'^/(%s)(/.*)?$' % '|'.join(LOCALES))

API_CACHE_CONTROL = 'no-store'
STATIC_CACHE_CONTROL = 'public, max-age=31536000, immutable'
PRIVATE_CACHE_CONTROL = 'private, no-cache'
PUBLIC_PAGE_CACHE_CONTROL = 'public, max-age=0, s-maxage=60, stale-while-revalidate=300'


def is_user_from_israel() -> bool:
    """
    Schätzt anhand von Country-Headern und Accept-Language, ob der Besucher aus Israel kommt.
    Guesses from country headers and Accept-Language whether the visitor is in Israel.
    """
    cf_country = request.headers.get('CF-IPCountry')
    vercel_country = request.headers.get('X-Vercel-IP-Country')
    if ISRAEL_COUNTRY_CODE in (cf_country, vercel_country):
        return True
    accept_language = request.headers.get('Accept-Language', '')
    return 'he' in accept_language or 'iw' in accept_language


def detect_locale() -> str:
    stored = request.cookies.get(LOCALE_COOKIE)
    if stored in LOCALES:
        return stored
    return ISRAEL_LOCALE if is_user_from_israel() else DEFAULT_LOCALE


def _locale_from_path(path: str) -> Optional[str]:
    match = LOCALIZED_ROUTE.match(path)
    return match.group(1) if match else None


def route_locale():
    """
    before_request: leitet / und Pfade ohne Sprachpräfix um und schützt die eigene Profilseite.
    before_request: redirects / and unprefixed paths, and guards the own-profile page.
    """
    path = request.path

    if path == '/':
        locale = detect_locale()
        response = redirect(f"/{locale}")
        response.set_cookie(LOCALE_COOKIE, locale, max_age=LOCALE_COOKIE_MAX_AGE, path='/', samesite='Lax')
        return response

    if NON_LOCALIZED_ROUTE.match(path):
        locale = request.cookies.get(LOCALE_COOKIE)
        locale = locale if locale in LOCALES else DEFAULT_LOCALE
        target = f"/{locale}{path}"
        if request.query_string:
            target += '?' + request.query_string.decode('utf-8', 'replace')
        return redirect(target)

    own_profile = OWN_PROFILE_ROUTE.match(path)
    if own_profile and not session.get('user_id'):
        return redirect(f"/{own_profile.group(1)}/auth")

    return None


def refresh_session():
    """
    Verlängert die Sitzung angemeldeter Benutzer bei jeder Anfrage (gleitendes Ablaufdatum).
    Extends a signed-in user's session on every request (sliding expiry).
    """
    if session.get('user_id'):
        session.permanent = True
        session.modified = True


def set_cache_headers(response):
    """
    after_request: setzt Cache-Control nach Pfad. Außer bei /static/ bleibt ein vorhandener Header erhalten.
    after_request: sets Cache-Control by path. Outside /static/ an existing header is kept.
    """
    path = request.path
    if path.startswith('/static/'):
        # send_file setzt bereits "no-cache" / send_file already sets "no-cache"
        response.headers['Cache-Control'] = STATIC_CACHE_CONTROL
        return response

    if 'Cache-Control' in response.headers:
        return response

    if path.startswith('/api/'):
        response.headers['Cache-Control'] = API_CACHE_CONTROL
    elif _locale_from_path(path):
        # Die Session-Cookie wird erst nach den after_request-Hooks gesetzt, daher session.modified
        # The session cookie is written after the after_request hooks, hence session.modified
        if (session.get('user_id') or session.modified or response.headers.get('Set-Cookie')
                or response.status_code >= 400):
            response.headers['Cache-Control'] = PRIVATE_CACHE_CONTROL
        else:
            response.headers['Cache-Control'] = PUBLIC_PAGE_CACHE_CONTROL
    else:
        response.headers['Cache-Control'] = PRIVATE_CACHE_CONTROL

    if response.headers.get('Cache-Control', '').startswith('public'):
        response.vary.add('Cookie')
    return response


def remember_locale(response):
    """Stores the locale of a localized page in the locale cookie."""
    locale = _locale_from_path(request.path)
    if locale and request.cookies.get(LOCALE_COOKIE) != locale:
        response.set_cookie(LOCALE_COOKIE, locale, max_age=LOCALE_COOKIE_MAX_AGE, path='/', samesite='Lax')
    return response


def init_app(app: Flask) -> None:
    """
    Registriert die Hooks an der Anwendung.
    Registers the hooks on the application.
    """
    app.before_request(route_locale)
    app.before_request(refresh_session)
    # after_request-Hooks laufen in umgekehrter Reihenfolge: Cookie zuerst, dann Header
    # after_request hooks run in reverse order: cookie first, then headers
    app.after_request(set_cache_headers)
    app.after_request(remember_locale)
