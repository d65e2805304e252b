"""
i18n.py
Sprachen und Übersetzungstabelle für die Oberfläche.
Locales and the UI translation lookup table.
"""

LOCALES = ('en', 'he')
DEFAULT_LOCALE = 'en'
ISRAEL_LOCALE = 'he'
RTL_LOCALES = ('he',)

LOCALE_NAMES = {
    'en': 'English',
    'he': 'עברית',
}

TRANSLATIONS = {
    'en': {
        'site_name': 'Serets',
        'nav.home': 'Home',
        'nav.movies': 'Movies',
        'nav.actors': 'Actors',
        'nav.theaters': 'Theaters',
        'nav.blog': 'Blog',
        'nav.about': 'About',
        'nav.search': 'Search',
        'nav.profile': 'My profile',
        'nav.login': 'Sign in',
        'nav.logout': 'Sign out',
        'home.latest': 'Latest movies',
        'home.top_rated': 'Top rated',
        'home.coming_soon': 'Coming soon',
        'movies.all': 'All movies',
        'movies.latest': 'Latest movies',
        'movies.top_rated': 'Top rated movies',
        'movies.coming_soon': 'Coming soon',
        'movies.now_in_theaters': 'Now in theaters',
        'movies.empty': 'No movies found.',
        'movie.cast': 'Cast',
        'movie.genres': 'Genres',
        'movie.runtime': 'Runtime',
        'movie.minutes': 'min',
        'movie.release_date': 'Release date',
        'movie.rating': 'Rating',
        'movie.trailer': 'Trailer',
        'watchlist.add': 'Add to watchlist',
        'watchlist.remove': 'Remove from watchlist',
        'watchlist.title': 'Watchlist',
        'watchlist.empty': 'The watchlist is empty.',
        'reviews.title': 'Reviews',
        'reviews.empty': 'No reviews yet.',
        'reviews.submit': 'Submit review',
        'reviews.rating': 'Rating (1-5)',
        'reviews.content': 'Your review',
        'reviews.saved': 'Your review was saved.',
        'reviews.invalid': 'Rating must be a whole number between 1 and 5.',
        'reviews.login_required': 'Please sign in to write a review.',
        'actors.title': 'Actors',
        'actor.filmography': 'Filmography',
        'genre.movies': 'Movies in this genre',
        'theaters.title': 'Theaters',
        'theater.now_showing': 'Now showing',
        'theater.past': 'Recently screened',
        'theater.no_showings': 'No screenings at the moment.',
        'theater.seats': 'seats left',
        'profile.title': 'Profile',
        'profile.member_since': 'Member since',
        'auth.title': 'Sign in or register',
        'auth.login': 'Sign in',
        'auth.register': 'Register',
        'auth.email': 'Email',
        'auth.username': 'Username',
        'auth.identifier': 'Email or username',
        'auth.password': 'Password',
        'auth.invalid': 'Invalid credentials.',
        'auth.exists': 'Email or username is already taken.',
        'auth.missing': 'Please fill in all fields.',
        'auth.welcome': 'Welcome!',
        'auth.logged_out': 'You have been signed out.',
        'blog.title': 'Blog',
        'blog.reading_time': 'min read',
        'blog.empty': 'No posts yet.',
        'search.title': 'Search',
        'search.placeholder': 'Search movies, actors, theaters',
        'search.no_results': 'No results.',
        'pagination.previous': 'Previous',
        'pagination.next': 'Next',
        'about.title': 'About',
        'about.body': 'Serets is a bilingual guide to movies, actors and theaters in Israel.',
        'error.not_found': 'Page not found',
        'error.server': 'Something went wrong',
        'error.back_home': 'Back to the home page',
    },
    'he': {
        'site_name': 'סרטס',
        'nav.home': 'דף הבית',
        'nav.movies': 'סרטים',
        'nav.actors': 'שחקנים',
        'nav.theaters': 'בתי קולנוע',
        'nav.blog': 'בלוג',
        'nav.about': 'אודות',
        'nav.search': 'חיפוש',
        'nav.profile': 'הפרופיל שלי',
        'nav.login': 'התחברות',
        'nav.logout': 'התנתקות',
        'home.latest': 'סרטים חדשים',
        'home.top_rated': 'המדורגים ביותר',
        'home.coming_soon': 'בקרוב',
        'movies.all': 'כל הסרטים',
        'movies.latest': 'סרטים חדשים',
        'movies.top_rated': 'הסרטים המדורגים ביותר',
        'movies.coming_soon': 'בקרוב',
        'movies.now_in_theaters': 'עכשיו בקולנוע',
        'movies.empty': 'לא נמצאו סרטים.',
        'movie.cast': 'שחקנים',
        'movie.genres': "ז'אנרים",
        'movie.runtime': 'אורך',
        'movie.minutes': 'דק׳',
        'movie.release_date': 'תאריך יציאה',
        'movie.rating': 'דירוג',
        'movie.trailer': 'טריילר',
        'watchlist.add': 'הוספה לרשימת הצפייה',
        'watchlist.remove': 'הסרה מרשימת הצפייה',
        'watchlist.title': 'רשימת צפייה',
        'watchlist.empty': 'רשימת הצפייה ריקה.',
        'reviews.title': 'ביקורות',
        'reviews.empty': 'אין עדיין ביקורות.',
        'reviews.submit': 'שליחת ביקורת',
        'reviews.rating': 'דירוג (1-5)',
        'reviews.content': 'הביקורת שלך',
        'reviews.saved': 'הביקורת נשמרה.',
        'reviews.invalid': 'הדירוג חייב להיות מספר שלם בין 1 ל-5.',
        'reviews.login_required': 'יש להתחבר כדי לכתוב ביקורת.',
        'actors.title': 'שחקנים',
        'actor.filmography': 'פילמוגרפיה',
        'genre.movies': "סרטים בז'אנר",
        'theaters.title': 'בתי קולנוע',
        'theater.now_showing': 'מוקרן עכשיו',
        'theater.past': 'הוקרן לאחרונה',
        'theater.no_showings': 'אין הקרנות כרגע.',
        'theater.seats': 'מקומות פנויים',
        'profile.title': 'פרופיל',
        'profile.member_since': 'חבר מאז',
        'auth.title': 'התחברות או הרשמה',
        'auth.login': 'התחברות',
        'auth.register': 'הרשמה',
        'auth.email': 'אימייל',
        'auth.username': 'שם משתמש',
        'auth.identifier': 'אימייל או שם משתמש',
        'auth.password': 'סיסמה',
        'auth.invalid': 'פרטי התחברות שגויים.',
        'auth.exists': 'האימייל או שם המשתמש כבר תפוסים.',
        'auth.missing': 'נא למלא את כל השדות.',
        'auth.welcome': 'ברוכים הבאים!',
        'auth.logged_out': 'התנתקת בהצלחה.',
        'blog.title': 'בלוג',
        'blog.reading_time': 'דקות קריאה',
        'blog.empty': 'אין עדיין פוסטים.',
        'search.title': 'חיפוש',
        'search.placeholder': 'חיפוש סרטים, שחקנים ובתי קולנוע',
        'search.no_results': 'אין תוצאות.',
        'pagination.previous': 'הקודם',
        'pagination.next': 'הבא',
        'about.title': 'אודות',
        'about.body': 'סרטס הוא מדריך דו-לשוני לסרטים, שחקנים ובתי קולנוע בישראל.',
        'error.not_found': 'הדף לא נמצא',
        'error.server': 'משהו השתבש',
        'error.back_home': 'חזרה לדף הבית',
    },
}


def is_supported_locale(locale) -> bool:
    return locale in LOCALES


def text_direction(locale: str) -> str:
    return 'rtl' if locale in RTL_LOCALES else 'ltr'


def translate(key: str, locale: str = DEFAULT_LOCALE) -> str:
    """
    Liefert den übersetzten Text; Rückfall auf Englisch und dann auf den Schlüssel.
    Returns the translated text, falling back to English and then to the key.
    """
    table = TRANSLATIONS.get(locale, {})
    if key in table:
        return table[key]
    return TRANSLATIONS[DEFAULT_LOCALE].get(key, key)
