from datetime import date, datetime

import pytest

import utils
from utils import (as_bool, calculate_reading_time, fetch_with_retry, format_date, format_tmdb_image_url,
                   get_localized_field, markdown_to_plain_text, parse_iso_datetime, slugify, to_iso, truncate)


def test_slugify():
    assert slugify("Tel Aviv Cinema!") == "tel-aviv-cinema"
    assert slugify("  --Waltz with_Bashir--  ") == "waltz-with-bashir"


def test_slugify_is_idempotent():
    for text in ("Tel Aviv Cinema!", "  --Waltz with_Bashir--  ", "a__b--c  d", "הערת שוליים"):
        once = slugify(text)
        assert slugify(once) == once


def test_truncate_includes_ending_in_length():
    assert truncate("abcdefghij", 8) == "abcde..."
    assert truncate("short", 10) == "short"
    assert truncate("abcdef", 2) == ".."
    assert truncate("abcdefgh", 5) == "ab..."
    for length in range(0, 8):
        assert len(truncate("abcdefgh", length)) <= length


def test_format_date():
    assert format_date(None) == 'N/A'
    assert format_date(date(2024, 3, 5)) == '05/03/2024'
    assert format_date(datetime(2024, 3, 5, 20, 30), include_time=True) == '05/03/2024 20:30'
    assert format_date('2024-03-05T10:00:00Z') == '05/03/2024'


def test_markdown_to_plain_text():
    text = "# Title\n\nSome **bold** and *italic* with a [link](https://example.com)."
    assert markdown_to_plain_text(text) == "Title Some bold and italic with a link."


def test_calculate_reading_time_has_minimum_of_one():
    assert calculate_reading_time("") == 1
    assert calculate_reading_time("word " * 401) == 3


def test_get_localized_field_falls_back_to_other_language():
    assert get_localized_field("Dog", "כלב", "he") == "כלב"
    assert get_localized_field("Dog", None, "he") == "Dog"
    assert get_localized_field(None, "כלב", "en") == "כלב"
    assert get_localized_field(None, None, "en") is None


def test_format_tmdb_image_url():
    assert format_tmdb_image_url(None) is None
    assert format_tmdb_image_url("/abc.jpg") == utils.TMDB_IMAGE_BASE_URL + "/abc.jpg"
    assert format_tmdb_image_url("https://cdn.example.com/a.jpg") == "https://cdn.example.com/a.jpg"


def test_parse_iso_datetime_normalises_to_naive_utc():
    assert parse_iso_datetime("2025-01-10T12:00:00Z") == datetime(2025, 1, 10, 12, 0)
    assert parse_iso_datetime("2025-01-10T14:00:00+02:00") == datetime(2025, 1, 10, 12, 0)
    with pytest.raises(ValueError):
        parse_iso_datetime("not a date")
    with pytest.raises(ValueError):
        parse_iso_datetime("")


def test_to_iso():
    assert to_iso(None) is None
    assert to_iso(datetime(2025, 1, 10, 12, 0)) == "2025-01-10T12:00:00Z"
    assert to_iso(date(2025, 1, 10)) == "2025-01-10"


def test_fetch_with_retry_retries_then_succeeds(monkeypatch):
    sleeps = []
    monkeypatch.setattr(utils.time, 'sleep', sleeps.append)
    calls = {'count': 0}

    def flaky():
        calls['count'] += 1
        if calls['count'] < 3:
            raise RuntimeError("boom")
        return "ok"

    assert fetch_with_retry(flaky, retries=3, delay=1.0) == "ok"
    assert sleeps == [1.0, 2.0]


def test_fetch_with_retry_raises_last_error(monkeypatch):
    monkeypatch.setattr(utils.time, 'sleep', lambda _: None)

    def failing():
        raise RuntimeError("still down")

    with pytest.raises(RuntimeError, match="still down"):
        fetch_with_retry(failing, retries=2, delay=0)


def test_as_bool():
    assert as_bool("true") and as_bool("1") and as_bool("YES") and as_bool(True)
    assert not as_bool(None)
    assert not as_bool("0")
    assert not as_bool("")
