"""Unit tests for IMAP search criteria construction."""

from datetime import date, datetime

import pytest

from mailtree.imap.search import build_search, format_since


@pytest.mark.parametrize(
    "query, since, expected",
    [
        ("", None, "ALL"),
        ("  ", None, "ALL"),
        ("UNSEEN", None, "UNSEEN"),
        ("", date(2024, 3, 9), "SINCE 09-Mar-2024"),
        ('FROM "billing@example.com"', datetime(2006, 1, 2, 15, 4), 'FROM "billing@example.com" SINCE 02-Jan-2006'),
    ],
)
def test_build_search(query, since, expected):
    assert build_search(query, since) == expected


def test_format_since_ignores_time_of_day():
    assert format_since(datetime(2023, 12, 31, 23, 59)) == "31-Dec-2023"
