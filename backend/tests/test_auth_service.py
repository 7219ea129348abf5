"""
Tests for the date helpers used by registration.
"""
from datetime import date

from notes_auth.services.auth_service import age_on, parse_date_of_birth


class TestParseDateOfBirth:

    def test_plain_date(self):
        assert parse_date_of_birth("2000-01-01") == date(2000, 1, 1)

    def test_timestamp_keeps_sent_date(self):
        assert parse_date_of_birth("2000-01-01T00:00:00.000+05:00") == date(2000, 1, 1)
        assert parse_date_of_birth("2000-01-01T23:30:00-05:00") == date(2000, 1, 1)
        assert parse_date_of_birth("2000-01-01T00:00:00Z") == date(2000, 1, 1)

    def test_date_object_passes_through(self):
        assert parse_date_of_birth(date(1999, 12, 31)) == date(1999, 12, 31)

    def test_garbage(self):
        assert parse_date_of_birth("garbage") is None
        assert parse_date_of_birth("2000-13-01") is None


class TestAgeOn:

    def test_birthday_not_reached(self):
        assert age_on(date(2000, 6, 15), date(2013, 6, 14)) == 12

    def test_on_birthday(self):
        assert age_on(date(2000, 6, 15), date(2013, 6, 15)) == 13
