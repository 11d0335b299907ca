"""Tests for input validators used by the tool handlers."""

from datetime import date

import pytest

from outline_notes.validators import (
    format_validation_error,
    parse_journal_date,
    validate_content,
    validate_identifier,
    validate_title,
)


class TestValidateTitle:
    @pytest.mark.parametrize(
        "title", ["Ideas", "Reading list", "2024-05-01", "C++ notes", "x" * 200]
    )
    def test_valid(self, title):
        assert validate_title(title) == (True, "")

    @pytest.mark.parametrize(
        "title, reason",
        [
            ("", "cannot be empty"),
            ("   ", "cannot be empty"),
            ("two\nlines", "cannot contain line breaks or tabs"),
            ("tab\there", "cannot contain line breaks or tabs"),
            ("..", "is reserved"),
            ("x" * 201, "exceeds 200 characters"),
            ('/:*?"<>|', "must contain a file-safe character"),
        ],
    )
    def test_invalid(self, title, reason):
        assert validate_title(title) == (False, f"Page title {reason}")


class TestValidateContent:
    def test_empty_allowed(self):
        assert validate_content("") == (True, "")

    def test_not_a_string(self):
        assert validate_content(42) == (False, "Content must be a string")

    def test_size_counted_in_bytes(self):
        ok, error = validate_content("é" * 6, max_size=10)
        assert not ok
        assert error == "Content exceeds maximum size of 10 bytes"
        assert validate_content("e" * 10, max_size=10)[0]


class TestValidateIdentifier:
    def test_uuid(self):
        assert validate_identifier("3f2c9a4e-1b2c-4d5e-8f90-123456789abc")[0]

    @pytest.mark.parametrize("value", ["", "a b", "../x", "id^1"])
    def test_invalid(self, value):
        ok, error = validate_identifier(value, "block_id")
        assert not ok
        assert error.startswith("block_id must contain only")


class TestParseJournalDate:
    def test_none_and_empty(self):
        assert parse_journal_date(None) is None
        assert parse_journal_date("") is None

    def test_valid(self):
        assert parse_journal_date("2024-02-29") == date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["2023-02-29", "tomorrow", "01/05/2024"])
    def test_invalid(self, value):
        with pytest.raises(ValueError, match="is not YYYY-MM-DD"):
            parse_journal_date(value)


def test_format_validation_error():
    assert format_validation_error("Date", "is required") == "Date is required"
