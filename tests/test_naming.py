"""Tests for file naming helpers."""

from datetime import datetime

from automation.naming import MAX_NAME_LENGTH, file_timestamp, safe_filename


def test_safe_filename_keeps_case():
    assert safe_filename("Night Drive: Part 2") == "Night_Drive-_Part_2"


def test_safe_filename_strips_path_separators():
    name = safe_filename("a/b\\c")
    assert "/" not in name and "\\" not in name


def test_safe_filename_default_for_blank():
    assert safe_filename("   ") == "suno-song"
    assert safe_filename(None) == "suno-song"
    assert safe_filename("...", default="x") == "x"


def test_safe_filename_truncated():
    assert len(safe_filename("a" * 500)) == MAX_NAME_LENGTH


def test_file_timestamp_format():
    assert file_timestamp(datetime(2026, 3, 14, 9, 26, 53)) == "2026-03-14T09-26-53"
