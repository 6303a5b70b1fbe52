"""Tests for fieldtally.sources.url module."""

import pytest

from fieldtally.sources.url import normalize_script_url


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("https://script.google.com/macros/s/abc/exec", "https://script.google.com/macros/s/abc/exec"),
        ("https://script.google.com/macros/s/abc", "https://script.google.com/macros/s/abc/exec"),
        ("https://script.google.com/macros/s/abc/", "https://script.google.com/macros/s/abc/exec"),
        ('  "https://script.google.com/macros/s/abc"  ', "https://script.google.com/macros/s/abc/exec"),
        ("'https://rows.example.test/api'", "https://rows.example.test/api"),
        ("", ""),
        ("   ", ""),
        ('""', ""),
        (None, ""),
    ],
)
def test_normalize_script_url(raw, expected):
    assert normalize_script_url(raw) == expected
