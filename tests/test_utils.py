"""Tests for column name sanitization and list splitting helpers."""

import re

import pytest

from csv_query.core.utils import quote_identifier, sanitize_column_name, try_split


@pytest.mark.parametrize(
    "token, expected",
    [
        ("name", "name"),
        ("First Name", "firstname"),
        ("ZIP-Code (5)", "zipcode5"),
        ("  padded\t", "padded"),
        ("Ünïcödé", "ncd"),
        ("a_b.c", "abc"),
        ("%%", ""),
        ("", ""),
    ],
)
def test_sanitize_column_name(token, expected):
    assert sanitize_column_name(token) == expected


@pytest.mark.parametrize("token", ["Hello World", "x-1", "ÄBC123", "__id__", "Smith, Jr."])
def test_sanitize_is_lowercase_alphanumeric_and_idempotent(token):
    once = sanitize_column_name(token)
    assert re.fullmatch(r"[a-z0-9]+", once)
    assert sanitize_column_name(once) == once


def test_try_split_prefers_first_separator():
    assert try_split("a|b,c", "|", ",") == ["a", "b,c"]


def test_try_split_falls_back_to_next_separator():
    assert try_split("a,b,c", "|", ",") == ["a", "b", "c"]


def test_try_split_without_match_returns_whole_string():
    assert try_split("abc", "|", ",") == ["abc"]


def test_try_split_keeps_empty_tokens():
    assert try_split("a,,b", ";", ",") == ["a", "", "b"]


def test_quote_identifier():
    assert quote_identifier("order") == '"order"'
    assert quote_identifier('we"ird') == '"we""ird"'
