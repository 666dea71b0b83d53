"""Unit tests for relq.pg_format."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from relq.errors import FormatError, RelqBuilderError
from relq.pg_format import format_column, format_sql, ident, literal


def test_identifier_is_double_quoted():
    assert format_sql("SELECT %I", "name") == 'SELECT "name"'


def test_identifier_doubles_embedded_quotes():
    assert ident('we"ird') == '"we""ird"'


def test_identifier_list_is_comma_joined():
    assert format_sql("(%I)", ["a", "b"]) == '("a", "b")'


def test_identifier_non_string_is_stringified():
    assert ident(5) == '"5"'


@pytest.mark.parametrize("bad", [None, ""])
def test_identifier_none_or_empty_raises(bad):
    with pytest.raises(FormatError):
        ident(bad)


def test_format_error_is_builder_error():
    with pytest.raises(RelqBuilderError) as exc_info:
        ident(None)
    assert exc_info.value.builder == "format"


def test_literal_text_doubles_single_quotes():
    assert literal("o'brien") == "'o''brien'"


def test_literal_scalars():
    assert literal(None) == "NULL"
    assert literal(True) == "true"
    assert literal(False) == "false"
    assert literal(42) == "42"
    assert literal(1.5) == "1.5"
    assert literal(Decimal("10.25")) == "10.25"


def test_literal_dates_are_iso_quoted():
    assert literal(date(2024, 1, 2)) == "'2024-01-02'"
    assert literal(datetime(2024, 1, 2, 3, 4, 5)) == "'2024-01-02T03:04:05'"


def test_literal_list_is_parenthesised():
    assert literal([1, "a"]) == "(1,'a')"


def test_literal_dict_is_compact_json():
    assert literal({"a": 1, "b": "x"}) == '\'{"a":1,"b":"x"}\''


def test_literal_dict_json_quotes_are_escaped():
    assert literal({"n": "it's"}) == "'{\"n\":\"it''s\"}'"


def test_literal_bytes_hex():
    assert literal(b"\x01\xff") == "'\\x01ff'"


def test_literal_callable_raises():
    with pytest.raises(FormatError):
        literal(lambda: 1)


def test_raw_splice_and_percent():
    assert format_sql("%s LIMIT 10 -- 100%%", "SELECT 1") == "SELECT 1 LIMIT 10 -- 100%"
    assert format_sql("[%s]", None) == "[]"
    assert format_sql("%s", ["a", "b"]) == "a,b"


def test_too_few_arguments_raises():
    with pytest.raises(FormatError):
        format_sql("%I = %L", "id")


def test_unknown_specifier_raises():
    with pytest.raises(FormatError):
        format_sql("%Q", "x")


def test_format_column_qualifies_each_part():
    assert format_column("users.id") == '"users"."id"'
    assert format_column("id") == '"id"'
