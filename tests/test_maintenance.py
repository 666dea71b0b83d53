"""Unit tests for COPY, EXPLAIN, VACUUM/ANALYZE and TRUNCATE."""
from __future__ import annotations

import pytest

from relq.errors import RelqBuilderError
from relq.maintenance import (
    AnalyzeBuilder,
    CopyFromBuilder,
    CopyToBuilder,
    ExplainBuilder,
    TruncateBuilder,
    VacuumBuilder,
)
from relq.query import SelectBuilder


def test_copy_table_to_stdout_as_csv():
    sql = CopyToBuilder("users").only("id", "email").csv().with_header().to_string()
    assert sql == 'COPY "users" ("id", "email") TO STDOUT WITH (FORMAT CSV, HEADER TRUE)'


def test_copy_query_to_file_with_force_quote():
    sql = (
        CopyToBuilder()
        .query(SelectBuilder("users", ["email"]))
        .to_file("/tmp/out.csv")
        .csv()
        .force_quote("*")
        .to_string()
    )
    assert sql == 'COPY (SELECT "email" FROM "users") TO \'/tmp/out.csv\' WITH (FORMAT CSV, FORCE_QUOTE *)'


def test_copy_to_requires_source():
    with pytest.raises(RelqBuilderError):
        CopyToBuilder().to_string()


def test_copy_from_options_and_where():
    sql = (
        CopyFromBuilder("events")
        .csv()
        .freeze()
        .with_delimiter(";")
        .on_error("ignore")
        .where("id > 10")
        .to_string()
    )
    assert sql == (
        "COPY \"events\" FROM STDIN WITH (FORMAT CSV, FREEZE TRUE, DELIMITER ';', ON_ERROR IGNORE) "
        "WHERE id > 10"
    )


def test_copy_from_header_match():
    sql = CopyFromBuilder("t").from_program("gunzip -c f.gz").with_header("MATCH").to_string()
    assert sql == "COPY \"t\" FROM PROGRAM 'gunzip -c f.gz' WITH (HEADER MATCH)"


def test_explain_buffers_implies_analyze():
    sql = ExplainBuilder(SelectBuilder("users")).buffers().format("JSON").to_string()
    assert sql == 'EXPLAIN (ANALYZE, BUFFERS, FORMAT JSON) SELECT * FROM "users"'


def test_explain_without_options():
    assert ExplainBuilder("SELECT 1").to_string() == "EXPLAIN SELECT 1"


def test_vacuum_uses_parenthesized_options():
    sql = VacuumBuilder("users").full().analyze().index_cleanup("auto").to_string()
    assert sql == 'VACUUM (FULL, ANALYZE, INDEX_CLEANUP AUTO) "users"'


def test_vacuum_whole_database():
    assert VacuumBuilder().to_string() == "VACUUM"


def test_analyze_columns():
    sql = AnalyzeBuilder("users").verbose().columns(["email", "name"]).to_string()
    assert sql == 'ANALYZE (VERBOSE) "users" ("email", "name")'


def test_truncate_options():
    sql = TruncateBuilder(["a", "b"]).restart_identity().cascade().only().to_string()
    assert sql == 'TRUNCATE TABLE "a", "b" RESTART IDENTITY CASCADE'
    assert TruncateBuilder("a").only().restrict().to_string() == 'TRUNCATE TABLE ONLY "a" RESTRICT'
