"""Unit tests for dialect descriptors and the schema validator."""
from __future__ import annotations

import pytest

from relq.dialects import (
    CockroachIndexBuilder,
    DialectCapabilities,
    DialectRegistry,
    SchemaDialectValidator,
    base_type_name,
    lookup_rule,
)
from relq.errors import RelqConfigError
from relq.schema import define_table, integer, jsonb, serial, text


def _events():
    return define_table("events", {"id": serial().primary_key(), "payload": jsonb()})


def test_base_type_name():
    assert base_type_name("VARCHAR(255)[]") == "varchar"
    assert base_type_name("timestamp(3) with time zone") == "timestamp with time zone"


def test_postgres_accepts_everything():
    report = SchemaDialectValidator().validate(
        {"events": _events()}, sequences=["CREATE SEQUENCE order_seq"], statements=["LISTEN jobs"]
    )
    assert report.is_valid
    assert report.issues == []


def test_dsql_reports_each_blocked_feature():
    report = SchemaDialectValidator("awsdsql").validate(
        {"events": _events()}, sequences=["CREATE SEQUENCE order_seq"], statements=["LISTEN jobs"]
    )
    assert report.codes() == ["DSQL-TYPE-001", "DSQL-TYPE-002", "DSQL-SEQ-001", "DSQL-MISC-001"]
    assert report.issues[0].location == "events.id"
    assert not report.is_valid
    with pytest.raises(RelqConfigError, match="awsdsql"):
        report.raise_for_errors()


def test_dsql_routines_and_raw_indexes():
    report = SchemaDialectValidator("awsdsql").validate(
        functions=["CREATE FUNCTION touch() RETURNS trigger LANGUAGE plpgsql AS $$ BEGIN RETURN NEW; END $$"],
        statements=["CREATE INDEX CONCURRENTLY idx_docs ON docs USING gin (doc)"],
    )
    assert report.codes() == ["DSQL-FN-001", "DSQL-TRIG-003", "DSQL-IDX-001", "DSQL-IDX-006"]


def test_cockroach_warnings_do_not_invalidate():
    report = SchemaDialectValidator("cockroachdb").validate([_events()])
    assert report.codes() == ["CRDB_W001"]
    assert report.warnings and report.is_valid


def test_cockroach_requires_primary_key():
    table = define_table("counters", {"n": integer()})
    report = SchemaDialectValidator("cockroachdb").validate([table])
    assert report.codes() == ["CRDB_E730"]
    assert report.errors[0].location == "counters"


def test_cockroach_hash_sharded_index():
    builder = CockroachIndexBuilder("idx_events_ts", "events").on("ts").hash_sharded(8).storing("payload")
    assert builder.to_string() == (
        'CREATE INDEX "idx_events_ts" ON "events" ("ts") USING HASH WITH (bucket_count = 8) STORING ("payload")'
    )
    too_few = CockroachIndexBuilder("idx_events_ts", "events").on("ts").hash_sharded(1)
    report = SchemaDialectValidator("cockroachdb").validate(statements=[too_few])
    assert report.codes() == ["CRDB_E720"]


def test_sqlite_arrays_and_trigger_functions():
    table = define_table("posts", {"id": integer().primary_key(), "tags": text().array()}, dialect="sqlite")
    report = SchemaDialectValidator("sqlite").validate(
        [table],
        triggers=["CREATE TRIGGER trg AFTER INSERT ON posts FOR EACH ROW EXECUTE FUNCTION touch()"],
    )
    assert report.codes() == ["SQLITE-TYPE-001", "SQLITE-TRIG-001"]


def test_issues_are_reported_once_per_location():
    report = SchemaDialectValidator("awsdsql").validate(statements=["LISTEN a; LISTEN b"])
    assert report.codes() == ["DSQL-MISC-001"]


def test_issue_string_names_the_alternative():
    issue = SchemaDialectValidator("awsdsql").validate(statements=["LISTEN jobs"]).issues[0]
    assert str(issue).startswith("DSQL-MISC-001 [statement 1]: LISTEN is not supported in DSQL.")
    assert "Alternative:" in str(issue)


def test_capability_overrides():
    validator = SchemaDialectValidator("postgres", returning=False)
    assert validator.capabilities.returning is False
    with pytest.raises(RelqConfigError):
        DialectRegistry.get("postgres", teleport=True)
    with pytest.raises(RelqConfigError):
        DialectRegistry.get("oracle")


def test_register_custom_dialect():
    @DialectRegistry.register("yugabyte")
    class YugabyteCapabilities(DialectCapabilities):
        name: str = "yugabyte"
        feature_rules: dict[str, str] = {"listen": "DSQL-MISC-001"}

    try:
        assert "yugabyte" in DialectRegistry.registered_dialects()
        report = SchemaDialectValidator("yugabyte").validate(statements=["LISTEN jobs"])
        assert report.dialect == "yugabyte"
        assert report.codes() == ["DSQL-MISC-001"]
    finally:
        DialectRegistry._dialects.pop("yugabyte", None)


def test_unknown_rule_code_raises():
    with pytest.raises(RelqConfigError):
        lookup_rule("NOPE-000")
