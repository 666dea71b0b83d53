"""Unit tests for the condition collector and renderer."""
from __future__ import annotations

import pytest

from relq.condition import (
    ConditionCollector,
    ConditionNode,
    ConditionRegistry,
    build_conditions_sql,
    collect,
    qualify_condition_columns,
    resolve_condition_columns,
)
from relq.errors import RelqBuilderError
from relq.pg_format import format_column


def _render(callback) -> str:
    return build_conditions_sql(collect(callback))


# ---------------------------------------------------------------------------
# Leaves
# ---------------------------------------------------------------------------


def test_top_level_conditions_join_with_and():
    sql = _render(lambda q: q.equal("status", "active").greater_than("age", 18))
    assert sql == "\"status\" = 'active' AND \"age\" > 18"


def test_comparison_aliases_render_the_same():
    short = _render(lambda q: q.less_than_equal("a", 1).greater_than_equal("b", 2))
    long = _render(lambda q: q.less_than_or_equal("a", 1).greater_than_or_equal("b", 2))
    assert short == long == '"a" <= 1 AND "b" >= 2'


def test_equal_with_list_becomes_in():
    assert _render(lambda q: q.equal("id", [1, 2])) == '"id" IN (1,2)'


def test_empty_lists_render_constant_predicates():
    assert _render(lambda q: q.equal("id", [])) == "FALSE"
    assert _render(lambda q: q.not_equal("id", [])) == "TRUE"


def test_equal_with_single_element_list_is_equality():
    assert _render(lambda q: q.equal("id", [7])) == '"id" = 7'


def test_not_equal_with_list_becomes_not_in():
    assert _render(lambda q: q.not_equal("id", [1, 2])) == '"id" NOT IN (1,2)'


def test_in_empty_renders_false_and_not_in_empty_renders_true():
    assert _render(lambda q: q.in_("id", [])) == "FALSE"
    assert _render(lambda q: q.not_in("id", [])) == "TRUE"


def test_in_list_is_spaced():
    assert _render(lambda q: q.in_("id", [1, 2, 3])) == '"id" IN (1, 2, 3)'


def test_null_and_boolean_checks():
    sql = _render(lambda q: q.is_null("deleted_at").is_not_null("email").is_true("active"))
    assert sql == '"deleted_at" IS NULL AND "email" IS NOT NULL AND "active" IS TRUE'


def test_between():
    assert _render(lambda q: q.between("age", 18, 65)) == '"age" BETWEEN 18 AND 65'


def test_pattern_helpers_wrap_wildcards():
    assert _render(lambda q: q.starts_with("name", "Jo")) == "\"name\" LIKE 'Jo%'"
    assert _render(lambda q: q.ends_with("name", "son", True)) == "\"name\" ILIKE '%son'"
    assert _render(lambda q: q.not_contains("name", "x")) == "\"name\" NOT LIKE '%x%'"


def test_literal_values_are_escaped():
    assert _render(lambda q: q.equal("name", "O'Brien")) == "\"name\" = 'O''Brien'"


def test_qualified_column_is_quoted_per_part():
    assert _render(lambda q: q.equal("users.id", 1)) == '"users"."id" = 1'


def test_full_text_search():
    sql = _render(lambda q: q.search("body", "cats"))
    assert sql == "to_tsvector(\"body\") @@ plainto_tsquery('cats')"


def test_exists_accepts_sql_text():
    sql = _render(lambda q: q.exists("SELECT 1 FROM orders"))
    assert sql == "EXISTS (SELECT 1 FROM orders)"


def test_raw_is_verbatim():
    assert _render(lambda q: q.raw("age % 2 = 0")) == "age % 2 = 0"


def test_missing_column_raises():
    with pytest.raises(RelqBuilderError):
        ConditionCollector().equal("", 1)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def test_or_group_is_parenthesised():
    sql = _render(
        lambda q: q.equal("status", "active").or_(lambda o: o.is_null("deleted_at").greater_than("age", 18))
    )
    assert sql == "\"status\" = 'active' AND (\"deleted_at\" IS NULL OR \"age\" > 18)"


def test_single_child_group_is_not_parenthesised():
    assert _render(lambda q: q.or_(lambda o: o.equal("a", 1))) == '"a" = 1'


def test_not_group():
    assert _render(lambda q: q.not_(lambda n: n.equal("a", 1))) == 'NOT ("a" = 1)'


def test_empty_group_raises():
    with pytest.raises(RelqBuilderError):
        collect(lambda q: q.and_(lambda a: None))


# ---------------------------------------------------------------------------
# JSONB and arrays
# ---------------------------------------------------------------------------


def test_jsonb_contains_renders_json_literal():
    sql = _render(lambda q: q.jsonb.contains("meta", {"tier": "gold"}))
    assert sql == '"meta" @> \'{"tier":"gold"}\''


def test_jsonb_has_any_keys():
    sql = _render(lambda q: q.jsonb.has_any_keys("meta", ["a", "b"]))
    assert sql == "\"meta\" ?| ARRAY['a','b']"


def test_jsonb_path_equal_with_dotted_path():
    sql = _render(lambda q: q.jsonb.path_equal("meta", "address.city", "Oslo"))
    assert sql == "\"meta\"#>>'{address,city}' = 'Oslo'"


def test_jsonb_numeric_path_casts():
    sql = _render(lambda q: q.jsonb.path_greater_than("meta", ["score"], 10))
    assert sql == "(\"meta\"#>>'{score}')::numeric > 10"


def test_array_contains_and_any():
    assert _render(lambda q: q.array.contains("tags", ["a"])) == "\"tags\" @> ARRAY['a']"
    assert _render(lambda q: q.array.any("tags", "a")) == "'a' = ANY(\"tags\")"


def test_array_length():
    assert _render(lambda q: q.array.length("tags", 3)) == 'array_length("tags", 1) = 3'


# ---------------------------------------------------------------------------
# Rewrites and registry
# ---------------------------------------------------------------------------


def test_resolve_condition_columns_maps_keys_inside_groups():
    mapping = {"userId": "user_id", "createdAt": "created_at"}
    nodes = collect(
        lambda q: q.equal("userId", 1).or_(lambda o: o.equal("t.userId", 2).is_null("createdAt"))
    )
    resolved = resolve_condition_columns(nodes, mapping.get)
    assert build_conditions_sql(resolved) == (
        '"user_id" = 1 AND ("t"."user_id" = 2 OR "created_at" IS NULL)'
    )


def test_resolve_leaves_raw_untouched():
    nodes = [ConditionNode("raw", None, "userId = 1")]
    assert resolve_condition_columns(nodes, lambda c: "x")[0].values == "userId = 1"


def test_qualify_prefixes_bare_columns_only():
    nodes = collect(lambda q: q.equal("id", 1).equal("o.total", 2))
    sql = build_conditions_sql(qualify_condition_columns(nodes, "u"))
    assert sql == '"u"."id" = 1 AND "o"."total" = 2'


def test_unknown_method_raises():
    with pytest.raises(RelqBuilderError):
        build_conditions_sql([ConditionNode("no_such_method", "a", 1)])


def test_registry_accepts_new_methods():
    @ConditionRegistry.register("is_even")
    def _is_even(node):
        return f"{format_column(node.column)} % 2 = 0"

    collector = ConditionCollector().add(ConditionNode("is_even", "n"))
    assert build_conditions_sql(collector.nodes) == '"n" % 2 = 0'
    assert "is_even" in ConditionRegistry.registered_methods()
