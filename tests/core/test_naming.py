import re
from datetime import date

import pytest

from memotable.core.errors import ConfigurationError
from memotable.core.hashing import hash_value, json_dumps_canonical
from memotable.core.naming import resolve_table_name, salt_token, validate_prefix

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def test_no_salt_is_prefix_exactly() -> None:
    assert resolve_table_name("imdb") == "imdb"
    assert resolve_table_name("Imdb_Info", ()) == "Imdb_Info"


def test_plain_tokens_in_declared_order() -> None:
    assert resolve_table_name("sql", ["orders", "main"]) == "sql_orders_main"
    assert resolve_table_name("sql", ["main", "orders"]) == "sql_main_orders"
    assert resolve_table_name("p", [1, True, False, None]) == "p_1_true_false_null"


@pytest.mark.parametrize(
    "a, b",
    [
        (1, "1"),
        (True, "true"),
        (None, "null"),
        ("reviews", "Reviews"),
        (1, 1.0),
        (date(2020, 1, 1), "2020-01-01"),
        ("a b", "a_b"),
    ],
)
def test_distinct_values_get_distinct_tokens(a, b) -> None:
    assert salt_token(a) != salt_token(b)


def test_hash_shaped_string_is_not_used_verbatim() -> None:
    lookalike = "x0123456789abcdef"
    token = salt_token(lookalike)
    assert token != lookalike
    assert re.fullmatch(r"x[0-9a-f]{16}", token)


@pytest.mark.parametrize(
    "value",
    ["O'Brien; DROP TABLE t; --", -3, 1.5, date(2021, 5, 1), "Ünïcode", {"b": 1, "a": [1, 2]}, ""],
)
def test_tokens_are_identifier_safe(value) -> None:
    name = resolve_table_name("fn", [value])
    assert _IDENTIFIER.match(name)
    assert name == name[:3] + name[3:].lower()


def test_resolution_is_deterministic_and_order_insensitive_for_mappings() -> None:
    assert resolve_table_name("fn", [{"a": 1, "b": 2}]) == resolve_table_name("fn", [{"b": 2, "a": 1}])
    assert salt_token("Mixed Case") == "x" + hash_value("Mixed Case")[:16]


@pytest.mark.parametrize("prefix", ["", "a b", "1abc", "bad-prefix", None, 3])
def test_invalid_prefix_raises(prefix) -> None:
    with pytest.raises(ConfigurationError):
        validate_prefix(prefix)


def test_canonical_json_tags_non_json_values() -> None:
    s = json_dumps_canonical({"d": date(2020, 1, 1)})
    assert '"__type__":"datetime.date"' in s
    assert json_dumps_canonical({"b": 2, "a": 1}) == '{"a":1,"b":2}'
