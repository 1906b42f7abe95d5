from datetime import date, datetime
from decimal import Decimal

import polars as pl
import pytest

from memotable.io.errors import QueryError
from memotable.io.sql import (
    create_table_sql,
    quote_identifier,
    select_in_sql,
    sql_literal,
    sql_type_for,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (3, "3"),
        (-7, "-7"),
        (2.5, "2.5"),
        (True, "1"),
        (False, "0"),
        (None, "NULL"),
        ("abc", "'abc'"),
        ("O'Brien", "'O''Brien'"),
        (Decimal("1.50"), "1.50"),
        (date(2024, 1, 2), "'2024-01-02'"),
        (datetime(2024, 1, 2, 3, 4, 5), "'2024-01-02 03:04:05.000000'"),
    ],
)
def test_sql_literal_per_type(value, expected) -> None:
    assert sql_literal(value) == expected


@pytest.mark.parametrize("value", [float("nan"), float("inf"), object(), [1, 2], b"raw"])
def test_sql_literal_rejects_unrenderable_values(value) -> None:
    with pytest.raises(QueryError):
        sql_literal(value)


def test_select_in_shape_and_injection_is_quoted() -> None:
    assert select_in_sql("titles", "id", [1, 2]) == 'SELECT * FROM "titles" WHERE "id" IN (1, 2)'
    sql = select_in_sql("titles", "name", ["x'); DROP TABLE titles; --"])
    assert sql.endswith("IN ('x''); DROP TABLE titles; --')")
    assert select_in_sql("t", "id", [1], columns=["id"]).startswith('SELECT "id" FROM')


def test_quote_identifier_doubles_quotes() -> None:
    assert quote_identifier('we"ird') == '"we""ird"'


def test_sql_types_from_polars_schema() -> None:
    schema = {
        "id": pl.Int32(),
        "score": pl.Float64(),
        "name": pl.String(),
        "flag": pl.Boolean(),
        "day": pl.Date(),
        "at": pl.Datetime("us"),
        "blob": pl.Binary(),
    }
    sql = create_table_sql("t", schema)
    assert sql == (
        'CREATE TABLE IF NOT EXISTS "t" ("id" INTEGER, "score" REAL, "name" TEXT, '
        '"flag" BOOLEAN, "day" DATE, "at" TIMESTAMP, "blob" BLOB)'
    )


def test_nested_dtypes_have_no_sql_type() -> None:
    with pytest.raises(QueryError):
        sql_type_for(pl.List(pl.Int64))
    with pytest.raises(QueryError):
        sql_type_for(pl.Struct({"a": pl.Int64}))
