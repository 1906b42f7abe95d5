from __future__ import annotations

from datetime import date, datetime

import polars as pl
import pytest

from memotable.io.connection import SqliteStore
from memotable.io.errors import QueryError
from memotable.io.read import existing_keys, read_cached
from memotable.io.write import write_fresh


def make_rows(ids: list[int]) -> pl.DataFrame:
    return pl.DataFrame({"id": ids, "value": [f"v{i}" for i in ids]})


class ExplodingStore:
    def is_connected(self) -> bool:
        return True

    def read(self, *args, **kwargs):
        raise AssertionError("store must not be queried")

    def write(self, *args, **kwargs):
        raise AssertionError("store must not be written")

    def close(self) -> None:
        pass


def test_read_missing_table_is_empty(store: SqliteStore) -> None:
    assert store.read("nope", "id", [1, 2]).is_empty()
    assert existing_keys(store, "nope", [1, 2], "id") == set()


def test_empty_inputs_never_reach_the_store() -> None:
    s = ExplodingStore()
    assert read_cached(s, "t", [], "id").is_empty()
    assert existing_keys(s, "t", [], "id") == set()
    assert write_fresh(s, "t", pl.DataFrame(), "id") == 0


def test_write_creates_table_and_reads_back(store: SqliteStore) -> None:
    assert write_fresh(store, "t", make_rows([1, 2, 3]), "id") == 3
    assert store.table_columns("t") == {"id": "INTEGER", "value": "TEXT"}

    out = read_cached(store, "t", [3, 1], "id").sort("id")
    assert out.to_dict(as_series=False) == {"id": [1, 3], "value": ["v1", "v3"]}
    assert existing_keys(store, "t", [1, 4], "id") == {1}


def test_empty_write_does_not_create_table(store: SqliteStore) -> None:
    assert write_fresh(store, "t", make_rows([]), "id") == 0
    assert store.table_columns("t") == {}


def test_write_replaces_rows_for_written_keys(store: SqliteStore) -> None:
    write_fresh(store, "t", make_rows([1, 2]), "id")
    write_fresh(store, "t", pl.DataFrame({"id": [2, 2], "value": ["new-a", "new-b"]}), "id")
    out = store.read("t", "id", [1, 2]).sort("id", maintain_order=True)
    assert out["id"].to_list() == [1, 2, 2]
    assert sorted(out.filter(pl.col("id") == 2)["value"].to_list()) == ["new-a", "new-b"]


def test_column_set_is_fixed_by_first_write(store: SqliteStore) -> None:
    write_fresh(store, "t", make_rows([1]), "id")
    # fewer columns are stored as NULL
    write_fresh(store, "t", pl.DataFrame({"id": [2]}), "id")
    out = store.read("t", "id", [2])
    assert out["value"].to_list() == [None]
    # new columns are rejected
    with pytest.raises(QueryError):
        write_fresh(store, "t", pl.DataFrame({"id": [3], "extra": [1]}), "id")


def test_unstorable_dtype_raises_query_error(store: SqliteStore) -> None:
    with pytest.raises(QueryError):
        write_fresh(store, "t", pl.DataFrame({"id": [1], "tags": [[1, 2]]}), "id")


def test_types_survive_a_round_trip(store: SqliteStore) -> None:
    df = pl.DataFrame(
        {
            "id": ["a", "b"],
            "n": [1, 2],
            "x": [0.5, 1.5],
            "flag": [True, False],
            "day": [date(2024, 1, 1), date(2024, 2, 1)],
            "at": [datetime(2024, 1, 1, 12, 0, 0), datetime(2024, 1, 1, 12, 30, 15, 250)],
        }
    )
    write_fresh(store, "typed", df, "id")
    out = read_cached(store, "typed", ["a", "b"], "id").sort("id")
    assert out.schema["n"] == pl.Int64
    assert out.schema["x"] == pl.Float64
    assert out.schema["flag"] == pl.Boolean
    assert out.schema["day"] == pl.Date
    assert out.schema["at"] == pl.Datetime
    assert out.to_dict(as_series=False) == df.to_dict(as_series=False)


def test_text_keys_with_quotes(store: SqliteStore) -> None:
    df = pl.DataFrame({"name": ["O'Brien", "plain"], "n": [1, 2]})
    write_fresh(store, "people", df, "name")
    out = read_cached(store, "people", ["O'Brien"], "name")
    assert out["n"].to_list() == [1]
    assert store.table_columns("people")  # table still intact


def test_read_on_closed_store_is_connection_error(store: SqliteStore) -> None:
    from memotable.io.errors import StoreConnectionError

    store.close()
    with pytest.raises(StoreConnectionError):
        store.read("t", "id", [1])


def test_existing_keys_compares_in_the_column_type(store: SqliteStore) -> None:
    write_fresh(store, "t", make_rows([1, 2]), "id")
    assert existing_keys(store, "t", ["1", "3"], "id") == {"1"}
    assert existing_keys(store, "t", [2, 5], "id") == {2}
