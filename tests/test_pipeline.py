from __future__ import annotations

import polars as pl
import pyarrow as pa
import pytest

from memotable.core.errors import ValidationError
from memotable.core.spec import CacheSpec, CallDescriptor
from memotable.io.write import write_fresh
from memotable.pipeline import coerce_tabular, invoke_delegate, merge, partition


def frame(ids, values) -> pl.DataFrame:
    return pl.DataFrame({"id": ids, "value": values}, schema={"id": pl.Int64, "value": pl.String})


def test_merge_follows_request_order() -> None:
    fresh = frame([2], ["b"])
    cached = frame([1, 3], ["a", "c"])
    out = merge(fresh, cached, [3, 1, 2], "id")
    assert out.to_dict(as_series=False) == {"id": [3, 1, 2], "value": ["c", "a", "b"]}


def test_merge_drops_unrequested_and_null_keys() -> None:
    fresh = frame([1, 99, None], ["a", "stray", "null"])
    out = merge(fresh, pl.DataFrame(), [1], "id")
    assert out["id"].to_list() == [1]


def test_merge_duplicate_requests_yield_rows_once_at_first_position() -> None:
    out = merge(frame([1, 2], ["a", "b"]), pl.DataFrame(), [2, 1, 2], "id")
    assert out["id"].to_list() == [2, 1]


def test_merge_keeps_arrival_order_within_a_key() -> None:
    fresh = frame([1, 2, 1], ["f1", "f2", "f1b"])
    cached = frame([1], ["c1"])
    out = merge(fresh, cached, [1, 2], "id")
    assert out["value"].to_list() == ["f1", "f1b", "c1", "f2"]


def test_merge_null_fills_columns_missing_on_one_side() -> None:
    fresh = pl.DataFrame({"id": [2], "value": ["b"], "extra": [1.5]})
    cached = frame([1], ["a"])
    out = merge(fresh, cached, [1, 2], "id")
    assert out.columns == ["id", "value", "extra"]
    assert out["extra"].to_list() == [None, 1.5]


def test_merge_of_nothing_is_empty() -> None:
    assert merge(pl.DataFrame(), pl.DataFrame(), [1, 2], "id").is_empty()


def test_partition_splits_distinct_keys_against_the_table(store) -> None:
    write_fresh(store, "t", frame([1, 3], ["a", "c"]), "id")
    parts = partition(store, "t", [3, 2, 3, 1, 4], "id")
    assert parts.cached == [3, 1]
    assert parts.uncached == [2, 4]


def test_partition_on_missing_table_is_all_uncached(store) -> None:
    parts = partition(store, "missing", [1, 1, 2], "id")
    assert parts.cached == []
    assert parts.uncached == [1, 2]


def test_partition_with_force_ignores_the_table(store) -> None:
    write_fresh(store, "t", frame([1], ["a"]), "id")
    parts = partition(store, "t", [1, 2, 1], "id", force=True)
    assert parts.cached == []
    assert parts.uncached == [1, 2]


def test_coerce_tabular_accepts_arrow_and_lazy_frames() -> None:
    table = pa.table({"id": [1, 2], "value": ["a", "b"]})
    assert coerce_tabular(table).shape == (2, 2)
    assert coerce_tabular(frame([1], ["a"]).lazy()).shape == (1, 2)
    with pytest.raises(ValidationError):
        coerce_tabular([{"id": 1}])


def test_coerce_tabular_accepts_pandas_frames() -> None:
    pd = pytest.importorskip("pandas")
    out = coerce_tabular(pd.DataFrame({"id": [1, 2], "value": ["a", "b"]}))
    assert isinstance(out, pl.DataFrame)
    assert out.to_dict(as_series=False) == {"id": [1, 2], "value": ["a", "b"]}


def test_invoke_delegate_skips_call_without_uncached_keys(delegate) -> None:
    spec = CacheSpec.build(delegate, "id", prefix="rec")
    call = CallDescriptor.from_call(spec, ([1, 2],), {})
    assert invoke_delegate(call, []).is_empty()
    assert delegate.calls == []
    out = invoke_delegate(call, [2])
    assert delegate.calls == [[2]]
    assert out["id"].to_list() == [2]


def test_invoke_delegate_requires_key_column_on_non_empty_output() -> None:
    def wrong(id):
        return pl.DataFrame({"other": id})

    def nothing(id):
        return pl.DataFrame()

    bad = CallDescriptor.from_call(CacheSpec.build(wrong, "id"), ([1],), {})
    with pytest.raises(ValidationError):
        invoke_delegate(bad, [1])
    empty = CallDescriptor.from_call(CacheSpec.build(nothing, "id"), ([1],), {})
    assert invoke_delegate(empty, [1]).is_empty()
