from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import polars as pl
import pytest

from memotable.io.connection import SqliteStore


@pytest.fixture
def store() -> Iterator[SqliteStore]:
    s = SqliteStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "cache.db")


class RecordingDelegate:
    """Delegate returning one ``(id, value)`` row per id and recording every call."""

    def __init__(self, skip: set[Any] | None = None) -> None:
        self.calls: list[list[Any]] = []
        self.skip = skip or set()

    def __call__(self, id: list[Any], kind: str = "base") -> pl.DataFrame:
        self.calls.append(list(id))
        ids = [i for i in id if i not in self.skip]
        return pl.DataFrame(
            {"id": ids, "value": [f"{kind}-{i}" for i in ids]},
            schema={"id": pl.Int64, "value": pl.String},
        )


@pytest.fixture
def delegate() -> RecordingDelegate:
    return RecordingDelegate()


@pytest.fixture
def make_delegate() -> type[RecordingDelegate]:
    return RecordingDelegate
