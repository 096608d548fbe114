"""
Export of query results to Apache Arrow tables and Parquet files.

pyarrow is an optional dependency (the `arrow` extra); every entry point
raises ArrowNotAvailable when it is missing.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Iterable, Optional, Sequence

try:
    import pyarrow as pa  # type: ignore
    import pyarrow.parquet as pq  # type: ignore
except ImportError:  # pragma: no cover
    pa = None
    pq = None


class ArrowNotAvailable(RuntimeError):
    pass


def _ensure_pyarrow() -> None:
    if pa is None:
        raise ArrowNotAvailable("Arrow export needs pyarrow: pip install 'linq-tricks[arrow]'")


def _as_row(record: Any) -> dict:
    if isinstance(record, dict):
        return record
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        # shallow: nested records (e.g. Customer.orders) stay as objects
        return {f.name: getattr(record, f.name) for f in dataclasses.fields(record)}
    raise TypeError(f"Can't convert {type(record).__name__} to an Arrow row")


def to_arrow(records: Iterable[Any], columns: Optional[Sequence[str]] = None) -> Any:
    """
    Build a pyarrow.Table from dict rows or dataclass records (OrderDto,
    OrderGroupResult, ...). Decimal values become Arrow decimals.

    When `columns` is given only those keys are kept, in that order.
    """
    _ensure_pyarrow()
    table_columns: dict[str, list] = {name: [] for name in columns} if columns is not None else {}
    n = 0
    for record in records:
        row = _as_row(record)
        if columns is None:
            for name in row:
                # a key first seen now is missing from the earlier rows
                table_columns.setdefault(name, [None] * n)
        for name, values in table_columns.items():
            values.append(row.get(name))
        n += 1
    return pa.table({name: pa.array(values) for name, values in table_columns.items()})


def table_to_parquet(table: Any, path: str, compression: str = 'zstd', dict_encoding: bool = True) -> None:
    _ensure_pyarrow()
    pq.write_table(table, path, compression=compression, use_dictionary=dict_encoding)


def to_parquet_from_records(records: Iterable[Any], path: str, columns: Optional[Sequence[str]] = None,
                            compression: str = 'zstd', dict_encoding: bool = True) -> None:
    table_to_parquet(to_arrow(records, columns=columns), path, compression=compression, dict_encoding=dict_encoding)


def from_parquet_to_rows(path: str, columns: Optional[Sequence[str]] = None) -> list[dict]:
    """Read a Parquet file back as a list of dict rows."""
    _ensure_pyarrow()
    return pq.read_table(path, columns=list(columns) if columns is not None else None).to_pylist()
