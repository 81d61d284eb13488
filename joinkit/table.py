"""Immutable, column-oriented tables.

A `Table` is an ordered collection of uniquely named columns of equal length.
Iterating a table yields the header tuple first and then one tuple per row,
the same shape petl uses, so any `Table` can be handed to petl directly
(`etl.look(table)`, `etl.tocsv(table, ...)`).
"""
from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import petl as etl

from joinkit.errors import DuplicateColumnError, RaggedColumnsError, JoinKitUserError
from joinkit.util import MISSING, normalize_value, row_identity, _schema_from_header, TableSchema

ColumnsInput = Union[Mapping[str, Sequence[Any]], Sequence[Tuple[str, Sequence[Any]]]]


class Table:
    __slots__ = ("_header", "_columns", "_nrows")

    def __init__(self, columns: Optional[ColumnsInput] = None):
        if columns is None:
            columns = {}
        items = list(columns.items()) if isinstance(columns, Mapping) else list(columns)

        header: List[str] = []
        data: List[Tuple[Any, ...]] = []
        for name, values in items:
            if not isinstance(name, str):
                raise JoinKitUserError(
                    "E_TABLE_COLUMN_NAME",
                    f"Column names must be strings, got {name!r}.",
                    hint="Example: Table({'carrier': ['AA', 'UA']})",
                )
            if name in header:
                raise DuplicateColumnError(name)
            header.append(name)
            data.append(tuple(normalize_value(v) for v in values))

        lengths = {h: len(c) for h, c in zip(header, data)}
        if len(set(lengths.values())) > 1:
            raise RaggedColumnsError(lengths)

        self._header: Tuple[str, ...] = tuple(header)
        self._columns: Tuple[Tuple[Any, ...], ...] = tuple(data)
        self._nrows: int = len(data[0]) if data else 0

    # ---------- constructors ----------
    @classmethod
    def _from_columns(cls, header: Sequence[str], columns: Sequence[Tuple[Any, ...]], nrows: int) -> "Table":
        # Internal fast path: columns are already normalized tuples.
        t = cls.__new__(cls)
        t._header = tuple(header)
        t._columns = tuple(columns)
        t._nrows = nrows
        return t

    @classmethod
    def from_rows(cls, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> "Table":
        header = list(header)
        cols: List[List[Any]] = [[] for _ in header]
        n = 0
        for i, row in enumerate(rows):
            if len(row) != len(header):
                raise JoinKitUserError(
                    "E_TABLE_ROW_WIDTH",
                    f"Row #{i} has {len(row)} values but the header has {len(header)} columns.",
                    hint=f"Header: {header}",
                )
            for c, v in zip(cols, row):
                c.append(v)
            n += 1
        t = cls(list(zip(header, cols)))
        # zero-column rows still count
        t._nrows = n
        return t

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], header: Optional[Sequence[str]] = None) -> "Table":
        records = list(records)
        if header is None:
            seen: List[str] = []
            for r in records:
                for k in r:
                    if k not in seen:
                        seen.append(k)
            header = seen
        return cls.from_rows(header, [[r.get(h, MISSING) for h in header] for r in records])

    @classmethod
    def from_petl(cls, table, *, na_values: Iterable[Any] = ()) -> "Table":
        """Materialize any petl table container (header row first)."""
        na = set(na_values)
        it = iter(table)
        try:
            header = next(it)
        except StopIteration:
            return cls()
        rows = []
        for row in it:
            rows.append([MISSING if (isinstance(v, str) and v in na) else v for v in row])
        return cls.from_rows([str(h) for h in header], rows)

    # ---------- shape ----------
    @property
    def header(self) -> Tuple[str, ...]:
        return self._header

    @property
    def nrows(self) -> int:
        return self._nrows

    @property
    def ncols(self) -> int:
        return len(self._header)

    def __len__(self) -> int:
        return self._nrows

    def has_column(self, name: str) -> bool:
        return name in self._header

    def index_of(self, name: str) -> int:
        try:
            return self._header.index(name)
        except ValueError:
            raise JoinKitUserError(
                "E_TABLE_UNKNOWN_COLUMN",
                f"Column '{name}' not found.",
                hint="Available columns: " + ", ".join(self._header),
            ) from None

    def column(self, name: str) -> Tuple[Any, ...]:
        return self._columns[self.index_of(name)]

    def columns(self) -> Dict[str, Tuple[Any, ...]]:
        return dict(zip(self._header, self._columns))

    # ---------- rows ----------
    def row(self, i: int) -> Tuple[Any, ...]:
        return tuple(c[i] for c in self._columns)

    def rows(self) -> Iterator[Tuple[Any, ...]]:
        if not self._columns:
            return iter([()] * self._nrows)
        return zip(*self._columns)

    def records(self) -> List[Dict[str, Any]]:
        return [dict(zip(self._header, r)) for r in self.rows()]

    def __iter__(self) -> Iterator[Tuple[Any, ...]]:
        yield self._header
        yield from self.rows()

    # ---------- projections ----------
    def select(self, names: Sequence[str]) -> "Table":
        idx = [self.index_of(n) for n in names]
        return Table._from_columns([self._header[i] for i in idx], [self._columns[i] for i in idx], self._nrows)

    def drop(self, names: Sequence[str]) -> "Table":
        for n in names:
            self.index_of(n)
        dropped = set(names)
        keep = [h for h in self._header if h not in dropped]
        return self.select(keep)

    def take(self, positions: Sequence[int]) -> "Table":
        """New table holding the rows at the given positions, in that order."""
        cols = [tuple(c[i] for i in positions) for c in self._columns]
        return Table._from_columns(self._header, cols, len(positions))

    def head(self, n: int = 5) -> "Table":
        return self.take(range(min(n, self._nrows)))

    # ---------- interop ----------
    def to_petl(self):
        """A petl view of this table with MISSING shown as None."""
        return etl.convertall(etl.wrap(self), lambda v: None if v is MISSING else v)

    def schema(self) -> TableSchema:
        return _schema_from_header(self._header)

    def same_rows(self, other: "Table") -> bool:
        """Order-insensitive comparison of row multisets (missing equals missing)."""
        if self._header != other._header:
            return False
        return Counter(map(row_identity, self.rows())) == Counter(map(row_identity, other.rows()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        if self._header != other._header or self._nrows != other._nrows:
            return False
        return all(row_identity(a) == row_identity(b) for a, b in zip(self.rows(), other.rows()))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Table(columns={list(self._header)}, nrows={self._nrows})"

    def __str__(self) -> str:
        return str(etl.look(etl.wrap(self)))
