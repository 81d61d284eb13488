"""Set operations over whole rows.

Rows compare by every column value. Unlike join keys, a missing value equals
another missing value here. All operations deduplicate their output.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Set, Tuple

from joinkit.errors import SchemaMismatchError
from joinkit.table import Table
from joinkit.util import row_identity

logger = logging.getLogger(__name__)

SET_OPS: Tuple[str, ...] = ("intersect", "union", "setdiff")


def _require_same_schema(op: str, x: Table, y: Table) -> None:
    if x.header != y.header:
        raise SchemaMismatchError(op, x.header, y.header)


def _distinct_positions(table: Table, seen: Set, keep=lambda ident: True) -> List[int]:
    out: List[int] = []
    for i, row in enumerate(table.rows()):
        ident = row_identity(row)
        if ident in seen or not keep(ident):
            continue
        seen.add(ident)
        out.append(i)
    return out


def _identities(table: Table) -> Set:
    return {row_identity(r) for r in table.rows()}


def distinct(table: Table) -> Table:
    """Drop repeated rows, keeping the first occurrence."""
    return table.take(_distinct_positions(table, set()))


def intersect(x: Table, y: Table) -> Table:
    _require_same_schema("intersect", x, y)
    in_y = _identities(y)
    out = x.take(_distinct_positions(x, set(), lambda ident: ident in in_y))
    logger.debug("intersect: %d x %d row(s) -> %d row(s)", x.nrows, y.nrows, out.nrows)
    return out


def union(x: Table, y: Table) -> Table:
    _require_same_schema("union", x, y)
    seen: Set = set()
    xs = _distinct_positions(x, seen)
    ys = _distinct_positions(y, seen)
    out = Table.from_rows(x.header, _concat_rows(x, xs, y, ys))
    logger.debug("union: %d + %d row(s) -> %d row(s)", x.nrows, y.nrows, out.nrows)
    return out


def setdiff(x: Table, y: Table) -> Table:
    _require_same_schema("setdiff", x, y)
    in_y = _identities(y)
    out = x.take(_distinct_positions(x, set(), lambda ident: ident not in in_y))
    logger.debug("setdiff: %d - %d row(s) -> %d row(s)", x.nrows, y.nrows, out.nrows)
    return out


def _concat_rows(x: Table, xs: List[int], y: Table, ys: List[int]) -> Iterable[Tuple]:
    for i in xs:
        yield x.row(i)
    for i in ys:
        yield y.row(i)
