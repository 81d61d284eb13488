"""Key-based hash joins over immutable tables.

Mutating joins (inner, left, right, full) add the right table's columns to the
left table; filtering joins (semi, anti) keep or drop left rows depending on
whether a match exists.

Row order is left-driven: left rows keep their order, multiple matches for one
left row appear together in right-table order, and right-only rows (right and
full joins) follow in right-table order.

Missing key values never match anything, including another missing value.
When both sides repeat a key, every pairing is emitted (Cartesian expansion).
An inner join silently drops rows with no counterpart on either side.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from joinkit.errors import JoinKitUserError, RelationshipError, TypeMismatchError
from joinkit.keys import KeyMapping, as_key_spec, resolve_keys
from joinkit.layout import DEFAULT_SUFFIX, JoinLayout, _check_suffix, filter_layout, merge_layout
from joinkit.table import Table
from joinkit.util import MISSING, is_missing, scalar_kind, tagged

logger = logging.getLogger(__name__)

JOIN_KINDS: Tuple[str, ...] = ("inner", "left", "right", "full", "semi", "anti")
FILTERING_KINDS = frozenset({"semi", "anti"})
_KIND_ALIASES = {"outer": "full"}

RELATIONSHIPS: Tuple[str, ...] = ("one-to-one", "one-to-many", "many-to-one", "many-to-many")

Key = Tuple[Tuple[str, Any], ...]


@dataclass(frozen=True)
class JoinSpec:
    kind: str = "inner"
    by: Any = None
    suffix: Tuple[str, str] = DEFAULT_SUFFIX
    strict_types: bool = True
    relationship: Optional[str] = None

    def __post_init__(self) -> None:
        kind = _KIND_ALIASES.get(self.kind, self.kind)
        if kind not in JOIN_KINDS:
            raise JoinKitUserError(
                "E_JOIN_PARAMS",
                f"Unknown join kind {self.kind!r}; expected one of: {', '.join(JOIN_KINDS)}.",
                hint="Example: JoinSpec('left', by='carrier')",
            )
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "by", as_key_spec(self.by))
        object.__setattr__(self, "suffix", _check_suffix(self.suffix))
        if not isinstance(self.strict_types, bool):
            raise JoinKitUserError(
                "E_JOIN_PARAMS",
                "join strict_types must be a boolean.",
                hint="Example: JoinSpec('inner', by='id', strict_types=False)",
            )
        if self.relationship is not None and self.relationship not in RELATIONSHIPS:
            raise JoinKitUserError(
                "E_JOIN_PARAMS",
                f"Unknown join relationship {self.relationship!r}.",
                hint="Supported: " + ", ".join(RELATIONSHIPS),
            )

    @property
    def is_filtering(self) -> bool:
        return self.kind in FILTERING_KINDS


@dataclass
class JoinStats:
    left_rows: int = 0
    right_rows: int = 0
    output_rows: int = 0
    matched_left: int = 0
    matched_right: int = 0
    many_to_many_keys: int = 0


@dataclass
class _Plan:
    mapping: KeyMapping
    columns: Tuple[str, ...]
    layout: Optional[JoinLayout]
    left_keys: List[Optional[Key]]
    index: Dict[Key, List[int]]
    stats: JoinStats
    right_matched: Set[int] = field(default_factory=set)


def _key_of(row: Sequence[Any], positions: Sequence[int]) -> Optional[Key]:
    vals = [row[i] for i in positions]
    if any(is_missing(v) for v in vals):
        return None
    return tuple(tagged(v) for v in vals)


def _column_kinds(values: Sequence[Any]) -> Set[str]:
    return {scalar_kind(v) for v in values if not is_missing(v)}


def check_key_types(left: Table, right: Table, mapping: KeyMapping) -> None:
    """Raise TypeMismatchError when a key pair's values can never compare equal."""
    mismatches = []
    for lk, rk in mapping:
        lt = _column_kinds(left.column(lk))
        rt = _column_kinds(right.column(rk))
        if lt and rt and not (lt & rt):
            mismatches.append((lk, rk, "/".join(sorted(lt)), "/".join(sorted(rt))))
    if mismatches:
        raise TypeMismatchError(mismatches)


class JoinEngine:
    """Executes one JoinSpec. `stats` is the JoinStats of the most recently planned run.

    Every run owns its JoinStats; a lazy iterator fills in `output_rows` of its own run when drained.
    """

    def __init__(self, spec: Optional[JoinSpec] = None):
        self.spec = spec or JoinSpec()
        self.stats: Optional[JoinStats] = None

    def _plan(self, left: Table, right: Table) -> _Plan:
        spec = self.spec
        mapping = resolve_keys(left, right, spec.by)
        if spec.strict_types:
            check_key_types(left, right, mapping)

        if spec.is_filtering:
            layout = None
            columns = filter_layout(left.header)
        else:
            layout = merge_layout(left.header, right.header, mapping, spec.suffix)
            columns = layout.columns

        lpos = [left.index_of(l) for l, _ in mapping]
        rpos = [right.index_of(r) for _, r in mapping]

        index: Dict[Key, List[int]] = {}
        for j, row in enumerate(right.rows()):
            k = _key_of(row, rpos)
            if k is not None:
                index.setdefault(k, []).append(j)

        left_keys = [_key_of(row, lpos) for row in left.rows()]

        stats = JoinStats(left_rows=left.nrows, right_rows=right.nrows)
        left_counts: Dict[Key, int] = {}
        for k in left_keys:
            if k is not None and k in index:
                left_counts[k] = left_counts.get(k, 0) + 1
        stats.matched_left = sum(left_counts.values())
        stats.matched_right = sum(len(index[k]) for k in left_counts)
        m2m = [k for k, n in left_counts.items() if n > 1 and len(index[k]) > 1]
        stats.many_to_many_keys = len(m2m)

        if not spec.is_filtering:
            self._check_relationship(left_counts, index, m2m)

        self.stats = stats
        return _Plan(
            mapping=mapping, columns=columns, layout=layout, left_keys=left_keys, index=index, stats=stats,
        )

    def _check_relationship(self, left_counts: Dict[Key, int], index: Dict[Key, List[int]], m2m: List[Key]) -> None:
        rel = self.spec.relationship
        if rel is None:
            if m2m:
                logger.warning(
                    "Many-to-many %s join: %d key combination(s) repeat on both sides and expand to every pairing. "
                    "Pass relationship='many-to-many' if this is expected.",
                    self.spec.kind, len(m2m),
                )
            return
        if rel in ("one-to-one", "many-to-one"):
            for k in left_counts:
                if len(index[k]) > 1:
                    raise RelationshipError(rel, "right", tuple(v for _, v in k))
        if rel in ("one-to-one", "one-to-many"):
            for k, n in left_counts.items():
                if n > 1:
                    raise RelationshipError(rel, "left", tuple(v for _, v in k))

    def iter_rows(self, left: Table, right: Table) -> Tuple[Tuple[str, ...], Iterator[Tuple[Any, ...]]]:
        """Validate and index eagerly, then return (header, lazy row iterator)."""
        plan = self._plan(left, right)
        if self.spec.is_filtering:
            return plan.columns, self._filter_rows(left, plan)
        return plan.columns, self._mutate_rows(left, right, plan)

    def _filter_rows(self, left: Table, plan: _Plan) -> Iterator[Tuple[Any, ...]]:
        keep = self.spec.kind == "semi"
        n = 0
        for row, k in zip(left.rows(), plan.left_keys):
            if (k is not None and k in plan.index) == keep:
                n += 1
                yield row
        plan.stats.output_rows = n

    def _mutate_rows(self, left: Table, right: Table, plan: _Plan) -> Iterator[Tuple[Any, ...]]:
        kind = self.spec.kind
        layout = plan.layout
        lkey = [left.index_of(l) for l, _ in plan.mapping]
        rkey = [right.index_of(r) for _, r in plan.mapping]
        lrest = [left.index_of(c) for c in layout.left_names]
        rrest = [right.index_of(c) for c in layout.right_names]
        right_rows = list(right.rows())
        no_left = (MISSING,) * len(lrest)
        no_right = (MISSING,) * len(rrest)
        keep_left = kind in ("left", "full")
        keep_right = kind in ("right", "full")

        n = 0
        matched: Set[int] = plan.right_matched
        for row, k in zip(left.rows(), plan.left_keys):
            keys = tuple(row[i] for i in lkey)
            lvals = tuple(row[i] for i in lrest)
            hits = plan.index.get(k, ()) if k is not None else ()
            for j in hits:
                rrow = right_rows[j]
                matched.add(j)
                n += 1
                yield keys + lvals + tuple(rrow[i] for i in rrest)
            if not hits and keep_left:
                n += 1
                yield keys + lvals + no_right

        if keep_right:
            for j, rrow in enumerate(right_rows):
                if j in matched:
                    continue
                n += 1
                yield tuple(rrow[i] for i in rkey) + no_left + tuple(rrow[i] for i in rrest)

        stats = plan.stats
        stats.output_rows = n
        if kind == "inner":
            logger.debug(
                "inner join dropped %d of %d left row(s) and %d of %d right row(s) without a match",
                stats.left_rows - stats.matched_left, stats.left_rows,
                stats.right_rows - len(matched), stats.right_rows,
            )

    def join(self, left: Table, right: Table) -> Table:
        header, rows = self.iter_rows(left, right)
        out = Table.from_rows(header, rows)
        logger.debug(
            "%s join: %d x %d row(s) -> %d row(s)",
            self.spec.kind, left.nrows, right.nrows, out.nrows,
        )
        return out


def join(left: Table, right: Table, kind: str = "inner", by: Any = None, **options: Any) -> Table:
    return JoinEngine(JoinSpec(kind, by, **options)).join(left, right)


def iter_join(left: Table, right: Table, kind: str = "inner", by: Any = None, **options: Any):
    """Streaming variant of `join`: returns (header, row iterator).

    Key resolution and type checks run before this returns; rows are produced on demand.
    """
    return JoinEngine(JoinSpec(kind, by, **options)).iter_rows(left, right)


def inner_join(left: Table, right: Table, by: Any = None, **options: Any) -> Table:
    return join(left, right, "inner", by, **options)


def left_join(left: Table, right: Table, by: Any = None, **options: Any) -> Table:
    return join(left, right, "left", by, **options)


def right_join(left: Table, right: Table, by: Any = None, **options: Any) -> Table:
    return join(left, right, "right", by, **options)


def full_join(left: Table, right: Table, by: Any = None, **options: Any) -> Table:
    return join(left, right, "full", by, **options)


def semi_join(left: Table, right: Table, by: Any = None, **options: Any) -> Table:
    return join(left, right, "semi", by, **options)


def anti_join(left: Table, right: Table, by: Any = None, **options: Any) -> Table:
    return join(left, right, "anti", by, **options)
