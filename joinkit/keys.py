"""Key resolution: turn a user's key specification into an ordered key mapping.

Three forms are recognized:

* ``Natural()``          - every column name present in both tables, in left order
* ``ByNames(names)``     - the given names, matched to the same name on both sides
* ``ByPairs(pairs)``     - explicit ``(left, right)`` name pairs
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from joinkit.errors import JoinKitUserError, NoCommonColumnsError, UnknownColumnError
from joinkit.table import Table

logger = logging.getLogger(__name__)

KeyMapping = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class Natural:
    pass


@dataclass(frozen=True)
class ByNames:
    names: Tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "names", tuple(self.names))
        _check_names(self.names, "by")


@dataclass(frozen=True)
class ByPairs:
    pairs: Tuple[Tuple[str, str], ...]

    def __post_init__(self) -> None:
        pairs = []
        for p in self.pairs:
            if not (isinstance(p, (tuple, list)) and len(p) == 2):
                raise JoinKitUserError(
                    "E_JOIN_PARAMS",
                    f"Key pair {p!r} must be a (left, right) pair of column names.",
                    hint="Example: by={'carrier': 'code'} or by=[('carrier', 'code')]",
                )
            pairs.append((p[0], p[1]))
        object.__setattr__(self, "pairs", tuple(pairs))
        # left names become output key columns; a right column may back several of them
        _check_names([l for l, _ in pairs], "left keys")
        _check_names([r for _, r in pairs], "right keys", unique=False)


KeySpec = Union[Natural, ByNames, ByPairs]


def _check_names(names: Sequence[Any], what: str, unique: bool = True) -> None:
    if not names or not all(isinstance(n, str) and n for n in names):
        raise JoinKitUserError(
            "E_JOIN_PARAMS",
            f"join {what} must be a non-empty list of column name strings.",
            hint="Example: by=['year', 'month', 'day']",
        )
    dup = sorted({n for n in names if list(names).count(n) > 1})
    if unique and dup:
        raise JoinKitUserError(
            "E_JOIN_PARAMS",
            f"join {what} name the same column more than once: {dup}.",
            hint="List each key column once.",
        )


def as_key_spec(by: Any) -> KeySpec:
    """Coerce the loose `by=` forms callers pass into a KeySpec."""
    if by is None:
        return Natural()
    if isinstance(by, (Natural, ByNames, ByPairs)):
        return by
    if isinstance(by, str):
        return ByNames((by,))
    if isinstance(by, dict):
        return ByPairs(tuple(by.items()))
    if isinstance(by, (list, tuple)):
        if by and all(isinstance(x, str) for x in by):
            return ByNames(tuple(by))
        if by and all(isinstance(x, (list, tuple)) for x in by):
            return ByPairs(tuple(tuple(x) for x in by))
    raise JoinKitUserError(
        "E_JOIN_PARAMS",
        f"Cannot interpret join keys {by!r}.",
        hint="Use None (natural join), a column name, a list of names, or a {left: right} mapping.",
    )


def key_spec_from_params(params: Dict[str, Any]) -> KeySpec:
    """Read `on` or `left_on`/`right_on` from transform params."""
    on = params.get("on")
    left_on = params.get("left_on")
    right_on = params.get("right_on")

    if on is not None:
        if left_on is not None or right_on is not None:
            raise JoinKitUserError(
                "E_JOIN_PARAMS",
                "join accepts either params.on OR params.left_on/params.right_on, not both.",
                hint="Use params.on when the key names are the same on both sides.",
            )
        if isinstance(on, str):
            on = [on]
        if not isinstance(on, list):
            raise JoinKitUserError(
                "E_JOIN_PARAMS",
                "join params.on must be a non-empty list of column name strings.",
                hint="Example: params={'right': 'airlines.csv', 'on': ['carrier']}",
            )
        return ByNames(tuple(on))

    if left_on is None and right_on is None:
        return Natural()

    if left_on is None or right_on is None:
        raise JoinKitUserError(
            "E_JOIN_PARAMS",
            "join requires both params.left_on and params.right_on when either is given.",
            hint="Example: params={'right': 'airports.csv', 'left_on': ['dest'], 'right_on': ['faa']}",
        )
    if isinstance(left_on, str):
        left_on = [left_on]
    if isinstance(right_on, str):
        right_on = [right_on]
    if not isinstance(left_on, list) or not left_on:
        raise JoinKitUserError(
            "E_JOIN_PARAMS",
            "join params.left_on must be a non-empty list of column name strings.",
            hint="Example: left_on: ['dest']",
        )
    if not isinstance(right_on, list) or not right_on:
        raise JoinKitUserError(
            "E_JOIN_PARAMS",
            "join params.right_on must be a non-empty list of column name strings.",
            hint="Example: right_on: ['faa']",
        )
    if len(left_on) != len(right_on):
        raise JoinKitUserError(
            "E_JOIN_PARAMS",
            "join params.left_on and params.right_on must be the same length.",
            hint=f"Got left_on={left_on} and right_on={right_on}.",
        )
    return ByPairs(tuple(zip(left_on, right_on)))


def key_spec_to_params(spec: KeySpec) -> Dict[str, Any]:
    if isinstance(spec, ByNames):
        return {"on": list(spec.names)}
    if isinstance(spec, ByPairs):
        return {"left_on": [l for l, _ in spec.pairs], "right_on": [r for _, r in spec.pairs]}
    return {}


def resolve_keys(left: Table, right: Table, spec: Optional[KeySpec] = None) -> KeyMapping:
    spec = as_key_spec(spec)

    if isinstance(spec, Natural):
        common = tuple(c for c in left.header if right.has_column(c))
        if not common:
            raise NoCommonColumnsError(left.header, right.header)
        logger.info("Joining by natural keys: %s", ", ".join(common))
        return tuple((c, c) for c in common)

    if isinstance(spec, ByNames):
        pairs = tuple((n, n) for n in spec.names)
    else:
        pairs = spec.pairs

    for l, r in pairs:
        if not left.has_column(l):
            raise UnknownColumnError(l, "left", left.header)
        if not right.has_column(r):
            raise UnknownColumnError(r, "right", right.header)
    return pairs
