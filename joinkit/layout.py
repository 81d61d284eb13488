from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

from joinkit.errors import JoinKitUserError, UnresolvableNameCollisionError
from joinkit.keys import KeyMapping

DEFAULT_SUFFIX: Tuple[str, str] = ("_x", "_y")


@dataclass(frozen=True)
class JoinLayout:
    """Output column layout of a mutating join.

    `left_names` / `right_names` map each non-key input column to its output name.
    """
    columns: Tuple[str, ...]
    key_names: Tuple[str, ...]
    left_names: Dict[str, str]
    right_names: Dict[str, str]

    def rename_table(self) -> Dict[Tuple[str, str], str]:
        out: Dict[Tuple[str, str], str] = {}
        for k in self.key_names:
            out[("left", k)] = k
        for c, n in self.left_names.items():
            out[("left", c)] = n
        for c, n in self.right_names.items():
            out[("right", c)] = n
        return out


def _check_suffix(suffix: Sequence[str]) -> Tuple[str, str]:
    if not (isinstance(suffix, (list, tuple)) and len(suffix) == 2 and all(isinstance(s, str) for s in suffix)):
        raise JoinKitUserError(
            "E_JOIN_PARAMS",
            "join suffix must be a pair of strings.",
            hint="Example: suffix=('_flights', '_planes')",
        )
    if suffix[0] == suffix[1]:
        raise JoinKitUserError(
            "E_JOIN_PARAMS",
            f"join suffixes must differ, got {tuple(suffix)!r}.",
            hint="Example: suffix=('_x', '_y')",
        )
    return suffix[0], suffix[1]


def merge_layout(
    left_header: Sequence[str],
    right_header: Sequence[str],
    mapping: KeyMapping,
    suffix: Sequence[str] = DEFAULT_SUFFIX,
) -> JoinLayout:
    sx, sy = _check_suffix(suffix)
    left_keys = [l for l, _ in mapping]
    right_keys = {r for _, r in mapping}

    left_rest = [c for c in left_header if c not in left_keys]
    right_rest = [c for c in right_header if c not in right_keys]
    clash = set(left_rest) & set(right_rest)

    left_names = {c: (c + sx if c in clash else c) for c in left_rest}
    # a right column may also shadow a key kept under its left name
    right_names = {c: (c + sy if c in clash or c in left_keys else c) for c in right_rest}

    columns = tuple(left_keys) + tuple(left_names.values()) + tuple(right_names.values())
    seen = set()
    for c in columns:
        if c in seen:
            raise UnresolvableNameCollisionError(c, (sx, sy))
        seen.add(c)

    return JoinLayout(
        columns=columns,
        key_names=tuple(left_keys),
        left_names=left_names,
        right_names=right_names,
    )


def filter_layout(left_header: Sequence[str]) -> Tuple[str, ...]:
    return tuple(left_header)
