from __future__ import annotations

from typing import Optional, Sequence, Tuple


class JoinKitUserError(Exception):
    """An instructional error intended for end users.

    Use this for mistakes in a join or pipeline definition (invalid params, missing columns, etc.).
    It carries a short error code and an optional hint to guide the user.
    """

    def __init__(self, code: str, message: str, *, hint: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.hint:
            return base + f"\nHint: {self.hint}"
        return base


class UnknownColumnError(JoinKitUserError):
    def __init__(self, column: str, side: str, available: Sequence[str]):
        self.column = column
        self.side = side
        self.available = tuple(available)
        super().__init__(
            "E_UNKNOWN_COLUMN",
            f"Key column '{column}' not found in the {side} table.",
            hint="Available columns: " + (", ".join(self.available) or "(none)")
                 + ". Check spelling/case. If key names differ, use left_on/right_on.",
        )


class NoCommonColumnsError(JoinKitUserError):
    def __init__(self, left_columns: Sequence[str], right_columns: Sequence[str]):
        self.left_columns = tuple(left_columns)
        self.right_columns = tuple(right_columns)
        super().__init__(
            "E_NO_COMMON_COLUMNS",
            "Natural join found no column names shared by both tables.",
            hint=f"left={list(self.left_columns)} right={list(self.right_columns)}. "
                 "Pass the keys explicitly, e.g. by={'carrier': 'code'}.",
        )


class SchemaMismatchError(JoinKitUserError):
    def __init__(self, op: str, left_columns: Sequence[str], right_columns: Sequence[str]):
        self.op = op
        self.left_columns = tuple(left_columns)
        self.right_columns = tuple(right_columns)
        only_left = [c for c in self.left_columns if c not in self.right_columns]
        only_right = [c for c in self.right_columns if c not in self.left_columns]
        if only_left or only_right:
            detail = f"only in x: {only_left}; only in y: {only_right}"
        else:
            detail = f"same columns in a different order: x={list(self.left_columns)} y={list(self.right_columns)}"
        super().__init__(
            "E_SCHEMA_MISMATCH",
            f"{op} requires both tables to have identical columns ({detail}).",
            hint="Use select/drop to align both tables before a set operation.",
        )


class TypeMismatchError(JoinKitUserError):
    def __init__(self, mismatches: Sequence[Tuple[str, str, str, str]]):
        self.mismatches = tuple(mismatches)
        parts = [f"{lk!r}->{rk!r}: left holds {lt}, right holds {rt}" for (lk, rk, lt, rt) in self.mismatches]
        super().__init__(
            "E_KEY_TYPE_MISMATCH",
            "join key type mismatch (these keys could never match).",
            hint="; ".join(parts) + ". Fix by converting one side before the join, or set strict_types=False.",
        )


class UnresolvableNameCollisionError(JoinKitUserError):
    def __init__(self, column: str, suffix: Tuple[str, str]):
        self.column = column
        self.suffix = suffix
        super().__init__(
            "E_NAME_COLLISION",
            f"Output column name '{column}' is produced more than once.",
            hint=f"Suffixes {suffix!r} still collide with an existing column. "
                 "Rename the column or pass a different suffix.",
        )


class RelationshipError(JoinKitUserError):
    def __init__(self, relationship: str, side: str, key: Tuple):
        self.relationship = relationship
        self.side = side
        self.key = key
        super().__init__(
            "E_JOIN_RELATIONSHIP",
            f"Expected a {relationship} relationship, but key {key!r} matches multiple rows in the {side} table.",
            hint="Deduplicate the keys first, or relax the relationship (e.g. relationship='many-to-many').",
        )


class DuplicateColumnError(JoinKitUserError):
    def __init__(self, column: str):
        self.column = column
        super().__init__(
            "E_TABLE_DUPLICATE_COLUMN",
            f"Column name '{column}' appears more than once.",
            hint="Column names within a table must be unique.",
        )


class RaggedColumnsError(JoinKitUserError):
    def __init__(self, lengths):
        self.lengths = dict(lengths)
        super().__init__(
            "E_TABLE_RAGGED",
            "All columns of a table must have the same length.",
            hint="Column lengths: " + ", ".join(f"{k}={v}" for k, v in self.lengths.items()),
        )
