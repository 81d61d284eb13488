from __future__ import annotations

import math
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Dict, Any, List, Sequence, Tuple


class _Missing:
    """The missing-value marker. There is exactly one instance: MISSING."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NA"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Missing, ())


MISSING = _Missing()


def is_missing(v: Any) -> bool:
    if v is MISSING or v is None:
        return True
    return isinstance(v, float) and math.isnan(v)


def normalize_value(v: Any) -> Any:
    """Map None/NaN to MISSING; leave every other scalar alone."""
    return MISSING if is_missing(v) else v


def scalar_kind(v: Any) -> str:
    if is_missing(v):
        return "missing"
    if isinstance(v, bool):
        return "boolean"
    if isinstance(v, (int, float)):
        return "number"
    if isinstance(v, str):
        return "string"
    # datetime is a subclass of date
    if isinstance(v, datetime):
        return "datetime"
    if isinstance(v, date):
        return "date"
    return type(v).__name__


def tagged(v: Any) -> Tuple[str, Any]:
    # bool hashes equal to int, so the kind tag keeps True and 1 apart
    return (scalar_kind(v), MISSING if is_missing(v) else v)


def row_identity(values: Sequence[Any]) -> Tuple[Tuple[str, Any], ...]:
    """Hashable whole-row identity. Missing equals missing here."""
    return tuple(tagged(v) for v in values)


def _is_probably_url(s: str) -> bool:
    return s.startswith("http://") or s.startswith("https://") or s.startswith("s3://")


def _norm_path(p: str, *, base_dir: Optional[Path]) -> str:
    """Normalize a URI/path relative to a base directory (when provided).

    - Leaves absolute paths and URLs unchanged.
    - If base_dir is provided and p is relative, returns an absolute resolved path.
    """
    if not isinstance(p, str) or not p:
        return p
    if _is_probably_url(p):
        return p
    pp = Path(p)
    if pp.is_absolute():
        return str(pp)
    if base_dir is None:
        return p
    return str((base_dir / pp).resolve())


def _infer_type_from_uri(uri: str) -> Optional[str]:
    ext = Path(uri).suffix.lower()
    if ext == ".csv":
        return "csv"
    return None


TableSchema = Dict[str, Any]


def _schema_from_header(header: Sequence[str]) -> TableSchema:
    return {"fields": [{"name": h} for h in header]}


def _schema_field_names(schema: Optional[TableSchema]) -> Optional[List[str]]:
    """Field names of a {"fields": [...]} schema, or None when unknown."""
    if not schema or not isinstance(schema, dict):
        return None
    fields = schema.get("fields")
    if not isinstance(fields, list) or not fields:
        return None
    out: List[str] = []
    for f in fields:
        if isinstance(f, dict) and isinstance(f.get("name"), str):
            out.append(f["name"])
    return out
