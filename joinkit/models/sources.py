from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple, TYPE_CHECKING

import petl as etl

from joinkit.errors import JoinKitUserError
from joinkit.table import Table
from joinkit.util import _infer_type_from_uri, _is_probably_url, _schema_from_header, TableSchema

if TYPE_CHECKING:
    from joinkit.models.pipeline import Pipeline

DEFAULT_NA_VALUES: Tuple[str, ...] = ("", "NA")


@dataclass(frozen=True)
class Source:
    uri: str
    type: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)
    na_values: Tuple[str, ...] = DEFAULT_NA_VALUES

    # --- UX controls (bounded by design) ---
    preview_rows: int = 5
    preview_max_chars: int = 6_000  # prevent huge terminal spam

    def __post_init__(self) -> None:
        object.__setattr__(self, "uri", str(self.uri))
        object.__setattr__(self, "na_values", tuple(self.na_values))
        inferred = self.type or _infer_type_from_uri(self.uri)
        object.__setattr__(self, "type", inferred)

        if self.type is None:
            raise JoinKitUserError(
                "E_SOURCE_TYPE_INFER",
                f"Could not infer Source type from uri='{self.uri}'.",
                hint="Provide type explicitly, e.g. Source('flights.txt', type='csv').",
            )

        if self.type != "csv":
            raise JoinKitUserError(
                "E_SOURCE_TYPE_UNSUPPORTED",
                f"Source type '{self.type}' is not supported.",
                hint="Currently supported source types: csv.",
            )

    def preflight(self) -> None:
        if _is_probably_url(self.uri):
            return
        if not os.path.isfile(self.uri):
            raise JoinKitUserError(
                "E_SOURCE_NOT_FOUND",
                f"Source file does not exist: '{self.uri}'.",
                hint="Check the path. Relative paths in YAML are resolved against the YAML file's folder.",
            )

    def _petl(self):
        # PETL fromcsv supports kwargs like delimiter, encoding, etc.
        return etl.fromcsv(self.uri, **self.options)

    def table(self) -> Table:
        """Read the whole source into an immutable Table."""
        self.preflight()
        try:
            return Table.from_petl(self._petl(), na_values=self.na_values)
        except JoinKitUserError:
            raise
        except Exception as e:
            raise JoinKitUserError(
                "E_SOURCE_READ",
                f"Could not read source '{self.uri}': {type(e).__name__}: {e}",
                hint="Check the file and Source options (delimiter/encoding).",
            ) from e

    # ---------- Peepholes / inspection ----------
    def head(self, n: Optional[int] = None) -> Table:
        n = n or self.preview_rows
        self.preflight()
        return Table.from_petl(etl.head(self._petl(), n), na_values=self.na_values)

    def _preview_str(self) -> str:
        """
        Bounded preview string. Does NOT load full dataset.
        """
        s = str(self.head(self.preview_rows))
        if len(s) > self.preview_max_chars:
            s = s[: self.preview_max_chars] + "\n… (truncated)"
        return s

    def peek_schema(self) -> TableSchema:
        """Column names from the header row only."""
        self.preflight()
        try:
            hdr = list(etl.header(self._petl()))
        except Exception as e:
            raise JoinKitUserError(
                "E_SOURCE_READ_HEADER",
                f"Could not read the header of '{self.uri}': {e}",
                hint="Ensure the source is tabular and readable (CSV delimiter/encoding).",
            ) from e
        return _schema_from_header(hdr)

    def __str__(self) -> str:
        return f'Source("{self.uri}")  kind={self.type}\nPreview:\n' + self._preview_str()

    # ---------- Pipeline composition ----------
    def __gt__(self, other: Any) -> "Pipeline":
        """
        Source > Transform or Source > Sink creates a Pipeline.
        (Do NOT encourage chained a > b > c in one expression; Python chains comparisons.)
        """
        from joinkit.models.pipeline import Pipeline
        return Pipeline(self).then(other)


def _source_from_descriptor(desc: Any) -> Source:
    """Build a Source from a URI string or a {uri, type, options} mapping."""
    if isinstance(desc, str) and desc.strip():
        return Source(desc)
    if isinstance(desc, dict):
        uri = desc.get("uri")
        if not isinstance(uri, str) or not uri:
            raise JoinKitUserError(
                "E_SOURCE_DESCRIPTOR",
                "A source mapping must include a non-empty 'uri' string.",
                hint="Example: {'uri': 'airlines.csv', 'options': {'delimiter': ','}}",
            )
        kwargs: Dict[str, Any] = {"type": desc.get("type"), "options": desc.get("options") or {}}
        if desc.get("na_values") is not None:
            kwargs["na_values"] = tuple(desc["na_values"])
        return Source(uri, **kwargs)
    raise JoinKitUserError(
        "E_SOURCE_DESCRIPTOR",
        "A source must be a URI string or a mapping descriptor.",
        hint="Example: 'airlines.csv' or {'uri': 'airlines.csv'}",
    )
