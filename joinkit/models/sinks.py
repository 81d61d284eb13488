from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import logging
import os

import petl as etl

from joinkit.errors import JoinKitUserError
from joinkit.table import Table
from joinkit.util import _infer_type_from_uri

logger = logging.getLogger(__name__)

SINK_TYPES = ("csv",)


@dataclass(frozen=True)
class Sink:
    """CSV destination for a Table.

    `na_value` is the text written for missing values (empty by default), so
    a file written with `na_value="NA"` reads back with the default Source
    na_values.
    """
    uri: str
    type: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)
    na_value: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "uri", str(self.uri))
        object.__setattr__(self, "type", self.type or _infer_type_from_uri(self.uri))
        if self.type is None:
            raise JoinKitUserError(
                "E_SINK_TYPE_INFER",
                f"Could not infer Sink type from uri='{self.uri}'.",
                hint="Provide type explicitly, e.g. Sink('out.data', type='csv').",
            )
        if self.type not in SINK_TYPES:
            raise JoinKitUserError(
                "E_SINK_TYPE_UNSUPPORTED",
                f"Sink type '{self.type}' is not supported.",
                hint="Supported sink types: " + ", ".join(SINK_TYPES),
            )
        if not isinstance(self.na_value, str):
            raise JoinKitUserError(
                "E_SINK_NA_VALUE",
                f"Sink na_value must be a string, got {self.na_value!r}.",
                hint="Example: Sink('out.csv', na_value='NA')",
            )

        self.preflight()

    def preflight(self) -> None:
        """The output directory must exist and be writable."""
        parent = os.path.dirname(self.uri) or "."
        if not os.path.isdir(parent):
            raise JoinKitUserError(
                "E_SINK_DIR_NOT_FOUND",
                f"Output directory does not exist: '{parent}'.",
                hint="Create the directory or choose a different output path.",
            )
        if not os.access(parent, os.W_OK):
            raise JoinKitUserError(
                "E_SINK_NOT_WRITABLE",
                f"Output directory is not writable: '{parent}'.",
                hint="Check permissions or choose a different output location.",
            )

    def write(self, table: Table) -> None:
        # the directory may have changed since construction
        self.preflight()
        view = table.to_petl()
        if self.na_value:
            view = etl.replaceall(view, None, self.na_value)
        try:
            etl.tocsv(view, self.uri, **self.options)
        except Exception as e:
            raise JoinKitUserError(
                "E_SINK_WRITE",
                f"Could not write {table.nrows} row(s) to '{self.uri}': {type(e).__name__}: {e}",
                hint="Check Sink options (delimiter/encoding) and that the file is not locked.",
            ) from e
        logger.debug("wrote %d row(s) to %s", table.nrows, self.uri)

    def __str__(self) -> str:
        return f'Sink("{self.uri}")  kind={self.type}'
