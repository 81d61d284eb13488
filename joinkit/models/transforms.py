from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, Optional, Type, TYPE_CHECKING

from joinkit.engine import JOIN_KINDS, RELATIONSHIPS, JoinEngine, JoinSpec
from joinkit.errors import JoinKitUserError
from joinkit.keys import key_spec_from_params, resolve_keys
from joinkit.layout import merge_layout
from joinkit.models.sources import Source, _source_from_descriptor
from joinkit.setops import intersect, setdiff, union
from joinkit.table import Table
from joinkit.util import TableSchema, _schema_field_names, _schema_from_header

if TYPE_CHECKING:
    from joinkit.models.pipeline import PipelineContext


# ---------------- Transform implementation registry ----------------

class TransformImpl:
    """Internal implementation for a Transform op.

    Users interact with `Transform(op, params)`.
    Implementations are registered by op name and invoked by `Transform.apply`.
    """

    op: str = ""

    @classmethod
    def validate_params(cls, params: Dict[str, Any], input_schema: Optional[TableSchema] = None) -> None:
        # default: no validation
        return

    @classmethod
    def apply(cls, table: Table, *, params: Dict[str, Any], context: "PipelineContext") -> Table:
        raise JoinKitUserError(
            "E_OP_NOT_IMPL",
            f"Transform op '{cls.op}' is not implemented.",
            hint="Implement it as a TransformImpl and register it.",
        )

    @classmethod
    def output_schema(cls, input_schema: Optional[TableSchema], params: Dict[str, Any]) -> Optional[TableSchema]:
        """Infer the output schema given an input schema.

        Return None if the schema cannot be determined statically.
        """
        return input_schema


TRANSFORM_REGISTRY: Dict[str, Type[TransformImpl]] = {}


def register_transform(op: str) -> Callable[[Type[TransformImpl]], Type[TransformImpl]]:
    """Decorator to register a TransformImpl under an op string."""

    def deco(cls: Type[TransformImpl]) -> Type[TransformImpl]:
        cls.op = op
        TRANSFORM_REGISTRY[op] = cls
        return cls

    return deco


def _is_table_ref(value: Any) -> bool:
    return isinstance(value, (Table, Source, dict)) or (isinstance(value, str) and bool(value.strip()))


def _table_from_param(value: Any, *, op: str, name: str) -> Table:
    """Resolve a second-input param: a Table, a Source, or a source descriptor."""
    if isinstance(value, Table):
        return value
    if isinstance(value, Source):
        return value.table()
    try:
        src = _source_from_descriptor(value)
    except JoinKitUserError as e:
        raise JoinKitUserError(
            "E_OP_INPUT",
            f"{op} params.{name} could not be interpreted as a table or source descriptor.",
            hint="Use a Table, a URI string like 'airlines.csv' or a mapping like {'uri': 'airlines.csv'}.",
        ) from e
    try:
        return src.table()
    except JoinKitUserError:
        raise
    except Exception as e:
        raise JoinKitUserError(
            "E_OP_INPUT_READ",
            f"{op} could not read params.{name}.",
            hint="Check the uri/path, type, and options (delimiter/encoding).",
        ) from e


def _header_of_param(value: Any) -> Optional[list]:
    if isinstance(value, Table):
        return list(value.header)
    try:
        src = value if isinstance(value, Source) else _source_from_descriptor(value)
        return _schema_field_names(src.peek_schema())
    except JoinKitUserError:
        return None


def _check_columns_param(op: str, params: Dict[str, Any]) -> None:
    cols = params.get("columns")
    if not isinstance(cols, list) or not cols or not all(isinstance(c, str) and c for c in cols):
        raise JoinKitUserError(
            f"E_{op.upper()}_PARAMS",
            f"{op} requires params.columns as a non-empty list of column names.",
            hint=f"Example: Transform('{op}', params={{'columns': ['year', 'month']}})",
        )


def _check_known_columns(op: str, table: Table, cols) -> None:
    missing = [c for c in cols if not table.has_column(c)]
    if missing:
        raise JoinKitUserError(
            f"E_{op.upper()}_UNKNOWN_COL",
            f"{op} refers to unknown column(s): {missing}.",
            hint="Available columns: " + ", ".join(table.header),
        )


@register_transform("select")
class SelectTransform(TransformImpl):
    @classmethod
    def validate_params(cls, params: Dict[str, Any], input_schema: Optional[TableSchema] = None) -> None:
        _check_columns_param("select", params)

    @classmethod
    def apply(cls, table: Table, *, params: Dict[str, Any], context: "PipelineContext") -> Table:
        _check_known_columns("select", table, params["columns"])
        return table.select(params["columns"])

    @classmethod
    def output_schema(cls, input_schema: Optional[TableSchema], params: Dict[str, Any]) -> Optional[TableSchema]:
        cols = params.get("columns")
        return _schema_from_header(cols) if isinstance(cols, list) else None


@register_transform("drop")
class DropTransform(TransformImpl):
    @classmethod
    def validate_params(cls, params: Dict[str, Any], input_schema: Optional[TableSchema] = None) -> None:
        _check_columns_param("drop", params)

    @classmethod
    def apply(cls, table: Table, *, params: Dict[str, Any], context: "PipelineContext") -> Table:
        _check_known_columns("drop", table, params["columns"])
        return table.drop(params["columns"])

    @classmethod
    def output_schema(cls, input_schema: Optional[TableSchema], params: Dict[str, Any]) -> Optional[TableSchema]:
        names = _schema_field_names(input_schema)
        if names is None:
            return None
        drop = set(params.get("columns") or [])
        return _schema_from_header([n for n in names if n not in drop])


def _join_spec_from_params(params: Dict[str, Any], how: str) -> JoinSpec:
    kwargs: Dict[str, Any] = {"by": key_spec_from_params(params)}
    if params.get("suffix") is not None:
        kwargs["suffix"] = tuple(params["suffix"]) if isinstance(params["suffix"], list) else params["suffix"]
    if "strict_types" in params:
        kwargs["strict_types"] = params["strict_types"]
    if params.get("relationship") is not None:
        kwargs["relationship"] = params["relationship"]
    return JoinSpec(how, **kwargs)


def _require_right(op: str, params: Dict[str, Any]) -> None:
    if not _is_table_ref(params.get("right")):
        raise JoinKitUserError(
            "E_JOIN_PARAMS",
            f"{op} requires params.right as a Table, a URI string or a mapping descriptor.",
            hint=f"Example: Transform('{op}', params={{'right': 'airlines.csv', 'on': ['carrier']}})",
        )


class _KeyedJoin(TransformImpl):
    """Shared implementation for joins; subclasses fix or choose `how`."""

    fixed_how: Optional[str] = None

    @classmethod
    def _how(cls, params: Dict[str, Any]) -> str:
        return cls.fixed_how or params.get("how", "inner")

    @classmethod
    def validate_params(cls, params: Dict[str, Any], input_schema: Optional[TableSchema] = None) -> None:
        _require_right(cls.op, params)
        if cls.fixed_how is None:
            how = params.get("how", "inner")
            if how not in JOIN_KINDS and how != "outer":
                raise JoinKitUserError(
                    "E_JOIN_PARAMS",
                    "join params.how must be one of: " + ", ".join(JOIN_KINDS) + ".",
                    hint="Example: Transform('join', params={..., 'how': 'left'})",
                )
        if params.get("relationship") is not None and params["relationship"] not in RELATIONSHIPS:
            raise JoinKitUserError(
                "E_JOIN_PARAMS",
                f"join params.relationship must be one of: {', '.join(RELATIONSHIPS)}.",
                hint="Example: Transform('join', params={..., 'relationship': 'many-to-one'})",
            )
        _join_spec_from_params(params, cls._how(params))

    @classmethod
    def apply(cls, table: Table, *, params: Dict[str, Any], context: "PipelineContext") -> Table:
        spec = _join_spec_from_params(params, cls._how(params))
        right = _table_from_param(params.get("right"), op=cls.op, name="right")
        engine = JoinEngine(spec)
        out = engine.join(table, right)
        if context is not None:
            context.join_stats.append({"op": cls.op, "how": spec.kind, **asdict(engine.stats)})
        return out

    @classmethod
    def output_schema(cls, input_schema: Optional[TableSchema], params: Dict[str, Any]) -> Optional[TableSchema]:
        left_names = _schema_field_names(input_schema)
        if left_names is None:
            return None
        spec = _join_spec_from_params(params, cls._how(params))
        if spec.is_filtering:
            return _schema_from_header(left_names)
        right_names = _header_of_param(params.get("right"))
        if right_names is None:
            return None
        try:
            left = Table.from_rows(left_names, [])
            right = Table.from_rows(right_names, [])
            layout = merge_layout(left_names, right_names, resolve_keys(left, right, spec.by), spec.suffix)
        except JoinKitUserError:
            return None
        return _schema_from_header(layout.columns)


@register_transform("join")
class JoinTransform(_KeyedJoin):
    pass


@register_transform("filter_in")
class FilterInTransform(_KeyedJoin):
    fixed_how = "semi"


@register_transform("exclude_in")
class ExcludeInTransform(_KeyedJoin):
    fixed_how = "anti"


class _SetOpTransform(TransformImpl):
    fn: Callable[[Table, Table], Table]

    @classmethod
    def validate_params(cls, params: Dict[str, Any], input_schema: Optional[TableSchema] = None) -> None:
        if not _is_table_ref(params.get("other")):
            raise JoinKitUserError(
                "E_SETOP_PARAMS",
                f"{cls.op} requires params.other as a Table, a URI string or a mapping descriptor.",
                hint=f"Example: Transform('{cls.op}', params={{'other': 'flights_2014.csv'}})",
            )

    @classmethod
    def apply(cls, table: Table, *, params: Dict[str, Any], context: "PipelineContext") -> Table:
        other = _table_from_param(params.get("other"), op=cls.op, name="other")
        return cls.fn(table, other)


@register_transform("intersect")
class IntersectTransform(_SetOpTransform):
    fn = staticmethod(intersect)


@register_transform("union")
class UnionTransform(_SetOpTransform):
    fn = staticmethod(union)


@register_transform("setdiff")
class SetdiffTransform(_SetOpTransform):
    fn = staticmethod(setdiff)


@dataclass(frozen=True)
class Transform:
    op: str
    params: Dict[str, Any] = field(default_factory=dict)
    output_schema_override: Optional[TableSchema] = None

    def _impl(self) -> Type[TransformImpl]:
        impl = TRANSFORM_REGISTRY.get(self.op)
        if impl is None:
            raise JoinKitUserError(
                "E_OP_UNKNOWN",
                f"Unknown transform op '{self.op}'.",
                hint="Supported ops: " + ", ".join(sorted(TRANSFORM_REGISTRY.keys())),
            )
        return impl

    def apply(self, table: Table, *, context: "PipelineContext") -> Table:
        impl = self._impl()
        impl.validate_params(self.params, getattr(context, "schema", None))
        return impl.apply(table, params=self.params, context=context)

    def output_schema(self, input_schema: Optional[TableSchema]) -> Optional[TableSchema]:
        if self.output_schema_override is not None:
            return self.output_schema_override
        impl = self._impl()
        impl.validate_params(self.params, input_schema)
        return impl.output_schema(input_schema, self.params)

    def __str__(self) -> str:
        return f"Transform('{self.op}', params={self.params})"


def _transform_from_ir(d: Dict[str, Any]) -> Transform:
    if not isinstance(d, dict):
        raise JoinKitUserError(
            "E_IR_TRANSFORM",
            "IR transform must be a mapping.",
            hint="Example: - transform: {op: join, params: {...}}",
        )
    op = d.get("op")
    if not isinstance(op, str) or not op:
        raise JoinKitUserError(
            "E_IR_TRANSFORM",
            "IR transform requires a non-empty 'op' string.",
            hint="Example: - transform: {op: join, params: {right: airlines.csv, on: [carrier]}}",
        )
    params = d.get("params") or {}
    if not isinstance(params, dict):
        raise JoinKitUserError(
            "E_IR_TRANSFORM",
            "IR transform 'params' must be a mapping.",
            hint="Example: params: {right: airlines.csv, how: left}",
        )
    return Transform(op, params=dict(params), output_schema_override=d.get("output_schema"))
