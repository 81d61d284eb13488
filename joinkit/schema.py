from __future__ import annotations

from pathlib import Path
from typing import Dict, Any, Optional, List

from joinkit.errors import JoinKitUserError
from joinkit.models.sinks import Sink
from joinkit.models.sources import DEFAULT_NA_VALUES, Source
from joinkit.models.transforms import Transform
from joinkit.table import Table
from joinkit.util import _norm_path

IR_VERSION = 0

# Params holding a second input table; their URIs are path-normalized like start/sink.
_TABLE_PARAMS = ("right", "other")


def _source_to_ir(src: Source) -> Dict[str, Any]:
    d: Dict[str, Any] = {"uri": src.uri}
    if src.type is not None:
        d["type"] = src.type
    if src.options:
        d["options"] = dict(src.options)
    if src.na_values != DEFAULT_NA_VALUES:
        d["na_values"] = list(src.na_values)
    return d


def _sink_to_ir(sink: Sink) -> Dict[str, Any]:
    d: Dict[str, Any] = {"uri": sink.uri}
    if sink.type is not None:
        d["type"] = sink.type
    if sink.options:
        d["options"] = dict(sink.options)
    if sink.na_value:
        d["na_value"] = sink.na_value
    return d


def _param_to_ir(name: str, value: Any) -> Any:
    if isinstance(value, Source):
        return _source_to_ir(value)
    if isinstance(value, Table):
        raise JoinKitUserError(
            "E_IR_TABLE_PARAM",
            f"params.{name} holds an in-memory Table, which cannot be serialized.",
            hint="Save the table to CSV (Sink) and reference it by uri instead.",
        )
    if isinstance(value, tuple):
        return list(value)
    return value


def _transform_to_ir(t: Transform) -> Dict[str, Any]:
    d: Dict[str, Any] = {"op": t.op}
    if t.params:
        d["params"] = {k: _param_to_ir(k, v) for k, v in t.params.items()}
    if t.output_schema_override is not None:
        d["output_schema"] = t.output_schema_override
    return d


def _source_from_ir(d: Dict[str, Any]) -> Source:
    if not isinstance(d, dict):
        raise JoinKitUserError(
            "E_IR_SOURCE",
            "IR source must be a mapping.",
            hint="Example: start: {uri: flights.csv, type: csv}",
        )
    uri = d.get("uri")
    if not isinstance(uri, str) or not uri:
        raise JoinKitUserError(
            "E_IR_SOURCE",
            "IR source requires a non-empty 'uri' string.",
            hint="Example: start: {uri: flights.csv}",
        )
    kwargs: Dict[str, Any] = {"type": d.get("type"), "options": d.get("options") or {}}
    if d.get("na_values") is not None:
        kwargs["na_values"] = tuple(d["na_values"])
    return Source(uri, **kwargs)


def _sink_from_ir(d: Dict[str, Any]) -> Sink:
    if not isinstance(d, dict):
        raise JoinKitUserError(
            "E_IR_SINK",
            "IR sink must be a mapping.",
            hint="Example: {sink: {uri: out.csv}}",
        )
    uri = d.get("uri")
    if not isinstance(uri, str) or not uri:
        raise JoinKitUserError(
            "E_IR_SINK",
            "IR sink requires a non-empty 'uri' string.",
            hint="Example: {sink: {uri: out.csv}}",
        )
    return Sink(
        uri,
        type=d.get("type"),
        options=d.get("options") or {},
        na_value=d.get("na_value", ""),
    )


def _norm_table_param(value: Any, *, base_dir: Optional[Path]) -> Any:
    if isinstance(value, str):
        return _norm_path(value, base_dir=base_dir)
    if isinstance(value, dict):
        v2: Dict[str, Any] = dict(value)
        u = v2.get("uri")
        if isinstance(u, str):
            v2["uri"] = _norm_path(u, base_dir=base_dir)
        if "options" in v2 and v2["options"] is None:
            v2["options"] = {}
        return v2
    return value


def _normalize_ir(ir: Any, *, base_dir: Optional[Path]) -> Dict[str, Any]:
    """Normalize IR structure and paths.

    Guarantees:
      - returns a dict with keys: joinkit, pipeline
      - pipeline.start.uri is normalized
      - any sink.uri is normalized
      - any params.right / params.other (string or descriptor.uri) is normalized
      - missing/None options become {}
      - missing transform params become {}

    This does not change semantics; it makes the IR portable and deterministic.
    """
    if not isinstance(ir, dict):
        raise JoinKitUserError(
            "E_IR_ROOT",
            "IR must be a mapping at the root.",
            hint="Expected keys: joinkit, pipeline.",
        )

    ir2: Dict[str, Any] = dict(ir)

    if ir2.get("joinkit") is None:
        ir2["joinkit"] = IR_VERSION

    version = ir2.get("joinkit")
    if version != IR_VERSION:
        raise JoinKitUserError(
            "E_IR_VERSION",
            f"Unsupported IR version: {version!r}.",
            hint=f"Supported: joinkit: {IR_VERSION}",
        )

    pipe = ir2.get("pipeline")
    if not isinstance(pipe, dict):
        raise JoinKitUserError(
            "E_IR_PIPELINE",
            "IR requires a 'pipeline' mapping.",
            hint="Example: {joinkit: 0, pipeline: {start: {...}, steps: [...]}}",
        )

    pipe2: Dict[str, Any] = dict(pipe)

    start = pipe2.get("start")
    if not isinstance(start, dict):
        raise JoinKitUserError(
            "E_IR_SOURCE",
            "IR pipeline.start must be a mapping.",
            hint="Example: start: {uri: flights.csv, type: csv}",
        )
    pipe2["start"] = _norm_table_param(start, base_dir=base_dir)

    steps = pipe2.get("steps")
    if steps is None:
        steps = []
    if not isinstance(steps, list):
        raise JoinKitUserError(
            "E_IR_STEPS",
            "IR pipeline.steps must be a list.",
            hint="Example: steps: [{transform: {...}}, {sink: {...}}]",
        )

    norm_steps: List[Dict[str, Any]] = []
    for i, item in enumerate(steps):
        if not isinstance(item, dict) or len(item) != 1:
            raise JoinKitUserError(
                "E_IR_STEP",
                f"IR step #{i} must be a mapping with exactly one key: 'transform' or 'sink'.",
                hint=str(item),
            )

        if "sink" in item:
            s = item["sink"]
            if not isinstance(s, dict):
                raise JoinKitUserError(
                    "E_IR_SINK",
                    "IR sink must be a mapping.",
                    hint="Example: - sink: {uri: out.csv}",
                )
            norm_steps.append({"sink": _norm_table_param(s, base_dir=base_dir)})
            continue

        if "transform" in item:
            t = item["transform"]
            if not isinstance(t, dict):
                raise JoinKitUserError(
                    "E_IR_TRANSFORM",
                    "IR transform must be a mapping.",
                    hint="Example: - transform: {op: join, params: {...}}",
                )
            t2: Dict[str, Any] = dict(t)
            params = t2.get("params")
            if params is None:
                params = {}
            if not isinstance(params, dict):
                raise JoinKitUserError(
                    "E_IR_TRANSFORM",
                    "IR transform 'params' must be a mapping.",
                    hint="Example: params: {right: airlines.csv, on: [carrier]}",
                )
            params = dict(params)
            for name in _TABLE_PARAMS:
                if name in params:
                    params[name] = _norm_table_param(params[name], base_dir=base_dir)
            t2["params"] = params
            norm_steps.append({"transform": t2})
            continue

        raise JoinKitUserError(
            "E_IR_STEP",
            f"IR step #{i} must be 'transform' or 'sink'.",
            hint="Example: {transform: {op: join, params: {...}}}",
        )

    pipe2["steps"] = norm_steps

    return {"joinkit": IR_VERSION, "pipeline": pipe2}
