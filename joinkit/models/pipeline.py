from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union, Optional, Dict, Any, Tuple

import yaml

from joinkit.errors import JoinKitUserError
from joinkit.models.sinks import Sink
from joinkit.models.sources import Source
from joinkit.models.transforms import Transform, _transform_from_ir
from joinkit.schema import _source_to_ir, _sink_to_ir, _transform_to_ir, _source_from_ir, \
    _sink_from_ir, _normalize_ir, IR_VERSION
from joinkit.table import Table
from joinkit.util import TableSchema

logger = logging.getLogger(__name__)

PREVIEW_ROWS = 5


@dataclass
class PipelineContext:
    checkpoints: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list)
    schema: Optional[TableSchema] = None
    table: Optional[Table] = None
    join_stats: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class Pipeline:
    """
    Linear pipelines only: Source -> Transform* -> Sink*.
    """
    start: Source
    steps: List[Union[Transform, Sink]] = field(default_factory=list)

    def then(self, step: Union[Transform, Sink]) -> "Pipeline":
        if not isinstance(step, (Transform, Sink)):
            raise JoinKitUserError(
                "E_PIPELINE_STEP",
                "Pipeline.then expects a Transform or Sink.",
                hint="Example: pipe.then(Transform('join', params={...})) or pipe.then(Sink('out.csv')).",
            )

        if isinstance(step, Transform):
            if any(isinstance(s, Sink) for s in self.steps):
                raise JoinKitUserError(
                    "E_PIPELINE_ORDER",
                    "A Transform cannot be added after a Sink.",
                    hint="Move the Sink to the end of the pipeline, or create a new Pipeline starting from the Sink output.",
                )

        return Pipeline(self.start, self.steps + [step])

    def __str__(self) -> str:
        parts = [f"Pipeline(start={self.start.uri})"]
        for s in self.steps:
            parts.append(f"  -> {s}")
        return "\n".join(parts)

    def preflight(self) -> None:
        """
        Validate sources and sinks before executing the pipeline.

        This checks:
        - Source existence
        - Sink writability / destination validity
        - Pipeline ordering invariants
        """
        self.start.preflight()

        saw_sink = False
        for i, step in enumerate(self.steps):
            if isinstance(step, Transform):
                if saw_sink:
                    raise JoinKitUserError(
                        "E_PIPELINE_ORDER",
                        f"Transform '{step.op}' appears after a Sink at step index {i}.",
                        hint="Reorder the pipeline so that all sinks come last.",
                    )
            elif isinstance(step, Sink):
                saw_sink = True
                step.preflight()
            else:
                raise JoinKitUserError(
                    "E_PIPELINE_STEP_TYPE",
                    "Pipeline contains an unknown step type.",
                    hint="This should not happen if you only add Transform/Sink via Pipeline.then().",
                )

    def run(self) -> PipelineContext:
        self.preflight()
        ctx = PipelineContext()
        table = self.start.table()
        ctx.schema = table.schema()

        for i, step in enumerate(self.steps):
            if isinstance(step, Transform):
                table = step.apply(table, context=ctx)
                ctx.schema = table.schema()
                logger.debug("step %d: %s -> %d row(s)", i, step.op, table.nrows)

                # Fixed-size preview: up to 5 data rows. Deterministic and inspectable.
                ctx.checkpoints.append(
                    (
                        "step",
                        {
                            "index": i,
                            "kind": "transform",
                            "op": step.op,
                            "params": {k: v for k, v in step.params.items() if not isinstance(v, Table)},
                            "header": list(table.header),
                            "rows": table.nrows,
                            "preview": list(table.head(PREVIEW_ROWS).rows()),
                        },
                    )
                )

            elif isinstance(step, Sink):
                step.write(table)
                logger.debug("step %d: wrote %d row(s) to %s", i, table.nrows, step.uri)
                ctx.checkpoints.append(
                    (
                        "step",
                        {
                            "index": i,
                            "kind": "sink",
                            "uri": step.uri,
                            "type": step.type,
                            "options": dict(step.options),
                        },
                    )
                )

            else:
                raise JoinKitUserError(
                    "E_PIPELINE_STEP_TYPE",
                    "Pipeline contains an unknown step type.",
                    hint="This should not happen if you only add Transform/Sink via Pipeline.then().",
                )

        ctx.table = table
        return ctx

    def schema(self) -> Optional[TableSchema]:
        """Infer the pipeline's output schema from headers only, without reading any rows.

        Returns None if it cannot be determined statically.
        """
        sch: Optional[TableSchema] = self.start.peek_schema()

        for step in self.steps:
            if isinstance(step, Transform):
                sch = step.output_schema(sch)
            elif isinstance(step, Sink):
                continue
            else:
                return None

        return sch

    def to_ir(self) -> Dict[str, Any]:
        """Serialize this pipeline to a YAML-friendly IR (dict)."""
        steps_ir: List[Dict[str, Any]] = []
        for s in self.steps:
            if isinstance(s, Transform):
                steps_ir.append({"transform": _transform_to_ir(s)})
            elif isinstance(s, Sink):
                steps_ir.append({"sink": _sink_to_ir(s)})
            else:
                raise JoinKitUserError(
                    "E_IR_STEP",
                    "Pipeline contains an unknown step type; cannot serialize.",
                    hint="Only Transform and Sink steps are supported.",
                )

        return {
            "joinkit": IR_VERSION,
            "pipeline": {
                "start": _source_to_ir(self.start),
                "steps": steps_ir,
            },
        }

    @classmethod
    def from_ir(cls, ir: Dict[str, Any], *, base_dir: Optional[Path] = None) -> "Pipeline":
        """Deserialize a pipeline from IR (dict)."""
        ir = _normalize_ir(ir, base_dir=base_dir)
        pipe = ir["pipeline"]

        out = Pipeline(_source_from_ir(pipe["start"]))
        for item in pipe["steps"]:
            if "transform" in item:
                out = out.then(_transform_from_ir(item["transform"]))
            else:
                out = out.then(_sink_from_ir(item["sink"]))

        return out

    def to_yaml(self, path: Optional[Union[str, Path]] = None, *, lock_schema: bool = False) -> str:
        """Dump IR to YAML string. If `path` is provided, also write the file."""
        pipe = self.lock_schema() if lock_schema else self
        text = yaml.safe_dump(pipe.to_ir(), sort_keys=False)
        if path is not None:
            Path(path).write_text(text, encoding="utf-8")
        return text

    @classmethod
    def from_yaml(cls, text_or_path: Union[str, Path], *, base_dir: Optional[Path] = None) -> "Pipeline":
        """Load pipeline from YAML string or file path."""
        p = Path(text_or_path)
        if isinstance(text_or_path, Path) or os.path.isfile(text_or_path):
            base_dir = base_dir or p.parent
            text = p.read_text(encoding="utf-8")
        else:
            text = str(text_or_path)
        try:
            ir = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise JoinKitUserError(
                "E_YAML_PARSE",
                f"Failed to parse YAML: {e}",
                hint="Check indentation and quoting.",
            ) from e
        return cls.from_ir(ir, base_dir=base_dir)

    def save_yaml(self, path: Union[str, Path], *, lock_schema: bool = False) -> None:
        """Write YAML IR to a file."""
        Path(path).write_text(self.to_yaml(lock_schema=lock_schema), encoding="utf-8")

    @classmethod
    def load_yaml(cls, path: Union[str, Path]) -> "Pipeline":
        """Load YAML IR from a file."""
        p = Path(path)
        return cls.from_yaml(p.read_text(encoding="utf-8"), base_dir=p.parent)

    def lock_schema(self) -> "Pipeline":
        """Copy of this pipeline with each transform's output schema pinned."""
        sch = self.start.peek_schema()
        locked_steps: List[Union[Transform, Sink]] = []
        for step in self.steps:
            if isinstance(step, Transform):
                sch = step.output_schema(sch)
                locked_steps.append(
                    Transform(step.op, params=dict(step.params), output_schema_override=sch)
                )
            else:
                locked_steps.append(step)
        return Pipeline(self.start, locked_steps)
