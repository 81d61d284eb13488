from joinkit.table import Table
from joinkit.util import MISSING, is_missing
from joinkit.keys import Natural, ByNames, ByPairs, resolve_keys
from joinkit.layout import JoinLayout, merge_layout
from joinkit.engine import (
    JoinSpec, JoinEngine, join, iter_join,
    inner_join, left_join, right_join, full_join, semi_join, anti_join,
)
from joinkit.setops import distinct, intersect, union, setdiff
from joinkit.models.pipeline import Pipeline, PipelineContext
from joinkit.models.sinks import Sink
from joinkit.models.sources import Source
from joinkit.models.transforms import Transform
from joinkit.errors import (
    JoinKitUserError, UnknownColumnError, NoCommonColumnsError, SchemaMismatchError,
    TypeMismatchError, UnresolvableNameCollisionError, RelationshipError,
)

__all__ = [
    "Table", "MISSING", "is_missing",
    "Natural", "ByNames", "ByPairs", "resolve_keys",
    "JoinLayout", "merge_layout",
    "JoinSpec", "JoinEngine", "join", "iter_join",
    "inner_join", "left_join", "right_join", "full_join", "semi_join", "anti_join",
    "distinct", "intersect", "union", "setdiff",
    "Pipeline", "PipelineContext", "Sink", "Source", "Transform",
    "JoinKitUserError", "UnknownColumnError", "NoCommonColumnsError", "SchemaMismatchError",
    "TypeMismatchError", "UnresolvableNameCollisionError", "RelationshipError",
]
