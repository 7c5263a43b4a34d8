"""Core data models shared across diffdash components."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

TOP_LEVEL = "(top-level)"

LOG = "log"
COUNTER = "counter"
GAUGE = "gauge"
HISTOGRAM = "histogram"
SUMMARY = "summary"

METRIC_TYPES = (COUNTER, GAUGE, HISTOGRAM, SUMMARY)
SIGNAL_TYPES = (LOG,) + METRIC_TYPES


@dataclass
class Signal:
    """One detected observability call site."""

    type: str
    name: str
    source_file: str
    defining_class: str
    inheritance_depth: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str, str, str]:
        return (self.type, self.name, self.source_file, self.defining_class)

    @property
    def is_log(self) -> bool:
        return self.type == LOG

    @property
    def is_metric(self) -> bool:
        return self.type in METRIC_TYPES

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ClassStructure:
    """A class definition seen while visiting one file."""

    qualified_name: str
    parent_name: Optional[str]
    file: str


@dataclass(frozen=True)
class ModuleDefinition:
    qualified_name: str
    file: str


@dataclass(frozen=True)
class ModuleRelation:
    """An include/prepend/extend statement inside a class or module body."""

    module_name: str
    including_class: str
    kind: str
    file: str


@dataclass
class FileStructure:
    """Structural facts of one file, used to walk its ancestors."""

    classes: List[ClassStructure] = field(default_factory=list)
    modules: List[ModuleDefinition] = field(default_factory=list)
    relations: List[ModuleRelation] = field(default_factory=list)

    def _relations_of(self, kind: str) -> List[ModuleRelation]:
        return [relation for relation in self.relations if relation.kind == kind]

    @property
    def included(self) -> List[ModuleRelation]:
        return self._relations_of("include")

    @property
    def prepended(self) -> List[ModuleRelation]:
        return self._relations_of("prepend")

    @property
    def extended(self) -> List[ModuleRelation]:
        return self._relations_of("extend")


@dataclass(frozen=True)
class AncestorNode:
    """A resolved parent class or mixed-in module."""

    name: str
    file: str
    depth: int
    kind: str


@dataclass(frozen=True)
class DynamicMetricCall:
    """A metric-shaped call whose name is not a literal."""

    receiver: str
    metric_type: str
    defining_class: str
    file: str
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MetricConstant:
    """Metric registered behind a constant, e.g. ``RequestTotal = Hesiod.register_counter("x")``."""

    name: str
    type: str


@dataclass
class CollectionResult:
    """Outputs of a collector run, consumed read-only downstream."""

    signals: List[Signal] = field(default_factory=list)
    dynamic_metrics: List[DynamicMetricCall] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signals": [signal.to_dict() for signal in self.signals],
            "dynamic_metrics": [call.to_dict() for call in self.dynamic_metrics],
        }


__all__ = [
    "AncestorNode",
    "ClassStructure",
    "CollectionResult",
    "DynamicMetricCall",
    "FileStructure",
    "MetricConstant",
    "ModuleDefinition",
    "ModuleRelation",
    "Signal",
    "COUNTER",
    "GAUGE",
    "HISTOGRAM",
    "LOG",
    "METRIC_TYPES",
    "SIGNAL_TYPES",
    "SUMMARY",
    "TOP_LEVEL",
]
