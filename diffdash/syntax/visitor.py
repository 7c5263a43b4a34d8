"""Single-pass visitor that detects log and metric call sites in one Ruby file."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

from ..models import (
    COUNTER,
    GAUGE,
    HISTOGRAM,
    SUMMARY,
    TOP_LEVEL,
    ClassStructure,
    DynamicMetricCall,
    FileStructure,
    ModuleDefinition,
    ModuleRelation,
)
from .nodes import Node, const_name, is_node, literal_value

SEVERITY_LEVELS = ("debug", "info", "warn", "error", "fatal", "unknown")

LOG_METHODS = frozenset(SEVERITY_LEVELS)
GENERIC_LOG_METHODS = frozenset({"add", "log"})
LOG_NAMESPACES = frozenset({"Rails"})
LOGGER_CONSTANTS = frozenset({"LOG", "LOGGER"})
LOGGING_TRAITS = frozenset({"Loggy::ClassLogger", "Loggy::InstanceLogger"})

METRIC_RECEIVERS = frozenset({"Prometheus", "StatsD", "Statsd", "Hesiod", "Datadog", "DogStatsD"})
METRIC_FACTORY_METHODS = frozenset(
    {
        "counter",
        "gauge",
        "histogram",
        "summary",
        "register_counter",
        "register_gauge",
        "register_histogram",
        "register_summary",
    }
)
METRIC_ACTION_METHODS = frozenset(
    {"increment", "incr", "decrement", "decr", "set", "observe", "time", "timing", "emit", "count"}
)
METRIC_TYPE_BY_METHOD = {
    "counter": COUNTER,
    "increment": COUNTER,
    "incr": COUNTER,
    "gauge": GAUGE,
    "set": GAUGE,
    "histogram": HISTOGRAM,
    "observe": HISTOGRAM,
    "timing": HISTOGRAM,
    "time": HISTOGRAM,
    "summary": SUMMARY,
}

INCLUSION_METHODS = frozenset({"include", "prepend", "extend"})

_NON_POSITIONAL = frozenset({"pair", "block_argument", "hash_splat_argument"})
_VARIABLE_TYPES = frozenset({"lvar", "ivar", "cvar", "gvar"})
_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
_MAX_EVENT_NAME = 50


@dataclass
class LogCall:
    level: str
    event_name: Optional[str]
    interpolated: bool
    defining_class: str
    line: int
    method: str
    message: Optional[Node] = None
    requires_trait: bool = False


@dataclass
class MetricCall:
    name: str
    metric_type: str
    defining_class: str
    line: int
    receiver: str


@dataclass
class ConstantMetricCall:
    """Action on a non-client constant, resolvable only through metric registrations."""

    constant: str
    method: str
    namespace: Tuple[str, ...]
    defining_class: str
    line: int


class Visitor:
    """Walks one file's AST, collecting structure and observability call sites.

    Detections nest: the walk always continues into a node's children, so a
    log call inside a block passed to a metric call is still found.
    """

    def __init__(self, file_path: str, inheritance_depth: int = 0) -> None:
        self.file_path = file_path
        self.inheritance_depth = inheritance_depth
        self.structure = FileStructure()
        self.log_calls: List[LogCall] = []
        self.metric_calls: List[MetricCall] = []
        self.dynamic_metric_calls: List[DynamicMetricCall] = []
        self.constant_metric_calls: List[ConstantMetricCall] = []
        self._namespace: List[str] = []

    def visit(self, root: Optional[Node]) -> "Visitor":
        if root is not None:
            self._process(root)
        self._confirm_trait_logs()
        return self

    @property
    def current_class(self) -> str:
        return "::".join(self._namespace) if self._namespace else TOP_LEVEL

    # ------------------------------------------------------------------
    # Traversal

    def _process(self, node: Node) -> None:
        if node.type == "class":
            self._process_class(node)
        elif node.type == "module":
            self._process_module(node)
        elif node.type == "send":
            self._process_send(node)
        else:
            for child in node.child_nodes():
                self._process(child)

    def _process_class(self, node: Node) -> None:
        name_node, parent_node, body = node.children
        local_name = const_name(name_node) or "(anonymous)"
        parent_name = const_name(parent_node) if parent_node is not None else None

        self._namespace.append(local_name)
        self.structure.classes.append(
            ClassStructure(qualified_name=self.current_class, parent_name=parent_name, file=self.file_path)
        )
        self._namespace.pop()

        if parent_node is not None:
            self._process(parent_node)
        self._enter(local_name, body)

    def _process_module(self, node: Node) -> None:
        name_node, body = node.children
        local_name = const_name(name_node) or "(anonymous)"

        self._namespace.append(local_name)
        self.structure.modules.append(ModuleDefinition(qualified_name=self.current_class, file=self.file_path))
        self._namespace.pop()

        self._enter(local_name, body)

    def _enter(self, local_name: str, body: Optional[Node]) -> None:
        self._namespace.append(local_name)
        try:
            if body is not None:
                self._process(body)
        finally:
            self._namespace.pop()

    def _process_send(self, node: Node) -> None:
        receiver, method, *args = node.children

        log_match = self._match_log(receiver, method, args)
        if log_match is not None:
            level, message, requires_trait = log_match
            self._record_log(node, method, level, message, requires_trait)
        elif not self._match_metric(node, receiver, method, args):
            if receiver is None and method in INCLUSION_METHODS:
                self._record_relations(method, args)

        for child in node.child_nodes():
            self._process(child)

    # ------------------------------------------------------------------
    # Logs

    def _match_log(
        self, receiver: Optional[Node], method: str, args: Sequence[Node]
    ) -> Optional[Tuple[str, Optional[Node], bool]]:
        if receiver is None:
            if method != "log":
                return None
            # Bare log(...) is only a log call inside a Loggy trait; confirmed after the pass.
            level = _severity_symbol(args[0]) if args else None
            if level is not None:
                return level, _arg(args, 1), True
            return "info", _arg(args, 0), True

        if not _is_logger_receiver(receiver):
            return None
        if method in LOG_METHODS:
            return method, _arg(args, 0), False
        if method in GENERIC_LOG_METHODS and args:
            level = severity_level(args[0])
            if level is not None:
                return level, _arg(args, 1), False
        return None

    def _record_log(
        self,
        node: Node,
        method: str,
        level: str,
        message: Optional[Node],
        requires_trait: bool,
    ) -> None:
        self.log_calls.append(
            LogCall(
                level=level,
                event_name=derive_event_name(message),
                interpolated=is_node(message, "dstr"),
                defining_class=self.current_class,
                line=node.line,
                method=method,
                message=message,
                requires_trait=requires_trait,
            )
        )

    def _confirm_trait_logs(self) -> None:
        traited: Set[str] = {
            relation.including_class
            for relation in self.structure.relations
            if relation.module_name in LOGGING_TRAITS
        }
        self.log_calls = [
            call for call in self.log_calls if not call.requires_trait or call.defining_class in traited
        ]

    # ------------------------------------------------------------------
    # Metrics

    def _match_metric(self, node: Node, receiver: Optional[Node], method: str, args: Sequence[Node]) -> bool:
        if receiver is None:
            return False

        if receiver.type == "const":
            receiver_name = const_name(receiver)
            if receiver_name in METRIC_RECEIVERS:
                # Factories such as StatsD.counter(...) are only metrics once an action is chained on.
                if method not in METRIC_ACTION_METHODS:
                    return False
                self._record_metric(node, receiver_name, infer_metric_type(method), _first_positional(args))
                return True
            if receiver_name and method in METRIC_ACTION_METHODS:
                self.constant_metric_calls.append(
                    ConstantMetricCall(
                        constant=receiver_name,
                        method=method,
                        namespace=tuple(self._namespace),
                        defining_class=self.current_class,
                        line=node.line,
                    )
                )
                return True
            return False

        if receiver.type == "send" and method in METRIC_ACTION_METHODS:
            inner_receiver, factory, *factory_args = receiver.children
            receiver_name = const_name(inner_receiver)
            if receiver_name in METRIC_RECEIVERS and factory in METRIC_FACTORY_METHODS:
                self._record_metric(node, receiver_name, infer_metric_type(factory), _first_positional(factory_args))
                return True
        return False

    def _record_metric(self, node: Node, receiver_name: str, metric_type: str, name_arg: Optional[Node]) -> None:
        name = literal_value(name_arg)
        if name is not None:
            self.metric_calls.append(
                MetricCall(
                    name=name,
                    metric_type=metric_type,
                    defining_class=self.current_class,
                    line=node.line,
                    receiver=receiver_name,
                )
            )
            return
        self.dynamic_metric_calls.append(
            DynamicMetricCall(
                receiver=receiver_name,
                metric_type=metric_type,
                defining_class=self.current_class,
                file=self.file_path,
                line=node.line,
            )
        )

    # ------------------------------------------------------------------
    # Structure

    def _record_relations(self, method: str, args: Sequence[Node]) -> None:
        for arg in args:
            module_name = const_name(arg)
            if module_name is None:
                continue
            self.structure.relations.append(
                ModuleRelation(
                    module_name=module_name,
                    including_class=self.current_class,
                    kind=method,
                    file=self.file_path,
                )
            )


def slugify(message: str) -> Optional[str]:
    """Stable identifier for a log message: lowercase, underscore-separated, at most 50 chars."""
    slug = _SLUG_PATTERN.sub("_", message.lower()).strip("_")[:_MAX_EVENT_NAME]
    return slug or None


def derive_event_name(message: Optional[Node]) -> Optional[str]:
    if is_node(message, "str"):
        return slugify(message.children[0])
    if is_node(message, "sym"):
        return message.children[0] or None
    if is_node(message, "dstr"):
        static = "".join(part.children[0] for part in message.children if is_node(part, "str"))
        return slugify(static)
    return None


def severity_level(node: Optional[Node]) -> Optional[str]:
    """Map a symbol, 0-5 integer, or ``Logger::LEVEL`` constant to a canonical level."""
    symbol = _severity_symbol(node)
    if symbol is not None:
        return symbol
    if is_node(node, "int"):
        value = node.children[0]
        if 0 <= value < len(SEVERITY_LEVELS):
            return SEVERITY_LEVELS[value]
        return None
    if is_node(node, "const"):
        level = node.children[1].lower()
        if level in LOG_METHODS:
            return level
    return None


def infer_metric_type(method: str) -> str:
    if method.startswith("register_"):
        method = method[len("register_") :]
    return METRIC_TYPE_BY_METHOD.get(method, COUNTER)


def _severity_symbol(node: Optional[Node]) -> Optional[str]:
    if is_node(node, "sym") and node.children[0] in LOG_METHODS:
        return node.children[0]
    return None


def _is_logger_receiver(receiver: Node) -> bool:
    if receiver.type == "send":
        inner_receiver, inner_method = receiver.children[0], receiver.children[1]
        if inner_method != "logger":
            return False
        # Constants must be allow-listed; self.class.logger and obj.logger always count.
        if inner_receiver is not None and inner_receiver.type == "const":
            return const_name(inner_receiver) in LOG_NAMESPACES
        return True
    if receiver.type in _VARIABLE_TYPES:
        return "logger" in receiver.children[0]
    if receiver.type == "const":
        return receiver.children[1] in LOGGER_CONSTANTS
    return False


def _arg(args: Sequence[Node], index: int) -> Optional[Node]:
    return args[index] if len(args) > index else None


def _first_positional(args: Sequence[Node]) -> Optional[Node]:
    if args and args[0].type not in _NON_POSITIONAL:
        return args[0]
    return None


__all__ = [
    "ConstantMetricCall",
    "LogCall",
    "MetricCall",
    "Visitor",
    "derive_event_name",
    "infer_metric_type",
    "severity_level",
    "slugify",
    "LOGGING_TRAITS",
    "METRIC_ACTION_METHODS",
    "METRIC_FACTORY_METHODS",
    "METRIC_RECEIVERS",
]
