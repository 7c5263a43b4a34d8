"""Resolve metric objects held in constants back to the metric they register."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from ..logging import get_logger
from ..models import MetricConstant
from ..syntax.nodes import Node, const_name, is_node, literal_value
from ..syntax.parser import RubyParser
from ..syntax.visitor import METRIC_FACTORY_METHODS, METRIC_RECEIVERS, infer_metric_type

logger = get_logger("resolution.constants")


class ConstantResolver:
    """Builds a ``constant path -> MetricConstant`` map from registrations such as::

        module Metrics
          RequestTotal = Hesiod.register_counter("request_total")
        end

    which lets ``Metrics::RequestTotal.increment`` resolve to ``request_total``.
    Scanning accumulates across calls.
    """

    def __init__(self, parser: Optional[RubyParser] = None) -> None:
        self._parser = parser or RubyParser()
        self._constants: Dict[str, MetricConstant] = {}

    @property
    def constant_map(self) -> Dict[str, MetricConstant]:
        return dict(self._constants)

    def scan(self, source: str, file_path: str) -> None:
        tree = self._parser.parse(source, file_path)
        if tree is None:
            return
        before = len(self._constants)
        self._scan_node(tree, [])
        found = len(self._constants) - before
        if found:
            logger.debug("Registered %d metric constant(s) from %s", found, file_path)

    def resolve(self, constant: str) -> Optional[MetricConstant]:
        return self._constants.get(constant)

    def resolve_reference(self, name: str, namespace: Sequence[str] = ()) -> Optional[MetricConstant]:
        """Lexical lookup: innermost enclosing namespace first, then ``name`` as written."""
        name = name[2:] if name.startswith("::") else name
        scopes = list(namespace)
        while scopes:
            candidate = self.resolve(f"{'::'.join(scopes)}::{name}")
            if candidate is not None:
                return candidate
            scopes.pop()
        return self.resolve(name)

    # ------------------------------------------------------------------
    # Internals

    def _scan_node(self, node: Node, namespace: List[str]) -> None:
        if node.type in ("class", "module"):
            scoped = namespace + [const_name(node.children[0]) or "(anonymous)"]
            for child in node.children[1:]:
                if is_node(child):
                    self._scan_node(child, scoped)
            return
        if node.type == "casgn":
            self._register(node, namespace)
            return
        for child in node.child_nodes():
            self._scan_node(child, namespace)

    def _register(self, node: Node, namespace: List[str]) -> None:
        scope, name, value = node.children
        if not is_node(value, "send"):
            return
        receiver, method, *args = value.children
        if const_name(receiver) not in METRIC_RECEIVERS or method not in METRIC_FACTORY_METHODS:
            return
        metric_name = literal_value(args[0]) if args else None
        if metric_name is None:
            return

        path = list(namespace)
        if scope is not None:
            explicit = const_name(scope)
            if explicit is None:
                return
            path.append(explicit)
        path.append(name)
        self._constants["::".join(path)] = MetricConstant(name=metric_name, type=infer_metric_type(method))


__all__ = ["ConstantResolver"]
