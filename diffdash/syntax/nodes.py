"""Closed AST node model produced by the Ruby parser.

Only the node kinds the visitor and resolvers consume get a dedicated shape:

``begin``   ``(statement, ...)``
``class``   ``(name_const, superclass | None, body | None)``
``module``  ``(name_const, body | None)``
``send``    ``(receiver | None, method_name, arg, ...)``
``block``   ``(send, body, ...)``
``const``   ``(scope | None, name)``
``casgn``   ``(scope | None, name, value | None)``
``str``     ``(value,)``
``dstr``    ``(part, ...)`` where literal parts are ``str`` nodes
``sym``     ``(value,)``
``dsym``    ``(part, ...)``
``int``     ``(value,)``
``lvar`` / ``ivar`` / ``cvar`` / ``gvar``  ``(identifier,)``
``self`` / ``nil``  ``()``
``pair``    ``(key, value)``

Every other grammar node keeps its grammar type and carries its lowered named
children, so generic traversal still reaches nested call sites.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple


@dataclass(frozen=True)
class Node:
    type: str
    children: Tuple[Any, ...] = ()
    line: int = 0

    def child_nodes(self) -> Iterator["Node"]:
        """Yield the children that are themselves nodes."""
        for child in self.children:
            if isinstance(child, Node):
                yield child


def is_node(value: Any, *types: str) -> bool:
    if not isinstance(value, Node):
        return False
    return not types or value.type in types


def const_name(node: Any) -> Optional[str]:
    """Return the ``A::B::C`` path of a ``const`` node, or None for anything else."""
    if not is_node(node, "const"):
        return None
    scope, name = node.children
    if scope is None:
        return name
    prefix = const_name(scope)
    if prefix is None:
        return None
    return f"{prefix}::{name}"


def literal_value(node: Any) -> Optional[str]:
    """Return the text of a literal string or symbol node."""
    if is_node(node, "str", "sym"):
        return node.children[0]
    return None


__all__ = ["Node", "const_name", "is_node", "literal_value"]
