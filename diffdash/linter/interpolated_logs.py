"""Flag log messages built with string interpolation."""

from __future__ import annotations

import re
from typing import List, Optional

from ..syntax.nodes import Node, is_node
from ..syntax.visitor import LogCall
from .base import Issue, LintRule

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


class InterpolatedLogs(LintRule):
    """Interpolated messages can only be matched on their static fragments.

    ``logger.info("User #{id} logged in")`` becomes queryable as
    ``logger.info("user_logged_in", id: id)``.
    """

    name = "interpolated-logs"
    description = "Logs with string interpolation are harder to query in observability tools"

    def check(self, log_call: LogCall, source_file: str) -> Optional[Issue]:
        message = log_call.message
        if not is_node(message, "dstr"):
            return None

        static_parts = [part.children[0] for part in message.children if is_node(part, "str")]
        interpolations = [
            name
            for name in (_variable_name(part) for part in message.children if not is_node(part, "str"))
            if name is not None
        ]
        return Issue(
            rule=self.name,
            file=source_file,
            line=log_call.line,
            message="Log uses string interpolation",
            suggestion=_suggestion(static_parts, interpolations, log_call.method),
            context={
                "original": _reconstruct(message),
                "static_match": "".join(static_parts),
                "interpolation_count": len(interpolations),
            },
        )


def _variable_name(node: Optional[Node]) -> Optional[str]:
    if node is None:
        return "value"
    if node.type == "begin":
        first = next(node.child_nodes(), None)
        return _variable_name(first)
    if node.type == "send":
        receiver, method = node.children[0], node.children[1]
        if receiver is None:
            return method
        return f"{_variable_name(receiver)}_{method}"
    if node.type in ("lvar", "ivar"):
        return node.children[0].lstrip("@")
    if node.type == "str":
        return None
    return "value"


def _reconstruct(message: Node) -> str:
    pieces: List[str] = []
    for part in message.children:
        if is_node(part, "str"):
            pieces.append(part.children[0])
        elif is_node(part, "begin"):
            pieces.append("#{" + (_variable_name(part) or "") + "}")
        else:
            pieces.append("#{...}")
    return "".join(pieces)


def _suggestion(static_parts: List[str], interpolations: List[str], method: str) -> str:
    event_name = _SLUG_PATTERN.sub("_", " ".join(static_parts).lower()).strip("_") or "log_event"
    if not interpolations:
        return f'logger.{method}("{event_name}")'
    kwargs = ", ".join(f"{name}: {name}" for name in interpolations)
    return f'logger.{method}("{event_name}", {kwargs})'


__all__ = ["InterpolatedLogs"]
