"""Tree-sitter powered Ruby parser."""

from __future__ import annotations

import textwrap
from typing import Dict, List, Optional, Sequence

import tree_sitter_ruby
from tree_sitter import Language, Parser
from tree_sitter import Node as TSNode

from ..logging import get_logger
from .nodes import Node

logger = get_logger("syntax.parser")

RUBY_LANGUAGE = Language(tree_sitter_ruby.language())

_STATEMENT_CONTAINERS = {
    "program",
    "body_statement",
    "block_body",
    "parenthesized_statements",
}

_ESCAPES = {
    "\\n": "\n",
    "\\t": "\t",
    "\\r": "\r",
    "\\s": " ",
    "\\0": "\0",
    "\\e": "\x1b",
    "\\\\": "\\",
    '\\"': '"',
    "\\'": "'",
}


class RubyParser:
    """Parses Ruby source into the closed :class:`Node` tree.

    A source that tree-sitter cannot parse cleanly yields ``None``. Callers
    treat that file as contributing no structure and no signals.
    """

    def __init__(self) -> None:
        self._parser = Parser(RUBY_LANGUAGE)

    def parse(self, source: str, path: str = "(source)") -> Optional[Node]:
        source_bytes = source.encode("utf-8")
        tree = self._parser.parse(source_bytes)
        root = tree.root_node
        if root.has_error:
            logger.debug("Syntax error in %s; file contributes no signals", path)
            return None
        return _Lowering(source_bytes, root).lower(root)


_default_parser: Optional[RubyParser] = None


def parse(source: str, path: str = "(source)") -> Optional[Node]:
    """Parse with a shared :class:`RubyParser`."""
    global _default_parser
    if _default_parser is None:
        _default_parser = RubyParser()
    return _default_parser.parse(source, path)


class _Lowering:
    """Maps tree-sitter-ruby grammar nodes onto :class:`Node`."""

    def __init__(self, source_bytes: bytes, root: TSNode) -> None:
        self._source = source_bytes
        self._heredoc_bodies = _pair_heredocs(root)

    def lower(self, ts: TSNode) -> Optional[Node]:
        if ts.type == "comment":
            return None
        if ts.type in _STATEMENT_CONTAINERS:
            return Node("begin", tuple(self._lower_all(ts.named_children)), _line(ts))
        handler = getattr(self, f"_lower_{ts.type}", None)
        if handler is not None:
            return handler(ts)
        return Node(ts.type, tuple(self._lower_all(ts.named_children)), _line(ts))

    def _lower_all(self, nodes: Sequence[TSNode]) -> List[Node]:
        lowered: List[Node] = []
        for child in nodes:
            node = self.lower(child)
            if node is not None:
                lowered.append(node)
        return lowered

    def _text(self, ts: TSNode) -> str:
        return self._source[ts.start_byte : ts.end_byte].decode("utf-8", errors="replace")

    def _body(self, ts: TSNode, after: TSNode) -> Optional[Node]:
        body = ts.child_by_field_name("body")
        if body is not None:
            return self.lower(body)
        statements = [
            child
            for child in ts.named_children
            if child.start_byte >= after.end_byte and child.type != "comment"
        ]
        if not statements:
            return None
        return Node("begin", tuple(self._lower_all(statements)), _line(statements[0]))

    # ------------------------------------------------------------------
    # Definitions

    def _lower_class(self, ts: TSNode) -> Node:
        name_ts = ts.child_by_field_name("name")
        superclass_ts = ts.child_by_field_name("superclass")
        parent: Optional[Node] = None
        if superclass_ts is not None:
            expressions = self._lower_all(superclass_ts.named_children)
            parent = expressions[0] if expressions else None
        boundary = superclass_ts if superclass_ts is not None else name_ts
        body = self._body(ts, boundary) if boundary is not None else None
        name = self.lower(name_ts) if name_ts is not None else None
        return Node("class", (name, parent, body), _line(ts))

    def _lower_module(self, ts: TSNode) -> Node:
        name_ts = ts.child_by_field_name("name")
        body = self._body(ts, name_ts) if name_ts is not None else None
        name = self.lower(name_ts) if name_ts is not None else None
        return Node("module", (name, body), _line(ts))

    # ------------------------------------------------------------------
    # Calls

    def _lower_call(self, ts: TSNode) -> Node:
        receiver_ts = ts.child_by_field_name("receiver")
        method_ts = ts.child_by_field_name("method")
        arguments_ts = ts.child_by_field_name("arguments")
        block_ts = ts.child_by_field_name("block")

        receiver = self.lower(receiver_ts) if receiver_ts is not None else None
        method = self._text(method_ts) if method_ts is not None else "call"
        arguments = self._lower_all(arguments_ts.named_children) if arguments_ts is not None else []
        send = Node("send", (receiver, method, *arguments), _line(ts))
        if block_ts is None:
            return send
        block = self.lower(block_ts)
        return Node("block", (send, block) if block is not None else (send,), _line(ts))

    # ------------------------------------------------------------------
    # Constants and assignments

    def _lower_constant(self, ts: TSNode) -> Node:
        return Node("const", (None, self._text(ts)), _line(ts))

    def _lower_scope_resolution(self, ts: TSNode) -> Node:
        scope_ts = ts.child_by_field_name("scope")
        name_ts = ts.child_by_field_name("name")
        scope = self.lower(scope_ts) if scope_ts is not None else None
        name = self._text(name_ts) if name_ts is not None else ""
        if name_ts is not None and name_ts.type == "identifier":
            # Foo::bar is a method call, not a constant.
            return Node("send", (scope, name), _line(ts))
        return Node("const", (scope, name), _line(ts))

    def _lower_assignment(self, ts: TSNode) -> Node:
        left_ts = ts.child_by_field_name("left")
        right_ts = ts.child_by_field_name("right")
        value = self.lower(right_ts) if right_ts is not None else None
        if left_ts is not None and left_ts.type in {"constant", "scope_resolution"}:
            target = self.lower(left_ts)
            if target is not None and target.type == "const":
                scope, name = target.children
                return Node("casgn", (scope, name, value), _line(ts))
        left = self.lower(left_ts) if left_ts is not None else None
        return Node(ts.type, tuple(node for node in (left, value) if node is not None), _line(ts))

    _lower_operator_assignment = _lower_assignment

    # ------------------------------------------------------------------
    # Variables and keywords

    def _lower_identifier(self, ts: TSNode) -> Node:
        return Node("lvar", (self._text(ts),), _line(ts))

    def _lower_instance_variable(self, ts: TSNode) -> Node:
        return Node("ivar", (self._text(ts),), _line(ts))

    def _lower_class_variable(self, ts: TSNode) -> Node:
        return Node("cvar", (self._text(ts),), _line(ts))

    def _lower_global_variable(self, ts: TSNode) -> Node:
        return Node("gvar", (self._text(ts),), _line(ts))

    def _lower_self(self, ts: TSNode) -> Node:
        return Node("self", (), _line(ts))

    def _lower_nil(self, ts: TSNode) -> Node:
        return Node("nil", (), _line(ts))

    # ------------------------------------------------------------------
    # Literals

    def _lower_integer(self, ts: TSNode) -> Node:
        text = self._text(ts).replace("_", "")
        try:
            value = int(text, 0)
        except ValueError:
            value = int(text.lstrip("0") or "0")
        return Node("int", (value,), _line(ts))

    def _lower_string(self, ts: TSNode) -> Node:
        return self._literal(ts, "str", "dstr")

    def _lower_delimited_symbol(self, ts: TSNode) -> Node:
        return self._literal(ts, "sym", "dsym")

    def _lower_simple_symbol(self, ts: TSNode) -> Node:
        return Node("sym", (self._text(ts)[1:],), _line(ts))

    def _lower_hash_key_symbol(self, ts: TSNode) -> Node:
        return Node("sym", (self._text(ts).rstrip(":"),), _line(ts))

    def _lower_chained_string(self, ts: TSNode) -> Node:
        parts: List[Node] = []
        for piece in self._lower_all(ts.named_children):
            if piece.type == "str":
                parts.append(piece)
            else:
                parts.extend(piece.child_nodes())
        return _fold_literal(parts, "str", "dstr", _line(ts))

    def _lower_heredoc_beginning(self, ts: TSNode) -> Node:
        # The text lives in a heredoc_body node that starts on a later line.
        body = self._heredoc_bodies.get(ts.start_byte)
        if body is None:
            return Node("str", ("",), _line(ts))
        literal = self._literal(body, "str", "dstr")
        if literal.type == "str" and self._text(ts).startswith("<<~"):
            return Node("str", (textwrap.dedent(literal.children[0]),), literal.line)
        return literal

    def _lower_heredoc_body(self, ts: TSNode) -> None:
        # Lowered through its heredoc_beginning.
        return None

    def _literal(self, ts: TSNode, plain: str, interpolated: str) -> Node:
        parts: List[Node] = []
        for child in ts.named_children:
            if child.type in ("string_content", "heredoc_content"):
                parts.append(Node("str", (self._text(child),), _line(child)))
            elif child.type == "escape_sequence":
                raw = self._text(child)
                parts.append(Node("str", (_ESCAPES.get(raw, raw),), _line(child)))
            elif child.type == "interpolation":
                parts.append(Node("begin", tuple(self._lower_all(child.named_children)), _line(child)))
        return _fold_literal(parts, plain, interpolated, _line(ts))


def _fold_literal(parts: Sequence[Node], plain: str, interpolated: str, line: int) -> Node:
    """Merge adjacent literal fragments; a literal with no interpolation collapses to ``plain``."""
    merged: List[Node] = []
    for part in parts:
        if part.type == "str" and merged and merged[-1].type == "str":
            previous = merged.pop()
            merged.append(Node("str", (previous.children[0] + part.children[0],), previous.line))
        else:
            merged.append(part)
    if all(part.type == "str" for part in merged):
        text = "".join(part.children[0] for part in merged)
        return Node(plain, (text,), line)
    return Node(interpolated, tuple(merged), line)


def _pair_heredocs(root: TSNode) -> Dict[int, TSNode]:
    """Map each ``heredoc_beginning`` start byte to its body; bodies follow in opening order."""
    beginnings: List[TSNode] = []
    bodies: List[TSNode] = []
    pending = [root]
    while pending:
        node = pending.pop()
        if node.type == "heredoc_beginning":
            beginnings.append(node)
        elif node.type == "heredoc_body":
            bodies.append(node)
        else:
            pending.extend(node.named_children)
    beginnings.sort(key=lambda node: node.start_byte)
    bodies.sort(key=lambda node: node.start_byte)
    return {beginning.start_byte: body for beginning, body in zip(beginnings, bodies)}


def _line(ts: TSNode) -> int:
    return ts.start_point[0] + 1


__all__ = ["RUBY_LANGUAGE", "RubyParser", "parse"]
