"""Turn visitor detections into :class:`Signal` objects."""

from __future__ import annotations

import hashlib
from typing import List, Optional

from ..models import LOG, Signal
from ..resolution.constants import ConstantResolver
from ..syntax.visitor import LogCall, Visitor


def fallback_log_name(call: LogCall) -> str:
    """Stable name for a log whose message yields no identifier."""
    digest = hashlib.sha256(f"{call.defining_class}:{call.level}:{call.line}".encode("utf-8")).hexdigest()
    return f"log_{digest[:8]}"


def extract_log_signals(visitor: Visitor) -> List[Signal]:
    return [
        Signal(
            type=LOG,
            name=call.event_name or fallback_log_name(call),
            source_file=visitor.file_path,
            defining_class=call.defining_class,
            inheritance_depth=visitor.inheritance_depth,
            metadata={"level": call.level, "line": call.line, "interpolated": call.interpolated},
        )
        for call in visitor.log_calls
    ]


def extract_metric_signals(visitor: Visitor, constants: Optional[ConstantResolver] = None) -> List[Signal]:
    """Literal-named metric calls, then constant-held metrics that ``constants`` can resolve."""
    signals = [
        Signal(
            type=call.metric_type,
            name=call.name,
            source_file=visitor.file_path,
            defining_class=call.defining_class,
            inheritance_depth=visitor.inheritance_depth,
            metadata={"metric_type": call.metric_type, "line": call.line},
        )
        for call in visitor.metric_calls
    ]
    if constants is None:
        return signals

    for call in visitor.constant_metric_calls:
        registered = constants.resolve_reference(call.constant, call.namespace)
        if registered is None:
            continue
        signals.append(
            Signal(
                type=registered.type,
                name=registered.name,
                source_file=visitor.file_path,
                defining_class=call.defining_class,
                inheritance_depth=visitor.inheritance_depth,
                metadata={"metric_type": registered.type, "line": call.line, "resolved_from": call.constant},
            )
        )
    return signals


__all__ = ["extract_log_signals", "extract_metric_signals", "fallback_log_name"]
