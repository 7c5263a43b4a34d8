"""Ruby signal detector: parse, visit, extract."""

from __future__ import annotations

from typing import Optional

from ..logging import get_logger
from ..resolution.constants import ConstantResolver
from ..signals.extractors import extract_log_signals, extract_metric_signals
from ..syntax.parser import RubyParser
from ..syntax.visitor import Visitor
from .base import Detection, Detector

logger = get_logger("detectors.ruby")


class RubyDetector(Detector):
    """Detects log and metric signals in Ruby source.

    Actions on constant-held metrics are resolved through the
    :class:`ConstantResolver` passed per call, falling back to the one given
    at construction. Without either, such calls are ignored.
    """

    def __init__(self, parser: Optional[RubyParser] = None, constants: Optional[ConstantResolver] = None) -> None:
        self._parser = parser or RubyParser()
        self.constants = constants

    def supports(self, file_path: str) -> bool:
        return file_path.endswith(".rb")

    def detect_with_metadata(
        self,
        source: str,
        file_path: str,
        inheritance_depth: int = 0,
        constants: Optional[ConstantResolver] = None,
    ) -> Detection:
        tree = self._parser.parse(source, file_path)
        if tree is None:
            return Detection()

        visitor = Visitor(file_path, inheritance_depth).visit(tree)
        signals = extract_log_signals(visitor)
        signals.extend(extract_metric_signals(visitor, constants if constants is not None else self.constants))
        if signals or visitor.dynamic_metric_calls:
            logger.debug(
                "%s: %d signal(s), %d dynamic metric call(s)",
                file_path,
                len(signals),
                len(visitor.dynamic_metric_calls),
            )
        return Detection(
            signals=signals,
            dynamic_metrics=list(visitor.dynamic_metric_calls),
            structure=visitor.structure,
        )


__all__ = ["RubyDetector"]
