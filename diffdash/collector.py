"""Collect signals across changed files and the ancestors they inherit from."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .detectors.base import Detector
from .detectors.ruby import RubyDetector
from .logging import get_logger
from .models import CollectionResult, DynamicMetricCall, Signal
from .resolution.ancestors import AncestorResolver
from .resolution.constants import ConstantResolver
from .syntax.parser import RubyParser

logger = get_logger("collector")

DEFAULT_METRIC_DEFINITION_PATHS: Sequence[str] = (
    "config/initializers/metrics.rb",
    "config/initializers/prometheus.rb",
    "config/initializers/statsd.rb",
    "config/initializers/hesiod.rb",
    "app/services/metrics.rb",
    "app/lib/metrics.rb",
    "app/models/metrics.rb",
    "lib/metrics.rb",
)


class SignalCollector:
    """Runs detection over changed files and folds in inherited signals.

    The constant map is rebuilt on every :meth:`collect` call. The ancestor
    cache lives as long as the collector.
    """

    def __init__(
        self,
        root: Path | str = ".",
        metric_definition_paths: Sequence[str] = (),
        detector: Optional[Detector] = None,
        ancestor_resolver: Optional[AncestorResolver] = None,
    ) -> None:
        self.root = Path(root)
        self.metric_definition_paths = list(DEFAULT_METRIC_DEFINITION_PATHS) + [
            path for path in metric_definition_paths if path not in DEFAULT_METRIC_DEFINITION_PATHS
        ]
        parser = RubyParser()
        self.detector = detector or RubyDetector(parser=parser)
        self.ancestor_resolver = ancestor_resolver or AncestorResolver(self.root, parser=parser)
        self._parser = parser

    def collect(self, paths: Iterable[str]) -> CollectionResult:
        file_paths = [str(path) for path in paths]
        constants = self._seed_constants(file_paths)

        signals: List[Signal] = []
        dynamic_metrics: List[DynamicMetricCall] = []
        for file_path in file_paths:
            source = self._read(file_path)
            if source is None:
                continue
            detection = self.detector.detect_with_metadata(
                source, file_path, inheritance_depth=0, constants=constants
            )
            signals.extend(detection.signals)
            dynamic_metrics.extend(detection.dynamic_metrics)

            for ancestor in self.ancestor_resolver.collect_ancestors(detection.structure, file_path):
                ancestor_source = self._read(ancestor.file)
                if ancestor_source is None:
                    continue
                inherited = self.detector.detect_with_metadata(
                    ancestor_source, ancestor.file, inheritance_depth=ancestor.depth, constants=constants
                )
                signals.extend(inherited.signals)
                dynamic_metrics.extend(inherited.dynamic_metrics)

        unique = deduplicate(signals)
        logger.info(
            "Collected %d signal(s) and %d dynamic metric call(s) from %d file(s)",
            len(unique),
            len(dynamic_metrics),
            len(file_paths),
        )
        return CollectionResult(signals=unique, dynamic_metrics=dynamic_metrics)

    # ------------------------------------------------------------------
    # Internals

    def _seed_constants(self, changed: Sequence[str]) -> ConstantResolver:
        constants = ConstantResolver(self._parser)
        definition_files = [str(self.root / relative) for relative in self.metric_definition_paths]
        for file_path in definition_files + list(changed):
            source = self._read(file_path)
            if source is not None:
                constants.scan(source, file_path)
        return constants

    @staticmethod
    def _read(file_path: str) -> Optional[str]:
        path = Path(file_path)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Skipping unreadable file %s: %s", file_path, exc)
            return None


def deduplicate(signals: Iterable[Signal]) -> List[Signal]:
    """Keep the first signal per ``(type, name, source_file, defining_class)``."""
    seen: Set[Tuple[str, str, str, str]] = set()
    unique: List[Signal] = []
    for signal in signals:
        if signal.key in seen:
            continue
        seen.add(signal.key)
        unique.append(signal)
    return unique


__all__ = ["DEFAULT_METRIC_DEFINITION_PATHS", "SignalCollector", "deduplicate"]
