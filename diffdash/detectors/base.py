"""Base classes for language detectors."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import DynamicMetricCall, FileStructure, Signal
from ..resolution.constants import ConstantResolver


@dataclass
class Detection:
    """Everything one file contributes to a collection run."""

    signals: List[Signal] = field(default_factory=list)
    dynamic_metrics: List[DynamicMetricCall] = field(default_factory=list)
    structure: FileStructure = field(default_factory=FileStructure)


class Detector(ABC):
    """Contract for detectors that emit signals from one source file."""

    @abstractmethod
    def supports(self, file_path: str) -> bool:
        """Return True when this detector understands the file."""

    @abstractmethod
    def detect_with_metadata(
        self,
        source: str,
        file_path: str,
        inheritance_depth: int = 0,
        constants: Optional[ConstantResolver] = None,
    ) -> Detection:
        """Produce signals, dynamic metric calls and structure for one file.

        ``constants`` is the constant map of the current collection run.
        """

    def detect(self, source: str, file_path: str, inheritance_depth: int = 0) -> List[Signal]:
        return self.detect_with_metadata(source, file_path, inheritance_depth).signals

    def detect_structure(self, source: str, file_path: str) -> FileStructure:
        return self.detect_with_metadata(source, file_path).structure
