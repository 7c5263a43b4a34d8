"""Language detectors."""

from .base import Detection, Detector
from .ruby import RubyDetector

__all__ = ["Detection", "Detector", "RubyDetector"]
