"""Lint rules for observability call sites."""

from .base import Issue, LintRule
from .formatter import LintFormatter
from .interpolated_logs import InterpolatedLogs
from .runner import LintRunner, default_rules

__all__ = ["InterpolatedLogs", "Issue", "LintFormatter", "LintRule", "LintRunner", "default_rules"]
