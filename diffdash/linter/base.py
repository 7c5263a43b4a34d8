"""Base classes for lint rules."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..syntax.visitor import LogCall


@dataclass(frozen=True)
class Issue:
    """One finding reported by a lint rule."""

    rule: str
    file: str
    line: int
    message: str
    suggestion: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)


class LintRule(ABC):
    """Contract for rules that inspect detected log calls."""

    name: str = ""
    description: str = ""

    @abstractmethod
    def check(self, log_call: LogCall, source_file: str) -> Optional[Issue]:
        """Return an issue for ``log_call`` or None when it is fine."""


__all__ = ["Issue", "LintRule"]
