"""Apply lint rules to every log call in a set of files."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from ..logging import get_logger
from ..syntax.parser import RubyParser
from ..syntax.visitor import Visitor
from .base import Issue, LintRule
from .interpolated_logs import InterpolatedLogs

logger = get_logger("linter.runner")


def default_rules() -> List[LintRule]:
    return [InterpolatedLogs()]


class LintRunner:
    def __init__(self, rules: Optional[Sequence[LintRule]] = None, parser: Optional[RubyParser] = None) -> None:
        self.rules: List[LintRule] = list(rules) if rules is not None else default_rules()
        self._parser = parser or RubyParser()
        self.issues: List[Issue] = []

    def run(self, paths: Iterable[str]) -> List[Issue]:
        """Lint ``paths`` in order; missing and unparsable files are skipped."""
        self.issues = []
        for file_path in paths:
            self.issues.extend(self._lint_file(str(file_path)))
        return list(self.issues)

    def issues_by_rule(self) -> Dict[str, List[Issue]]:
        grouped: Dict[str, List[Issue]] = {}
        for issue in self.issues:
            grouped.setdefault(issue.rule, []).append(issue)
        return grouped

    def _lint_file(self, file_path: str) -> List[Issue]:
        path = Path(file_path)
        if not path.is_file():
            return []
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Skipping unreadable file %s: %s", file_path, exc)
            return []
        tree = self._parser.parse(source, file_path)
        if tree is None:
            return []

        visitor = Visitor(file_path).visit(tree)
        issues: List[Issue] = []
        for log_call in visitor.log_calls:
            for rule in self.rules:
                issue = rule.check(log_call, file_path)
                if issue is not None:
                    issues.append(issue)
        return issues


__all__ = ["LintRunner", "default_rules"]
