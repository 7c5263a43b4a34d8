"""Render lint issues for the terminal."""

from __future__ import annotations

import os
from typing import Dict, List, Optional, Sequence

from .base import Issue

INTERPOLATED_LOGS = "interpolated-logs"

_EXAMPLE = "\n".join(
    [
        "Consider structured logging for better observability:",
        "",
        '  Before: logger.info("User #{user.id} logged in")',
        '  After:  logger.info("user_logged_in", user_id: user.id)',
    ]
)


class LintFormatter:
    """Summary output by default; ``verbose`` lists each issue with its suggestion."""

    def __init__(self, issues: Sequence[Issue], verbose: bool = False, cwd: Optional[str] = None) -> None:
        self.issues = list(issues)
        self.verbose = verbose
        self.cwd = cwd or os.getcwd()

    def format(self) -> str:
        if not self.issues:
            return "No lint issues found. Your observability patterns look good!"
        return self._verbose() if self.verbose else self._summary()

    def _grouped(self) -> Dict[str, List[Issue]]:
        grouped: Dict[str, List[Issue]] = {}
        for issue in self.issues:
            grouped.setdefault(issue.rule, []).append(issue)
        return grouped

    def _summary(self) -> str:
        lines: List[str] = []
        for rule, issues in self._grouped().items():
            if rule == INTERPOLATED_LOGS:
                lines.append(f"Found {_pluralize(len(issues), 'log')} with string interpolation.")
            else:
                lines.append(f"Found {_pluralize(len(issues), 'issue')} for rule: {rule}")
        lines.extend(["", _EXAMPLE, "", "Run 'diffdash lint --verbose' for details."])
        return "\n".join(lines)

    def _verbose(self) -> str:
        lines: List[str] = []
        for rule, issues in self._grouped().items():
            header = "Interpolated logs" if rule == INTERPOLATED_LOGS else rule
            lines.append(f"{header} ({len(issues)} found):")
            lines.append("")
            for issue in issues:
                lines.append(self._format_issue(issue))
                lines.append("")
        interpolated = sum(1 for issue in self.issues if issue.rule == INTERPOLATED_LOGS)
        lines.extend([_EXAMPLE, "", f"Summary: {_pluralize(interpolated, 'interpolated log')} found"])
        return "\n".join(lines)

    def _format_issue(self, issue: Issue) -> str:
        lines = [f"  {self._relative(issue.file)}:{issue.line}"]
        if issue.context.get("original"):
            lines.append(f"    {issue.context['original']}")
        if issue.context.get("static_match"):
            lines.append(f"    -> Matches: \"{issue.context['static_match']}\"")
        if issue.suggestion:
            lines.append(f"    -> Suggested: {issue.suggestion}")
        return "\n".join(lines)

    def _relative(self, path: str) -> str:
        prefix = self.cwd.rstrip(os.sep) + os.sep
        return path[len(prefix) :] if path.startswith(prefix) else path


def _pluralize(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


__all__ = ["LintFormatter"]
