"""Resolve parent classes and mixed-in modules to files, and walk them."""

from __future__ import annotations

import glob
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from ..logging import get_logger
from ..models import AncestorNode, FileStructure
from ..syntax.parser import RubyParser, parse
from ..syntax.visitor import Visitor

logger = get_logger("resolution.ancestors")

MAX_DEPTH = 5

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")
_EXCLUDED_SEGMENT = re.compile(r"/(spec|test)/")
_EXCLUDED_SUFFIXES = ("_spec.rb", "_test.rb")

Runner = Callable[..., str]
StructureLoader = Callable[[str, int], Optional[FileStructure]]


def underscore(name: str) -> str:
    """``Payments::HTTPClient`` -> ``payments/http_client``."""
    path = name.replace("::", "/")
    path = _ACRONYM_BOUNDARY.sub(r"\1_\2", path)
    path = _WORD_BOUNDARY.sub(r"\1_\2", path)
    return path.lower()


def is_excluded(path: str) -> bool:
    normalized = path.replace("\\", "/")
    return bool(_EXCLUDED_SEGMENT.search(normalized)) or normalized.endswith(_EXCLUDED_SUFFIXES)


def _first_allowed(candidates: Iterable[str], root: Path) -> Optional[str]:
    for candidate in sorted(candidates):
        # Exclusions apply to the repository-relative part only.
        if not is_excluded("/" + os.path.relpath(candidate, root)):
            return candidate
    return None


class ResolutionStrategy(ABC):
    """Maps a class or module name to the file that defines it."""

    @abstractmethod
    def resolve(self, name: str, current_file: str) -> Optional[str]:
        """Return a path for ``name`` or None when this strategy cannot find one."""


class ConventionStrategy(ResolutionStrategy):
    """Rails-style autoload paths: ``Billing::Invoice`` lives in ``billing/invoice.rb``."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def candidate_patterns(self, name: str, current_file: str) -> List[str]:
        relative = f"{underscore(name)}.rb"
        current_dir = os.path.dirname(current_file)
        root = str(self.root)
        return [
            os.path.join(current_dir, relative),
            os.path.join(current_dir, "..", relative),
            os.path.join(current_dir, "concerns", relative),
            os.path.join(root, "app", "**", relative),
            os.path.join(root, "app", "**", "concerns", relative),
            os.path.join(root, "lib", "**", relative),
        ]

    def resolve(self, name: str, current_file: str) -> Optional[str]:
        for pattern in self.candidate_patterns(name, current_file):
            matches = [os.path.normpath(match) for match in glob.glob(pattern, recursive=True)]
            found = _first_allowed(matches, self.root)
            if found is not None:
                return found
        return None


class TextSearchStrategy(ResolutionStrategy):
    """Falls back to grepping ``app/`` and ``lib/`` for the definition line."""

    def __init__(self, root: Path | str, runner: Runner | None = None) -> None:
        self.root = Path(root)
        self._runner = runner or self._default_runner

    def resolve(self, name: str, current_file: str) -> Optional[str]:
        for keyword in ("class", "module"):
            pattern = rf"^[[:space:]]*{keyword}[[:space:]]+{name}\b"
            args = ["grep", "-rlE", pattern, "--include=*.rb", "app", "lib"]
            try:
                output = self._runner(args, cwd=self.root)
            except FileNotFoundError:
                logger.debug("grep is not available; skipping text search for %s", name)
                return None
            matches = [
                os.path.normpath(str(self.root / line.strip())) for line in output.splitlines() if line.strip()
            ]
            found = _first_allowed(matches, self.root)
            if found is not None:
                return found
        return None

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
        import subprocess

        # grep exits 1 on no match and 2 when app/ or lib/ is missing; matches still print.
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=False,
            text=True,
            capture_output=True,
        )
        return completed.stdout


def load_structure(
    path: str, inheritance_depth: int = 0, parser: Optional[RubyParser] = None
) -> Optional[FileStructure]:
    """Parse and visit ``path``; None when it cannot be read or parsed."""
    try:
        source = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Cannot read ancestor %s: %s", path, exc)
        return None
    tree = parser.parse(source, path) if parser is not None else parse(source, path)
    if tree is None:
        return None
    return Visitor(path, inheritance_depth).visit(tree).structure


class AncestorResolver:
    """Resolves ancestor names to files and walks the hierarchy.

    Resolutions are memoized per instance, keyed by the bare name. Two
    different classes that share a short name in different namespaces
    therefore resolve to the same file.
    """

    def __init__(
        self,
        root: Path | str,
        strategies: Sequence[ResolutionStrategy] | None = None,
        structure_loader: StructureLoader | None = None,
        parser: RubyParser | None = None,
    ) -> None:
        self.root = Path(root)
        self._parser = parser
        self.strategies: List[ResolutionStrategy] = (
            list(strategies)
            if strategies is not None
            else [ConventionStrategy(self.root), TextSearchStrategy(self.root)]
        )
        self._load_structure = structure_loader or self._parse_structure
        self._cache: Dict[str, Optional[str]] = {}

    def resolve(self, name: str, current_file: str) -> Optional[str]:
        if not name:
            return None
        if name in self._cache:
            return self._cache[name]

        resolved: Optional[str] = None
        for strategy in self.strategies:
            resolved = strategy.resolve(name, current_file)
            if resolved is not None:
                break
        if resolved is None:
            logger.debug("Could not resolve %s from %s", name, current_file)
        self._cache[name] = resolved
        return resolved

    def _parse_structure(self, path: str, inheritance_depth: int) -> Optional[FileStructure]:
        return load_structure(path, inheritance_depth, self._parser)

    def collect_ancestors(
        self,
        structure: FileStructure,
        current_file: str,
        depth: int = 0,
        visited: Optional[Set[str]] = None,
    ) -> List[AncestorNode]:
        """Every reachable parent and included/prepended module, at most ``MAX_DEPTH`` deep.

        ``extend`` relations are not walked; they add singleton methods only.
        """
        if visited is None:
            visited = set()
        if depth >= MAX_DEPTH:
            return []

        references = [(cls.parent_name, "class") for cls in structure.classes if cls.parent_name]
        references.extend((relation.module_name, "module") for relation in structure.included)
        references.extend((relation.module_name, "module") for relation in structure.prepended)

        ancestors: List[AncestorNode] = []
        for name, kind in references:
            if name in visited:
                continue
            path = self.resolve(name, current_file)
            if path is None or not os.path.exists(path):
                continue

            visited.add(name)
            ancestors.append(AncestorNode(name=name, file=path, depth=depth + 1, kind=kind))

            ancestor_structure = self._load_structure(path, depth + 1)
            if ancestor_structure is None:
                continue
            ancestors.extend(self.collect_ancestors(ancestor_structure, path, depth + 1, visited))
        return ancestors


__all__ = [
    "AncestorResolver",
    "ConventionStrategy",
    "MAX_DEPTH",
    "ResolutionStrategy",
    "TextSearchStrategy",
    "is_excluded",
    "load_structure",
    "underscore",
]
