"""Select the changed files worth analyzing."""

from __future__ import annotations

from fnmatch import fnmatch
from typing import Iterable, List, Optional, Sequence

from .config import DEFAULT_EXCLUDED_DIRECTORIES, DEFAULT_EXCLUDED_SUFFIXES, FilesConfig

RUBY_EXTENSION = ".rb"


class FileFilter:
    """Keeps Ruby sources and drops specs, tests, configuration and ignored paths.

    Patterns accept ``prefix/``, ``prefix/**``, ``**/suffix`` and fnmatch
    globs; a bare ``name`` matches that path prefix or any ``/name/`` segment.
    """

    def __init__(
        self,
        excluded_suffixes: Optional[Sequence[str]] = None,
        excluded_directories: Optional[Sequence[str]] = None,
        ignore_paths: Sequence[str] = (),
        include_paths: Sequence[str] = (),
    ) -> None:
        self.excluded_suffixes = tuple(
            DEFAULT_EXCLUDED_SUFFIXES if excluded_suffixes is None else excluded_suffixes
        )
        self.excluded_directories = frozenset(
            DEFAULT_EXCLUDED_DIRECTORIES if excluded_directories is None else excluded_directories
        )
        self.ignore_paths = list(ignore_paths)
        self.include_paths = list(include_paths)

    @classmethod
    def from_config(cls, files: FilesConfig) -> "FileFilter":
        return cls(
            excluded_suffixes=files.excluded_suffixes,
            excluded_directories=files.excluded_directories,
            ignore_paths=files.ignore_paths,
            include_paths=files.include_paths,
        )

    def accepts(self, path: str) -> bool:
        normalized = path.replace("\\", "/")
        if not normalized.endswith(RUBY_EXTENSION):
            return False
        if self.excluded_suffixes and normalized.endswith(self.excluded_suffixes):
            return False
        directories = normalized.split("/")[:-1]
        if any(segment in self.excluded_directories for segment in directories):
            return False
        if any(_pattern_matches(normalized, pattern) for pattern in self.ignore_paths):
            return False
        if self.include_paths and not any(_pattern_matches(normalized, pattern) for pattern in self.include_paths):
            return False
        return True

    def apply(self, paths: Iterable[str]) -> List[str]:
        return [path for path in paths if self.accepts(path)]


def _pattern_matches(path: str, pattern: str) -> bool:
    if pattern.endswith("/**"):
        prefix = pattern[:-3]
        return path == prefix or path.startswith(prefix + "/")
    if pattern.startswith("**/"):
        suffix = pattern[3:]
        return path == suffix or path.endswith("/" + suffix) or fnmatch(path, pattern)
    if any(ch in pattern for ch in "*?["):
        return fnmatch(path, pattern)
    prefix = pattern.rstrip("/")
    return path.startswith(prefix + "/") or path == prefix or f"/{prefix}/" in f"/{path}"


__all__ = ["FileFilter", "RUBY_EXTENSION"]
