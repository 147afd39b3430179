"""Relative path sets and Ant-style directory scanning."""

import os
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

DEFAULT_INCLUDES = ["**/**"]

# Version control and editor leftovers, never packaged.
DEFAULT_EXCLUDES = [
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/CVS",
    "**/CVS/**",
    "**/.cvsignore",
    "**/SCCS",
    "**/SCCS/**",
    "**/vssver.scc",
    "**/.svn",
    "**/.svn/**",
    "**/.DS_Store",
    "**/.git",
    "**/.git/**",
    "**/.gitattributes",
    "**/.gitignore",
    "**/.gitmodules",
    "**/.hg",
    "**/.hg/**",
    "**/.hgignore",
    "**/.hgsub",
    "**/.hgsubstate",
    "**/.hgtags",
    "**/.bzr",
    "**/.bzr/**",
    "**/.bzrignore",
]


def normalize_path(path: str) -> str:
    """Use forward slashes and drop leading slashes: ``\\\\a\\b/`` -> ``a/b/``."""
    return path.replace("\\", "/").lstrip("/")


def split_patterns(value: Optional[str]) -> List[str]:
    """Split a comma-separated pattern list, ignoring blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class PathSet:
    """Insertion-ordered set of normalized relative paths."""

    def __init__(self, paths: Optional[Iterable[str]] = None):
        self._paths = {}
        if paths is not None:
            self.add_all(paths)

    def add(self, path: str) -> None:
        self._paths[normalize_path(path)] = None

    def add_all(self, paths: Iterable[str], prefix: Optional[str] = None) -> None:
        for path in paths:
            if prefix:
                path = normalize_path(prefix) + path
            self.add(path)

    def remove(self, path: str) -> bool:
        key = normalize_path(path)
        if key not in self._paths:
            return False
        del self._paths[key]
        return True

    def paths(self) -> List[str]:
        return list(self._paths)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_path(path) in self._paths

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._paths))

    def __len__(self) -> int:
        return len(self._paths)

    def __repr__(self) -> str:
        return f"PathSet({self.paths()!r})"


def _tokenize(path: str) -> List[str]:
    return [part for part in normalize_path(path).split("/") if part]


def _match_tokens(pattern: Sequence[str], parts: Sequence[str]) -> bool:
    if not pattern:
        return not parts
    head = pattern[0]
    if head == "**":
        rest = pattern[1:]
        return any(_match_tokens(rest, parts[index:]) for index in range(len(parts) + 1))
    if not parts:
        return False
    return fnmatchcase(parts[0], head) and _match_tokens(pattern[1:], parts[1:])


def match_path(pattern: str, path: str) -> bool:
    """Match *path* against an Ant-style pattern.

    ``**`` spans any number of directories, ``*`` and ``?`` stay within one
    path segment, and a trailing ``/`` is shorthand for ``/**``.
    """
    pattern = normalize_path(pattern)
    if pattern.endswith("/"):
        pattern += "**"
    return _match_tokens(_tokenize(pattern), _tokenize(path))


class DirectoryScanner:
    """Collects the files and directories of a tree selected by include/exclude patterns."""

    def __init__(
        self,
        basedir: Path,
        includes: Optional[Sequence[str]] = None,
        excludes: Optional[Sequence[str]] = None,
        default_excludes: bool = True,
    ):
        self.basedir = Path(basedir)
        self.includes = list(includes) if includes else list(DEFAULT_INCLUDES)
        self.excludes = list(excludes or [])
        if default_excludes:
            self.excludes.extend(DEFAULT_EXCLUDES)

    def is_included(self, path: str) -> bool:
        return any(match_path(pattern, path) for pattern in self.includes)

    def is_excluded(self, path: str) -> bool:
        return any(match_path(pattern, path) for pattern in self.excludes)

    def scan(self) -> Tuple[List[str], List[str]]:
        """Return ``(files, directories)`` as sorted relative paths."""
        files: List[str] = []
        directories: List[str] = []
        if not self.basedir.is_dir():
            return files, directories

        for root, dirs, names in os.walk(self.basedir):
            dirs.sort()
            relative_root = Path(root).relative_to(self.basedir).as_posix()
            prefix = "" if relative_root == "." else relative_root + "/"
            for name in dirs:
                relative = prefix + name
                if self.is_included(relative) and not self.is_excluded(relative):
                    directories.append(relative)
            for name in names:
                relative = prefix + name
                if self.is_included(relative) and not self.is_excluded(relative):
                    files.append(relative)
        return sorted(files), sorted(directories)


def scan_directory(
    basedir: Path,
    includes: Optional[Sequence[str]] = None,
    excludes: Optional[Sequence[str]] = None,
    include_directories: bool = False,
) -> PathSet:
    """Scan *basedir* with default excludes and return the selection as a PathSet."""
    files, directories = DirectoryScanner(basedir, includes, excludes).scan()
    path_set = PathSet(files)
    if include_directories:
        path_set.add_all(directories)
    return path_set
