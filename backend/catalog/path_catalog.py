"""
Transwatch Path Catalog.

Recursive source discovery with hidden-entry filtering and
order-preserving deduplication.
Requires Python 3.11+.
"""

import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from utils.config import BuildConfig
from utils.logger import LoggerMixin

HIDDEN_MARKER = "."

# Ordered, duplicate-free sequence of source paths
FileSet = list[Path]


class ScanError(Exception):
    """A directory could not be read while building the catalog."""

    def __init__(self, path: Path, cause: OSError) -> None:
        super().__init__(f"cannot scan {path}: {cause.strerror or cause}")
        self.path = path
        self.cause = cause


def normalize_path(path: str | os.PathLike[str]) -> Path:
    """Collapse redundant separators and ``.``/``..`` segments."""
    return Path(os.path.normpath(os.fspath(path)))


def unique(paths: Iterable[Path]) -> list[Path]:
    """Drop duplicates (after normalization), keeping first-seen order."""
    return list(dict.fromkeys(normalize_path(p) for p in paths))


def watch_targets(files: Iterable[Path]) -> list[Path]:
    """
    Derive the directories to watch from a file set.

    Args:
        files: Catalogued source paths

    Returns:
        Each file's parent directory, deduplicated in catalog order
    """
    return unique(Path(p).parent for p in files)


class PathCatalog(LoggerMixin):
    """
    Discovers candidate source files under a set of roots.

    Directory roots are walked depth-first with entries visited in name
    order, so the catalog is deterministic. File roots are taken as given.
    """

    def __init__(self, config: BuildConfig) -> None:
        """
        Initialize the catalog.

        Args:
            config: Build configuration supplying roots and the source extension
        """
        self._roots = config.roots
        self._extension = config.source_extension

    def collect(self) -> FileSet:
        """
        Build the file set for all roots.

        Returns:
            Unique source paths in discovery order

        Raises:
            ScanError: If any directory under a root cannot be read
        """
        found: list[Path] = []
        for root in self._roots:
            root = normalize_path(root)
            if root.is_dir():
                found.extend(self._scan_directory(root))
            else:
                # Explicit files skip the extension filter; missing ones
                # surface later as per-file read failures
                found.append(root)

        files = unique(found)
        self.log.debug("catalog_built", roots=len(self._roots), files=len(files))
        return files

    def _scan_directory(self, directory: Path) -> Iterator[Path]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            raise ScanError(directory, e) from e

        for entry in entries:
            if entry.name.startswith(HIDDEN_MARKER):
                continue
            path = directory / entry.name
            if entry.is_dir(follow_symlinks=False):
                yield from self._scan_directory(path)
            elif entry.name.endswith(self._extension):
                yield path
