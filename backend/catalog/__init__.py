"""
Transwatch Catalog Package.

Source file discovery for build and watch sessions.
Requires Python 3.11+.
"""

from catalog.path_catalog import FileSet, PathCatalog, ScanError, normalize_path, watch_targets

__all__ = [
    "FileSet",
    "PathCatalog",
    "ScanError",
    "normalize_path",
    "watch_targets",
]
