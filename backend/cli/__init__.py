"""
Transwatch CLI Package.

Command-line entry point.
Requires Python 3.11+.
"""

from cli.main import main

__all__ = ["main"]
