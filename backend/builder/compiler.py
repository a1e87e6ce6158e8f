"""
Transwatch Compiler Boundary.

The external compile service is any callable taking source text and
returning output text, raising CompileError with a diagnostic on failure.
Requires Python 3.11+.
"""

import importlib
from typing import Protocol


class CompileError(Exception):
    """The compiler rejected a source file."""

    def __init__(self, diagnostic: str) -> None:
        super().__init__(diagnostic)
        self.diagnostic = diagnostic


class Compiler(Protocol):
    """Synchronous, opaque source-to-source compile service."""

    def __call__(self, source: str) -> str: ...


def passthrough(source: str) -> str:
    """Identity compiler; copies the source text unchanged."""
    return source


def load_compiler(import_string: str) -> Compiler:
    """
    Resolve a compiler from a ``module:attribute`` import string.

    Args:
        import_string: e.g. ``"builder.compiler:passthrough"``

    Returns:
        The compile callable

    Raises:
        ValueError: If the string is malformed or the attribute is missing
        ImportError: If the module cannot be imported
        TypeError: If the attribute is not callable
    """
    module_name, _, attribute = import_string.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"compiler must look like 'module:callable', got {import_string!r}")

    module = importlib.import_module(module_name)
    try:
        compiler = getattr(module, attribute)
    except AttributeError as e:
        raise ValueError(f"{module_name} has no attribute {attribute!r}") from e

    if not callable(compiler):
        raise TypeError(f"{import_string} is not callable")
    return compiler
