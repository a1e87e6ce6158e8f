"""
Transwatch Builder Package.

Per-file compilation, output mapping, and the watch-loop exit gate.
Requires Python 3.11+.
"""

from builder.cancellation import CancellationGate, SessionOutcome
from builder.compiler import CompileError, Compiler, load_compiler, passthrough
from builder.orchestrator import (
    BuildOrchestrator,
    BuildOutcome,
    OutcomeKind,
    TargetSetupError,
    output_path,
    prepare_target,
)

__all__ = [
    "CancellationGate",
    "SessionOutcome",
    "CompileError",
    "Compiler",
    "load_compiler",
    "passthrough",
    "BuildOrchestrator",
    "BuildOutcome",
    "OutcomeKind",
    "TargetSetupError",
    "output_path",
    "prepare_target",
]
