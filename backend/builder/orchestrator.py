"""
Transwatch Build Orchestrator.

Compiles source files one at a time, writes mirrored outputs, and
isolates per-file failures in both batch and watch mode.
Requires Python 3.11+.
"""

import sys
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TextIO

from builder.cancellation import CancellationGate, SessionOutcome
from builder.compiler import CompileError, Compiler
from utils.config import BuildConfig
from utils.logger import LoggerMixin


class OutcomeKind(str, Enum):
    """Per-file build result."""

    WRITTEN = "written"
    COMPILE_FAILED = "compile_failed"
    WRITE_FAILED = "write_failed"
    READ_FAILED = "read_failed"


@dataclass(frozen=True)
class BuildOutcome:
    """Result of building one source file."""

    source: Path
    kind: OutcomeKind
    target: Path | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        """True when the output was produced."""
        return self.kind is OutcomeKind.WRITTEN


class TargetSetupError(Exception):
    """The target directory could not be created or is not a directory."""

    def __init__(self, path: Path, cause: OSError) -> None:
        super().__init__(f"cannot use target directory {path}: {cause.strerror or cause}")
        self.path = path
        self.cause = cause


def prepare_target(target_dir: Path) -> Path:
    """
    Create the target directory if needed.

    Args:
        target_dir: Output root

    Returns:
        The same path, now an existing directory

    Raises:
        TargetSetupError: If it cannot be created or exists as a non-directory
    """
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise TargetSetupError(target_dir, e) from e
    return target_dir


def output_path(
    source: Path,
    target_dir: Path,
    source_extension: str,
    target_extension: str,
) -> Path:
    """
    Map a source path to its output path.

    The source's path (as catalogued) is re-rooted under ``target_dir`` with
    the extension swapped, so ``a/b.src`` becomes ``<target>/a/b.out``.
    Absolute sources lose their anchor before re-rooting.

    Args:
        source: Catalogued source path
        target_dir: Output root
        source_extension: Suffix to strip
        target_extension: Suffix to add

    Returns:
        Output path; the same inputs always give the same result
    """
    relative = Path(*source.parts[1:]) if source.is_absolute() else source
    name = relative.name
    if name.endswith(source_extension):
        stem = name[: -len(source_extension)]
    else:
        stem = Path(name).stem
    return target_dir / relative.parent / f"{stem}{target_extension}"


class BuildOrchestrator(LoggerMixin):
    """
    Runs the read, compile, write pipeline for each file.

    Status lines go to ``stdout``; per-file failures go to ``stderr``.
    With ``print_output`` every compiled text goes to ``stdout`` instead of
    a file and status lines are suppressed.
    """

    def __init__(
        self,
        config: BuildConfig,
        compiler: Compiler,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            config: Build configuration
            compiler: Compile service
            stdout: Status / printed-output stream (defaults to sys.stdout)
            stderr: Failure report stream (defaults to sys.stderr)
        """
        self._config = config
        self._compile = compiler
        self._stdout = stdout
        self._stderr = stderr

    @property
    def stdout(self) -> TextIO:
        return self._stdout or sys.stdout

    @property
    def stderr(self) -> TextIO:
        return self._stderr or sys.stderr

    def target_for(self, source: Path) -> Path:
        """Output path of ``source`` under this configuration."""
        if self._config.output_file is not None:
            return self._config.output_file
        return output_path(
            source,
            self._config.target_dir,
            self._config.source_extension,
            self._config.target_extension,
        )

    def build_file(self, source: Path) -> BuildOutcome:
        """
        Build a single file. Never raises for per-file problems.

        Args:
            source: Path of the file to compile

        Returns:
            BuildOutcome describing what happened
        """
        outcome = self._build(source)
        self._report(outcome)
        return outcome

    def _build(self, source: Path) -> BuildOutcome:
        try:
            text = source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return BuildOutcome(source, OutcomeKind.READ_FAILED, message=_reason(e))

        try:
            compiled = self._compile(text)
        except CompileError as e:
            return BuildOutcome(source, OutcomeKind.COMPILE_FAILED, message=e.diagnostic)
        except Exception as e:
            self.log.error("compiler_crashed", path=str(source), error=str(e), exc_info=True)
            return BuildOutcome(
                source, OutcomeKind.COMPILE_FAILED, message=f"internal compiler error: {e}"
            )

        if self._config.print_output:
            self.stdout.write(compiled)
            if not compiled.endswith("\n"):
                self.stdout.write("\n")
            self.stdout.flush()
            return BuildOutcome(source, OutcomeKind.WRITTEN)

        target = self.target_for(source)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(compiled, encoding="utf-8")
        except OSError as e:
            return BuildOutcome(source, OutcomeKind.WRITE_FAILED, target, _reason(e))
        return BuildOutcome(source, OutcomeKind.WRITTEN, target)

    def _report(self, outcome: BuildOutcome) -> None:
        if outcome.ok:
            self.log.debug("file_built", path=str(outcome.source), target=str(outcome.target))
            if not self._config.print_output:
                print(f"Built {outcome.source} -> {outcome.target}", file=self.stdout, flush=True)
            return

        self.log.info(
            "file_failed",
            path=str(outcome.source),
            kind=outcome.kind.value,
            reason=outcome.message,
        )
        print(f"{outcome.source}: {outcome.message}", file=self.stderr, flush=True)

    def run_batch(self, files: Iterable[Path]) -> list[BuildOutcome]:
        """
        Build every file once, in order, attempting all of them.

        Args:
            files: Catalogued source files

        Returns:
            One outcome per file
        """
        outcomes = [self.build_file(source) for source in files]
        failed = sum(1 for o in outcomes if not o.ok)
        self.log.info("batch_complete", files=len(outcomes), failed=failed)
        return outcomes

    @staticmethod
    def exit_status(outcomes: Iterable[BuildOutcome]) -> int:
        """Non-zero if and only if any file failed."""
        return 0 if all(o.ok for o in outcomes) else 1

    def watch(self, stream: Iterable[Path]) -> SessionOutcome:
        """
        Build each changed file as the stream yields it.

        A failing file is reported and the loop moves on to the next
        event. The loop ends when the stream is exhausted or the user
        interrupts it; the stream is closed on the way out.

        Args:
            stream: EventStream (or any iterable of paths with ``close()``)

        Returns:
            SessionOutcome of the session
        """
        close = getattr(stream, "close", None) or (lambda: None)
        gate = CancellationGate(release=close, out=self.stderr)

        def consume() -> None:
            for source in stream:
                self.build_file(source)

        return gate.run(consume)


def _reason(error: Exception) -> str:
    if isinstance(error, OSError) and error.strerror:
        return error.strerror
    return str(error)
