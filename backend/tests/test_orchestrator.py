"""
Tests for Build Orchestrator.

Requires Python 3.11+.
"""

from pathlib import Path

import pytest

from builder.cancellation import SHUTDOWN_NOTICE, SessionOutcome
from builder.orchestrator import (
    BuildOrchestrator,
    OutcomeKind,
    TargetSetupError,
    output_path,
    prepare_target,
)
from catalog.path_catalog import PathCatalog
from watcher.event_stream import EventStream
from watcher.native import NativeNotifier
from watcher.polling import PollingNotifier


class TestOutputPath:
    """Test cases for output path mapping."""

    def test_mirrors_relative_path(self):
        assert output_path(Path("a/b.src"), Path("out"), ".src", ".out") == Path("out/a/b.out")

    def test_default_target_is_beside_source(self):
        assert output_path(Path("proj/sub/c.src"), Path("."), ".src", ".out") == Path("proj/sub/c.out")

    def test_is_repeatable(self):
        first = output_path(Path("proj/a.src"), Path("out"), ".src", ".out")
        second = output_path(Path("proj/a.src"), Path("out"), ".src", ".out")

        assert first == second

    def test_absolute_source_is_rerooted(self):
        assert output_path(Path("/abs/x/y.src"), Path("out"), ".src", ".out") == Path("out/abs/x/y.out")

    def test_other_extension_is_replaced(self):
        assert output_path(Path("notes.txt"), Path("out"), ".src", ".out") == Path("out/notes.out")

    def test_only_final_source_suffix_is_swapped(self):
        assert output_path(Path("a.test.src"), Path("out"), ".src", ".out") == Path("out/a.test.out")


class TestPrepareTarget:
    """Test cases for target directory setup."""

    def test_creates_nested_directories(self, workdir: Path):
        prepare_target(Path("build/nested"))
        prepare_target(Path("build/nested"))

        assert Path("build/nested").is_dir()

    def test_file_in_the_way(self, workdir: Path):
        Path("build").write_text("not a directory")

        with pytest.raises(TargetSetupError) as exc_info:
            prepare_target(Path("build"))

        assert exc_info.value.path == Path("build")


class TestBatchBuild:
    """Test cases for batch mode."""

    def test_all_files_written(self, source_tree: Path, make_config, compiler, capsys):
        config = make_config(source_tree)
        files = PathCatalog(config).collect()
        orchestrator = BuildOrchestrator(config, compiler)

        outcomes = orchestrator.run_batch(files)

        assert orchestrator.exit_status(outcomes) == 0
        assert [o.kind for o in outcomes] == [OutcomeKind.WRITTEN] * 3
        assert Path("out/proj/a.out").read_text() == "ALPHA\n"
        assert Path("out/proj/b.out").read_text() == "BETA\n"
        assert Path("out/proj/sub/c.out").read_text() == "GAMMA\n"

        out = capsys.readouterr().out
        assert "Built proj/a.src -> out/proj/a.out" in out
        assert out.count("Built ") == 3

    def test_compile_failure_does_not_stop_batch(self, source_tree: Path, make_config, compiler, capsys):
        (source_tree / "b.src").write_text("error: unexpected token\n")
        config = make_config(source_tree)
        orchestrator = BuildOrchestrator(config, compiler)

        outcomes = orchestrator.run_batch(PathCatalog(config).collect())

        assert orchestrator.exit_status(outcomes) == 1
        assert outcomes[1].kind is OutcomeKind.COMPILE_FAILED
        assert outcomes[1].message == "unexpected token"
        assert Path("out/proj/a.out").exists()
        assert Path("out/proj/sub/c.out").exists()
        assert not Path("out/proj/b.out").exists()
        assert "proj/b.src: unexpected token" in capsys.readouterr().err

    def test_missing_file_is_read_failure(self, source_tree: Path, make_config, compiler):
        config = make_config(source_tree)
        orchestrator = BuildOrchestrator(config, compiler)

        outcomes = orchestrator.run_batch([Path("proj/gone.src"), Path("proj/a.src")])

        assert outcomes[0].kind is OutcomeKind.READ_FAILED
        assert outcomes[1].ok
        assert orchestrator.exit_status(outcomes) == 1

    def test_write_failure_is_reported(self, source_tree: Path, make_config, compiler, capsys):
        Path("out").mkdir()
        Path("out/proj").write_text("a file where a directory should be")
        config = make_config(source_tree)
        orchestrator = BuildOrchestrator(config, compiler)

        outcome = orchestrator.build_file(Path("proj/a.src"))

        assert outcome.kind is OutcomeKind.WRITE_FAILED
        assert outcome.target == Path("out/proj/a.out")
        assert "proj/a.src:" in capsys.readouterr().err

    def test_compiler_crash_is_isolated(self, source_tree: Path, make_config):
        def broken(source: str) -> str:
            raise ValueError("boom")

        orchestrator = BuildOrchestrator(make_config(source_tree), broken)

        outcome = orchestrator.build_file(Path("proj/a.src"))

        assert outcome.kind is OutcomeKind.COMPILE_FAILED
        assert "boom" in outcome.message

    def test_print_mode(self, source_tree: Path, make_config, compiler, capsys):
        """Printed output replaces files and status lines."""
        config = make_config(source_tree, print_output=True)
        orchestrator = BuildOrchestrator(config, compiler)

        outcomes = orchestrator.run_batch(PathCatalog(config).collect())

        assert orchestrator.exit_status(outcomes) == 0
        out = capsys.readouterr().out
        assert out == "ALPHA\nBETA\nGAMMA\n"
        assert not Path("out").exists()

    def test_output_file(self, source_tree: Path, make_config, compiler):
        config = make_config(source_tree / "a.src", output_file=Path("single.out"))
        orchestrator = BuildOrchestrator(config, compiler)

        outcome = orchestrator.build_file(Path("proj/a.src"))

        assert outcome.target == Path("single.out")
        assert Path("single.out").read_text() == "ALPHA\n"

    def test_rebuild_overwrites_same_output(self, source_tree: Path, make_config, compiler):
        orchestrator = BuildOrchestrator(make_config(source_tree), compiler)

        first = orchestrator.build_file(Path("proj/a.src"))
        (source_tree / "a.src").write_text("alpha two\n")
        second = orchestrator.build_file(Path("proj/a.src"))

        assert first.target == second.target
        assert second.target.read_text() == "ALPHA TWO\n"


class RecordingStream:
    """Iterable of paths that can raise part-way and records close()."""

    def __init__(self, items: list) -> None:
        self.items = items
        self.closed = 0

    def __iter__(self):
        for item in self.items:
            if isinstance(item, BaseException):
                raise item
            yield Path(item)

    def close(self) -> None:
        self.closed += 1


class TestWatchLoop:
    """Test cases for watch mode."""

    def test_builds_each_event_and_survives_failures(self, source_tree: Path, make_config, compiler, capsys):
        (source_tree / "b.src").write_text("error: bad\n")
        orchestrator = BuildOrchestrator(make_config(source_tree, watch=True), compiler)
        stream = RecordingStream(["proj/b.src", "proj/gone.src", "proj/a.src"])

        outcome = orchestrator.watch(stream)

        assert outcome is SessionOutcome.EXHAUSTED
        assert stream.closed == 1
        assert Path("out/proj/a.out").read_text() == "ALPHA\n"
        captured = capsys.readouterr()
        assert "proj/b.src: bad" in captured.err
        assert "proj/gone.src:" in captured.err
        assert SHUTDOWN_NOTICE not in captured.err

    def test_interrupt_is_clean_cancellation(self, source_tree: Path, make_config, compiler, capsys):
        orchestrator = BuildOrchestrator(make_config(source_tree, watch=True), compiler)
        stream = RecordingStream(["proj/a.src", KeyboardInterrupt(), "proj/b.src"])

        outcome = orchestrator.watch(stream)

        assert outcome is SessionOutcome.CANCELLED
        assert stream.closed == 1
        assert Path("out/proj/a.out").exists()
        assert not Path("out/proj/b.out").exists()
        assert capsys.readouterr().err.count(SHUTDOWN_NOTICE) == 1

    def test_unexpected_error_propagates(self, source_tree: Path, make_config, compiler, capsys):
        orchestrator = BuildOrchestrator(make_config(source_tree, watch=True), compiler)
        stream = RecordingStream([RuntimeError("backend exploded")])

        with pytest.raises(RuntimeError, match="backend exploded"):
            orchestrator.watch(stream)

        assert stream.closed == 1
        assert SHUTDOWN_NOTICE not in capsys.readouterr().err

    def test_interrupt_in_polling_sleep(self, source_tree: Path, make_config, compiler, capsys):
        """Cancellation while the polling backend sleeps ends the session."""
        files = [Path("proj/a.src")]
        sleeps: list[float] = []

        def sleep(seconds: float) -> None:
            sleeps.append(seconds)
            raise KeyboardInterrupt

        backend = PollingNotifier(files, sleep=sleep)
        stream = EventStream(backend, ".src")
        orchestrator = BuildOrchestrator(make_config(source_tree, watch=True), compiler)

        outcome = orchestrator.watch(stream)

        assert outcome is SessionOutcome.CANCELLED
        assert sleeps == [1.0]
        assert stream.finished
        assert backend.next_changes() == []
        assert capsys.readouterr().err.count(SHUTDOWN_NOTICE) == 1

    def test_interrupt_in_native_read_releases_handles(
        self, source_tree: Path, make_config, compiler, observer, monkeypatch, capsys
    ):
        """Cancellation during the blocking read releases every watch handle."""
        backend = NativeNotifier([Path("proj"), Path("proj/sub")], observer_class=lambda: observer)

        def interrupted_read(timeout=None):
            raise KeyboardInterrupt

        monkeypatch.setattr(backend, "read", interrupted_read)
        stream = EventStream(backend, ".src")
        orchestrator = BuildOrchestrator(make_config(source_tree, watch=True), compiler)

        outcome = orchestrator.watch(stream)

        assert outcome is SessionOutcome.CANCELLED
        assert len(observer.unscheduled) == 2
        assert observer.stopped
        assert backend.handles == {}
        assert capsys.readouterr().err.count(SHUTDOWN_NOTICE) == 1
