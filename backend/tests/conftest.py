"""
Transwatch Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from watchdog.observers.api import ObservedWatch

from builder.compiler import CompileError
from utils.config import BuildConfig, get_settings
from utils.logger import configure_logging


@pytest.fixture(scope="session", autouse=True)
def quiet_logging() -> None:
    """Keep structured logs out of captured output."""
    configure_logging("CRITICAL")


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate tests from BUILD_/WATCHER_/LOG_ variables in the environment."""
    for name in list(os.environ):
        if name.startswith(("BUILD_", "WATCHER_", "LOG_")):
            monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the test from inside a temporary directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def source_tree(workdir: Path) -> Path:
    """
    Create a small project and return its relative root.

    proj/
        a.src
        b.src
        .hidden.src
        notes.txt
        .git/ignored.src
        sub/c.src
    """
    root = Path("proj")
    (root / "sub").mkdir(parents=True)
    (root / ".git").mkdir()
    (root / "a.src").write_text("alpha\n")
    (root / "b.src").write_text("beta\n")
    (root / ".hidden.src").write_text("hidden\n")
    (root / "notes.txt").write_text("not a source\n")
    (root / ".git" / "ignored.src").write_text("ignored\n")
    (root / "sub" / "c.src").write_text("gamma\n")
    return root


@pytest.fixture
def make_config() -> Callable[..., BuildConfig]:
    """Factory for BuildConfig with test-friendly defaults."""

    def factory(*roots: str | Path, **overrides: object) -> BuildConfig:
        values: dict[str, object] = {"target_dir": Path("out")}
        values.update(overrides)
        return BuildConfig(roots=tuple(Path(r) for r in roots), **values)  # type: ignore[arg-type]

    return factory


def upper_compiler(source: str) -> str:
    """Compiler stand-in: upper-cases the text, rejects lines starting with 'error:'."""
    for line in source.splitlines():
        if line.startswith("error:"):
            raise CompileError(line.removeprefix("error:").strip())
    return source.upper()


@pytest.fixture
def compiler() -> Callable[[str], str]:
    return upper_compiler


class FakeObserver:
    """Stands in for a watchdog observer; events are injected by the test."""

    def __init__(self) -> None:
        self.missing: tuple[str, ...] = ()
        self.handlers: dict[ObservedWatch, object] = {}
        self.unscheduled: list[ObservedWatch] = []
        self.started = False
        self.stopped = False
        self.joined = False

    def schedule(self, handler, path: str, *, recursive: bool = False) -> ObservedWatch:
        if path in self.missing:
            raise FileNotFoundError(2, "No such file or directory", path)
        watch = ObservedWatch(path, recursive=recursive)
        self.handlers[watch] = handler
        return watch

    def unschedule(self, watch: ObservedWatch) -> None:
        self.unscheduled.append(watch)
        del self.handlers[watch]

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def join(self, timeout: float | None = None) -> None:
        self.joined = True

    def emit(self, event) -> None:
        directory = str(Path(event.src_path).parent)
        for watch, handler in self.handlers.items():
            if watch.path == directory:
                handler.dispatch(event)


@pytest.fixture
def observer() -> FakeObserver:
    return FakeObserver()
