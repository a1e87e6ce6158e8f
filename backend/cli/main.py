"""
Transwatch Command Line.

Compiles source files once, or watches them and recompiles on change.
Requires Python 3.11+.

Usage:
    transwatch [-w] [-t DIR] [-p] [-o FILE] PATH [PATH ...]
"""

import argparse
import sys
from pathlib import Path
from typing import TextIO

from builder.compiler import Compiler, load_compiler
from builder.orchestrator import BuildOrchestrator, TargetSetupError, prepare_target
from catalog.path_catalog import PathCatalog, ScanError
from utils.config import BuildConfig, get_settings
from utils.logger import configure_logging, get_logger
from watcher.backend import create_backend
from watcher.event_stream import EventStream
from watcher.probe import probe_backend

logger = get_logger("cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="transwatch",
        description="Compile source files, or watch them and recompile on change",
    )
    parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        metavar="PATH",
        help="Source files or directories to compile",
    )
    parser.add_argument(
        "-w",
        "--watch",
        action="store_true",
        help="Watch the inputs and recompile files as they change",
    )
    parser.add_argument(
        "-t",
        "--target",
        type=Path,
        default=Path("."),
        metavar="DIR",
        help="Output root; outputs mirror the input paths under it (default: .)",
    )
    parser.add_argument(
        "-p",
        "--print",
        dest="print_output",
        action="store_true",
        help="Write compiled output to stdout instead of files",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        metavar="FILE",
        help="Write the output of a single input file to FILE",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log verbosity on stderr (default: LOG_LEVEL or WARNING)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {settings.app_version}",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Parsed namespace
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.output is not None and args.watch:
        parser.error("-o cannot be combined with -w")
    if args.output is not None and args.print_output:
        parser.error("-o cannot be combined with -p")
    return args


def run(
    args: argparse.Namespace,
    compiler: Compiler | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """
    Execute a batch build or a watch session.

    Args:
        args: Parsed command-line arguments
        compiler: Compile service (defaults to ``BUILD_COMPILER``)
        stdout: Status and printed-output stream
        stderr: Failure stream

    Returns:
        Process exit status

    Raises:
        TargetSetupError: If the target directory cannot be prepared
        ScanError: If a root directory cannot be read
    """
    settings = get_settings()
    config = BuildConfig.from_settings(
        args.paths,
        settings,
        target_dir=args.target,
        watch=args.watch,
        print_output=args.print_output,
        output_file=args.output,
    )
    compiler = compiler or load_compiler(settings.build.compiler)

    if not config.print_output and config.output_file is None:
        prepare_target(config.target_dir)

    files = PathCatalog(config).collect()
    if config.output_file is not None and len(files) != 1:
        print(
            f"transwatch: error: -o needs exactly one input file, found {len(files)}",
            file=stderr or sys.stderr,
        )
        return EXIT_USAGE

    orchestrator = BuildOrchestrator(config, compiler, stdout=stdout, stderr=stderr)

    if not config.watch:
        outcomes = orchestrator.run_batch(files)
        return orchestrator.exit_status(outcomes)

    choice = probe_backend(config.force_polling)
    backend = create_backend(choice, files)
    logger.info("watch_starting", backend=choice.kind.value, files=len(files))
    orchestrator.watch(EventStream(backend, config.source_extension))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        return run(args)
    except (ScanError, TargetSetupError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        # Watch sessions handle this themselves; this is a batch build
        print("\nCancelled by user", file=sys.stderr)
        return EXIT_FAILURE
    except Exception as e:
        logger.error("unexpected_error", error=str(e), exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
