"""Main entry point for buildboot."""

from __future__ import annotations

import argparse
import logging
import sys

from rich.markup import escape

from buildboot.config import clear_settings_cache, get_settings
from buildboot.core import (
    BuildContext,
    BuildError,
    TaskInvocation,
    TaskRegistry,
    build_pipeline,
    run_pipeline,
)
from buildboot.utils.logger import console, setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="buildboot",
        description="buildboot - run build tasks as a single pipeline",
        epilog="Tasks run in the order given: buildboot build [delegate test]",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to config file (default: boot.yaml)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--log-file",
        action="store_true",
        help="Also write logs to the configured log_dir",
    )

    parser.add_argument(
        "tasks",
        nargs="*",
        metavar="TASK",
        help="Task id, or [task arg ...] to pass arguments",
    )

    return parser.parse_args(argv)


def run(tokens: list[str], config_path: str | None = None) -> BuildContext:
    """
    Build the registry and pipeline for the given tokens and run it.

    Args:
        tokens: Task tokens from the command line
        config_path: Optional config file path

    Returns:
        Build context after the pipeline finished
    """
    settings = get_settings(config_path)
    registry = TaskRegistry.from_settings(settings)
    invocations = TaskInvocation.parse(tokens or ["help"])

    ctx = BuildContext.from_settings(settings, registry)
    handler = build_pipeline(registry, invocations, ctx)
    return run_pipeline(handler, ctx)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    clear_settings_cache()
    settings = get_settings(args.config)

    log_level = logging.DEBUG if args.debug else logging.INFO
    setup_logging(
        log_dir=settings.log_dir,
        level=log_level,
        log_to_file=args.log_file or settings.log_to_file,
    )

    try:
        run(args.tasks, args.config)
    except BuildError as e:
        logger.debug("Build failed", exc_info=True)
        console.print(f"[error]Build failed[/error] {escape(str(e))}", highlight=False)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
