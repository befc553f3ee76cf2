import argparse
import asyncio
import os
import signal
import sys
from pathlib import Path

from freshgit import __version__
from freshgit.config import load_config
from freshgit.exceptions import FreshgitError
from freshgit.logger import configure_logging, get_logger
from freshgit.models import MirrorConfig, OperationMode, RunSummary
from freshgit.services.aggregator import render_summary
from freshgit.services.runner import run_mirror

logger = get_logger(__name__)

EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="freshgit",
        description="freshgit - git repositories downloader and updater",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  freshgit -c config.json -d          # Clone every repository from the list files
  freshgit -c config.json -u          # Fetch every repository
  freshgit -c config.json -u -j 4     # Fetch with at most 4 git processes at once
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        required=True,
        metavar="CONF",
        help="Path to configuration .json file",
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "-d",
        "--download",
        action="store_const",
        const=OperationMode.DOWNLOAD,
        dest="mode",
        help="Download (clone) the git repositories listed in the config",
    )
    mode.add_argument(
        "-u",
        "--update",
        action="store_const",
        const=OperationMode.UPDATE,
        dest="mode",
        help="Update (fetch) the repositories provided in the config",
    )

    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        metavar="N",
        help="Maximum number of git processes at once (overrides max_workers, 0 = unbounded)",
    )

    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Process repositories one by one even if async_exec is enabled",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"freshgit {__version__}",
    )
    return parser


async def _run(config: MirrorConfig, mode: OperationMode, jobs: int | None, sequential: bool) -> RunSummary:
    if os.name == "posix":
        # SIGTERM stops the run like Ctrl-C does
        task = asyncio.current_task()
        if task is not None:
            asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, task.cancel)
    return await run_mirror(config, mode, jobs=jobs, sequential=sequential)


def main(argv: list[str] | None = None) -> int:
    """Main entry point with CLI argument parsing."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.jobs is not None and args.jobs < 0:
        parser.error("--jobs must not be negative")

    configure_logging("DEBUG" if args.verbose else "INFO")

    try:
        config = load_config(args.config)
        configure_logging("DEBUG" if args.verbose else config.log_level, config.log_format)
        logger.info("Configuration loaded", path=str(args.config), mode=args.mode.value)
        summary = asyncio.run(_run(config, args.mode, args.jobs, args.sequential))
    except FreshgitError as e:
        logger.error(str(e))
        return e.exit_code
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED

    print(render_summary(summary))
    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())
