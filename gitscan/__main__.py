"""Main entry point for the gitscan CLI."""

from dotenv import load_dotenv
load_dotenv()

import sys
import argparse
from typing import List, Optional

from . import __version__
from .config import ScanConfig
from .core.logger import setup_logging
from .core.scanner import RepoScanner
from .core.types import OutputMode
from .utils.output import format_json, print_table


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog='gitscan',
        description='Discover local git repositories and report their sync status',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Stream status lines for every repository under the current directory
  gitscan list

  # Full table without fetching remotes
  gitscan list --path ~/src --no-fetch --tabular

  # JSON document, sorted by path
  gitscan list --json > repos.json
        """
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='Command to run',
        required=False
    )

    list_parser = subparsers.add_parser(
        'list',
        help='List local git repositories and their sync status',
        description=(
            'Recursively discover git repositories under a path and show their branch, '
            'sync state (up-to-date, ahead, behind, diverged, no-upstream, detached), '
            'cleanliness, ahead/behind counts and upstream branch.'
        )
    )
    list_parser.add_argument(
        '--path', '-p',
        help='Root path to search recursively for git repositories (default: .)'
    )
    list_parser.add_argument(
        '--no-fetch',
        action='store_true',
        help="Do not run 'git fetch' (faster, but may show stale upstream info)"
    )

    output_group = list_parser.add_argument_group('output')
    output_group.add_argument(
        '--json',
        action='store_true',
        help='Output a JSON list (waits for all repos)'
    )
    output_group.add_argument(
        '--tabular',
        action='store_true',
        help='Render full table (waits for all repos)'
    )

    exec_group = list_parser.add_argument_group('execution control')
    exec_group.add_argument(
        '--workers',
        type=int,
        metavar='N',
        help='Number of parallel workers (default: CPU count, minimum 2)'
    )
    exec_group.add_argument(
        '--fetch-timeout',
        type=float,
        metavar='SECONDS',
        help='Give up on a fetch after this many seconds, 0 for no limit (default: 30)'
    )

    log_group = list_parser.add_argument_group('logging')
    log_group.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Log progress and skipped repositories to stderr'
    )
    log_group.add_argument(
        '--log-file',
        metavar='FILE',
        help='Also write log records to FILE'
    )

    subparsers.add_parser('version', help='Print the version and exit')

    return parser


def _output_mode(args: argparse.Namespace) -> OutputMode:
    if args.json or args.tabular:
        return OutputMode.AGGREGATE
    return OutputMode.STREAMING


def _run_list(args: argparse.Namespace) -> int:
    """Run the list command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    logger = setup_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        config = ScanConfig.from_env_and_args(
            path=args.path,
            no_fetch=args.no_fetch,
            fetch_timeout=args.fetch_timeout,
            max_workers=args.workers,
            mode=_output_mode(args)
        )
        root = config.resolve_root()

        logger.debug(f"Scanning {root} (fetch: {config.fetch}, timeout: {config.fetch_timeout})")

        scanner = RepoScanner.from_config(
            config,
            on_skip=lambda path, reason: logger.debug(f"Skipped {path}: {reason}")
        )
        statuses = scanner.scan(root, mode=config.mode)

        if config.mode == OutputMode.STREAMING:
            return 0
        if args.json:
            print(format_json(statuses))
        else:
            print_table(statuses)
        return 0

    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Scan cancelled by user")
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == 'version':
        print(f"gitscan {__version__}")
        return 0

    if args.command == 'list':
        return _run_list(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
