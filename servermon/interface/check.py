#!/usr/bin/env python3
"""
Servermon CLI - Runs one server health-check pass.

Usage:
    servermon [--config config.toml] [--servers servers.toml]
              [--users users.toml] [--status status.json] [--dry-run] [--mock]

Exit codes:
    0: Pass completed
    1: Fatal error (config, state, lock)
    2: Notification delivery failed (state was saved)
    130: Interrupted
"""

import argparse
import logging
import sys
from typing import List, Optional

from servermon.health import run_check_pass


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Logs one line per connection; only useful when debugging probes
NOISY_LOGGERS = ("urllib3",)


def resolve_log_level(verbose: bool = False, quiet: bool = False) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(level: int = logging.INFO) -> None:
    """
    Send servermon logs to stdout, where cron captures them per pass.

    HTTP client loggers stay at WARNING unless running at DEBUG.

    Args:
        level: Root log level
    """
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stdout)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="servermon",
        description="Check server health and alert on new failures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0    - Pass completed
  1    - Fatal error (config, state, lock)
  2    - Notification delivery failed (state was saved)
  130  - Interrupted

Examples:
  servermon
  servermon --config /etc/servermon/config.toml --status /var/lib/servermon/status.json
  servermon --mock --dry-run
        """,
    )
    parser.add_argument("--config", default="config.toml", help="Path to config file (default: config.toml)")
    parser.add_argument("-s", "--servers", default="servers.toml", help="Path to servers file (default: servers.toml)")
    parser.add_argument("-u", "--users", default="users.toml", help="Path to users file (default: users.toml)")
    parser.add_argument("--status", default="status.json", help="Path to run state file (default: status.json)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print alerts instead of sending them and don't save state",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        default=None,
        help="Use the deterministic mock probe instead of live HTTP",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging (DEBUG level)")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code of the pass
    """
    args = build_parser().parse_args(argv)

    setup_logging(resolve_log_level(verbose=args.verbose, quiet=args.quiet))

    logger = logging.getLogger(__name__)
    logger.info("Starting check pass")

    try:
        exit_code = run_check_pass(
            config_path=args.config,
            servers_path=args.servers,
            users_path=args.users,
            status_path=args.status,
            dry_run=args.dry_run,
            mock=args.mock,
        )
        logger.info("Check pass completed with exit code: %d", exit_code)
        return exit_code
    except KeyboardInterrupt:
        logger.error("Check pass interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
