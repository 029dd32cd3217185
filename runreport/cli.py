"""
Command-line interface for runreport.

Provides maintenance commands for report directories: retention pruning,
report assembly for an existing test directory and link printing.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core.config import Config
from .core.exceptions import RunReportError
from .core.logging_config import setup_logging
from .reporting.assembler import ReportAssembler, ScreenshotComments
from .reporting.links import ReportLinks
from .storage.launch import LaunchRootManager


def _load_config(args: argparse.Namespace) -> Config:
    if getattr(args, "config", None):
        config = Config.from_file(Path(args.config))
    else:
        config = Config.from_env()
    if getattr(args, "report_root", None):
        config.report_root = Path(args.report_root)
    if getattr(args, "max_history", None) is not None:
        config.max_screenshot_history = args.max_history
    config.validate()
    setup_logging(config, "cli")
    return config


def cmd_prune(args: argparse.Namespace) -> int:
    """Apply launch retention to the report root."""
    config = _load_config(args)
    manager = LaunchRootManager(config)
    removed = manager.remove_old_reports()
    for directory in removed:
        print(f"Removed {directory}")
    print(f"{len(removed)} launch directories removed from {manager.report_root}")
    return 0


def cmd_assemble(args: argparse.Namespace) -> int:
    """Build report.html for an existing test directory."""
    test_dir = Path(args.test_dir)
    if not test_dir.is_dir():
        print(f"Test directory not found: {test_dir}")
        return 1

    report = ReportAssembler(ScreenshotComments()).assemble(test_dir)
    if report is None:
        print(f"No screenshots in {test_dir}, nothing to assemble")
        return 0
    print(f"Report written to {report}")
    return 0


def cmd_links(args: argparse.Namespace) -> int:
    """Print the links of an existing test directory."""
    test_dir = Path(args.test_dir).resolve()
    if not test_dir.is_dir():
        print(f"Test directory not found: {test_dir}")
        return 1

    config = _load_config(args)
    launch = LaunchRootManager.for_existing(config, test_dir.parent)

    links = ReportLinks(config, launch)
    print(f"artifacts:   {links.test_artifacts_link()}")
    print(f"screenshots: {links.test_screenshots_link(test_dir)}")
    print(f"log:         {links.test_log_link(test_dir)}")
    print(f"cucumber:    {links.cucumber_report_link()}")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    print(f"runreport {__version__}")
    return 0


def create_main_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="runreport",
        description="Maintain runreport launch directories and reports",
    )
    parser.add_argument(
        "--config",
        help="YAML configuration file (defaults to environment variables)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    prune_parser = subparsers.add_parser(
        "prune", help="Remove launch directories beyond the history size"
    )
    prune_parser.add_argument("--report-root", help="Report root directory")
    prune_parser.add_argument(
        "--max-history", type=int, help="Number of launch directories to keep"
    )

    assemble_parser = subparsers.add_parser(
        "assemble", help="Build report.html for a test directory"
    )
    assemble_parser.add_argument("test_dir", help="Test directory with screenshots")

    links_parser = subparsers.add_parser("links", help="Print links for a test directory")
    links_parser.add_argument("test_dir", help="Test directory inside a launch")

    subparsers.add_parser("version", help="Show version information")

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_main_parser()
    parsed_args = parser.parse_args(args)

    commands = {
        "prune": cmd_prune,
        "assemble": cmd_assemble,
        "links": cmd_links,
        "version": cmd_version,
    }

    if parsed_args.command not in commands:
        parser.print_help()
        return 1

    try:
        return commands[parsed_args.command](parsed_args)
    except RunReportError as e:
        print(f"runreport error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
