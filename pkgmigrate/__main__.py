"""CLI interface for pkgmigrate."""

import argparse
import sys
from typing import List, Optional

import yaml

from .catalogs.base import CatalogError, Ecosystem
from .common.config import DEFAULT_CONFIG_PATH, ConfigError, load_typed_config
from .common.logger import setup_logger
from .mirror.orchestrator import MigrationReport, Migrator, Phase
from .mirror.store import ArtifactStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pkgmigrate",
        description="Mirror gems and npm packages from one private registry to another.",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the YAML configuration (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "-e",
        "--ecosystem",
        action="append",
        choices=[ecosystem.value for ecosystem in Ecosystem],
        help="Only migrate this ecosystem (repeatable; default: all configured)",
    )
    parser.add_argument(
        "--phase",
        choices=[phase.value for phase in Phase],
        default=Phase.ALL.value,
        help="Run only the download or publish phase (default: all)",
    )
    parser.add_argument(
        "--clean-partials",
        action="store_true",
        help="Remove temporary files left by interrupted downloads before starting",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def print_report(report: MigrationReport) -> None:
    for item in report.ecosystems:
        print(f"Ecosystem: {item.ecosystem.value}")
        print(f"  Packages: {item.packages} ({item.versions} versions)")
        print(
            f"  Downloads: {item.downloads.succeeded} downloaded, "
            f"{item.downloads.skipped} skipped, {item.downloads.failed} failed"
        )
        print(
            f"  Publishes: {item.publishes.succeeded} published, "
            f"{item.publishes.skipped} skipped, {item.publishes.failed} failed"
        )
        print(f"  Duration: {item.duration_seconds:.1f}s")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the pkgmigrate CLI.

    Returns:
        0 when the run completes (even with per-artifact errors), 1 on fatal errors
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_typed_config(args.config)
    except (FileNotFoundError, TypeError, yaml.YAMLError) as e:
        print(f"Cannot load configuration: {e}", file=sys.stderr)
        return 1
    except ConfigError as e:
        for problem in e.problems:
            print(problem, file=sys.stderr)
        return 1

    setup_logger(
        "pkgmigrate",
        level="DEBUG" if args.verbose else config.logging.level,
        color=config.logging.color,
        log_dir=config.logging.log_dir,
    )

    if args.clean_partials:
        ArtifactStore(config.dist_dir).clean_partials()

    ecosystems = [Ecosystem(value) for value in args.ecosystem] if args.ecosystem else None
    try:
        report = Migrator(config).migrate(ecosystems=ecosystems, phase=Phase(args.phase))
    except CatalogError as e:
        print(f"Fatal: {e}", file=sys.stderr)
        return 1

    print_report(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
