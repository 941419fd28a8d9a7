#!/usr/bin/env python3
"""
Livestore - Entry Point

Usage:
    livestore                      # Settings from environment only
    livestore --config my.yaml     # Use a settings file
    livestore --dry-run            # Print settings and exit
    livestore --verbose            # Enable debug logging

MONGODB_CONNECTION_STRING must be set (or store.connection_string in the
settings file).
"""

import argparse
import asyncio
import json
import sys

from livestore import __version__
from livestore.common.config import ServiceSettings, load_settings_file
from livestore.common.exceptions import LivestoreError
from livestore.common.logging_setup import get_service_logger, setup_logging, setup_logging_from_env
from livestore.services.api import LivestoreService

logger = get_service_logger("main")


def validate_settings(settings: ServiceSettings) -> bool:
    """Print settings errors; True if the settings are usable"""
    errors = settings.validate()
    if errors:
        print("Configuration errors:")
        for error in errors:
            print(f"  - {error}")
        return False
    return True


async def main_async(settings: ServiceSettings) -> None:
    service = LivestoreService(settings)
    try:
        await service.start()
    finally:
        await service.stop()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Livestore - document store service with live configuration",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to YAML settings file (default: environment only)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate settings, print them and exit without starting",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"livestore v{__version__}",
    )
    args = parser.parse_args(argv)

    if args.verbose:
        setup_logging("DEBUG", "text")
    else:
        setup_logging_from_env()

    try:
        settings = load_settings_file(args.config)
    except LivestoreError as e:
        print(f"Error: {e.message}")
        return 1

    if not validate_settings(settings):
        return 1

    if args.dry_run:
        print(json.dumps(settings.to_dict(), indent=2))
        print("Dry run mode - settings valid")
        return 0

    try:
        asyncio.run(main_async(settings))
    except KeyboardInterrupt:
        print("\nStopped by user")
    except LivestoreError as e:
        logger.critical(f"Fatal error: {e.message}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
