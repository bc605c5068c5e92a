"""CLI entry point for the Genesis alert dispatcher.

This module provides operational commands around the dispatcher: checking
configuration, testing channel connectivity and replaying alerts from a
JSON-lines file.

Usage:
    python -m genesis_alerts [options]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import logging.config
import sys
from typing import TYPE_CHECKING, NoReturn, TextIO

from pydantic import ValidationError

from genesis_alerts import __version__
from genesis_alerts.alerter.factory import create_dispatcher
from genesis_alerts.alerter.idempotency import IdempotencyKeyError
from genesis_alerts.alerter.models import Alert
from genesis_alerts.config import Settings, clear_settings_cache, get_settings

if TYPE_CHECKING:
    from genesis_alerts.alerter.dispatcher import NotificationDispatcher

# Application info
APP_NAME = "Genesis Alert Dispatcher"
APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="genesis-alerts",
        description="Deliver blockchain alerts to Telegram, webhooks and the console.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m genesis_alerts --config-check          Validate config and exit
  python -m genesis_alerts --test-channels         Check channel connectivity
  python -m genesis_alerts --replay alerts.jsonl   Dispatch alerts from a file
  cat alerts.jsonl | python -m genesis_alerts --replay - --dry-run
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from settings)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only deliver to the console channel",
    )

    parser.add_argument(
        "--test-channels",
        action="store_true",
        help="Run a connectivity check on every enabled channel",
    )

    parser.add_argument(
        "--replay",
        metavar="FILE",
        default=None,
        help="Dispatch JSON-lines alerts from FILE ('-' for stdin)",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if level == "DEBUG" else "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        # Quieter logging for noisy libraries
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)


def print_config_summary(settings: Settings, dry_run: bool) -> None:
    """Print a summary of the configuration.

    Args:
        settings: Application settings.
        dry_run: Whether dry-run mode is enabled.
    """
    summary = settings.redacted_summary()

    print("Configuration:")
    print(f"  Log Level: {summary['log_level']}")
    print(f"  Dry Run: {dry_run}")
    print(f"  Console: {'enabled' if summary['console_enabled'] == 'True' else 'disabled'}")
    print(f"  Telegram: {'enabled' if summary['telegram_enabled'] == 'True' else 'disabled'}")
    print(f"  Webhook: {summary['webhook_url']} (secret {summary['webhook_secret']})")
    print(
        f"  Retry: max_retries={summary['retry_max_retries']} "
        f"base_delay={summary['retry_base_delay']}s max_delay={summary['retry_max_delay']}s"
    )
    print(f"  Idempotency Cache: {summary['max_idempotency_cache']} keys")
    print()


def validate_config() -> Settings | None:
    """Validate and load configuration.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"  {field}: {msg}", file=sys.stderr)
        return None


def run_config_check(settings: Settings) -> int:
    """Run configuration check and exit.

    Args:
        settings: Validated settings.

    Returns:
        Exit code (0 for success).
    """
    print("Configuration is valid!")
    print()
    print_config_summary(settings, dry_run=settings.dry_run)
    return EXIT_SUCCESS


async def run_channel_tests(dispatcher: NotificationDispatcher) -> int:
    """Test every channel and print a report.

    Returns:
        EXIT_SUCCESS if no enabled channel failed, EXIT_ERROR otherwise.
    """
    report = await dispatcher.test_channels()

    print("Channel tests:")
    failed = False
    for name, result in report.items():
        if result.skipped:
            print(f"  {name}: skipped (disabled)")
        elif result.success:
            print(f"  {name}: passed")
        else:
            failed = True
            print(f"  {name}: FAILED - {result.error}")
    print()

    return EXIT_ERROR if failed else EXIT_SUCCESS


def read_alerts(stream: TextIO) -> list[Alert]:
    """Parse JSON-lines alerts, skipping blank lines.

    Raises:
        ValueError: If a line is not a valid alert.
    """
    alerts = []
    for line_number, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            alerts.append(Alert.from_dict(json.loads(line)))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid alert on line {line_number}: {e}") from e
    return alerts


async def run_replay(dispatcher: NotificationDispatcher, alerts: list[Alert]) -> int:
    """Dispatch alerts and print per-alert results and dead letters.

    Alerts that cannot be keyed are reported and skipped; the remaining
    alerts are still dispatched.

    Returns:
        EXIT_SUCCESS if every alert was delivered, EXIT_ERROR otherwise.
    """
    logger = logging.getLogger(__name__)
    skipped = 0

    print("Dispatch results:")
    for alert in alerts:
        try:
            result = await dispatcher.dispatch(alert)
        except IdempotencyKeyError as e:
            skipped += 1
            logger.warning(f"Skipping alert {alert.id}: {e}")
            print(f"  {alert.id}: skipped ({e})")
            continue

        if result.cached:
            print(f"  {result.alert_id}: duplicate ({result.idempotency_key})")
            continue
        channels = ", ".join(
            f"{name}={'ok' if outcome.success else 'failed'}"
            for name, outcome in result.channels.items()
        )
        print(f"  {result.alert_id}: {channels or 'no channels'}")

    dead_letters = dispatcher.get_dead_letter_queue()
    if dead_letters:
        print()
        print(f"Dead letter queue ({len(dead_letters)} entries):")
        for entry in dead_letters:
            print(f"  {json.dumps(entry.to_dict())}")
    print()

    return EXIT_ERROR if dead_letters or skipped else EXIT_SUCCESS


async def run_commands(settings: Settings, args: argparse.Namespace, dry_run: bool) -> int:
    """Run the requested operational commands.

    Args:
        settings: Application settings.
        args: Parsed command line arguments.
        dry_run: Whether only the console channel is enabled.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)
    dispatcher = create_dispatcher(settings, dry_run=dry_run)
    exit_code = EXIT_SUCCESS

    try:
        if args.test_channels:
            exit_code = max(exit_code, await run_channel_tests(dispatcher))

        if args.replay:
            if args.replay == "-":
                alerts = read_alerts(sys.stdin)
            else:
                with open(args.replay, encoding="utf-8") as f:
                    alerts = read_alerts(f)
            logger.info(f"Replaying {len(alerts)} alerts")
            exit_code = max(exit_code, await run_replay(dispatcher, alerts))

        return exit_code
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except (OSError, ValueError) as e:
        logger.error("Replay failed: %s", e)
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Validate configuration first
    settings = validate_config()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    log_level = args.log_level or settings.log_level
    configure_logging(log_level)

    if args.config_check:
        sys.exit(run_config_check(settings))

    if not (args.test_channels or args.replay):
        parser.print_usage(sys.stderr)
        print("error: nothing to do, pass --test-channels or --replay", file=sys.stderr)
        sys.exit(EXIT_ERROR)

    dry_run = args.dry_run or settings.dry_run
    print_config_summary(settings, dry_run)

    exit_code = asyncio.run(run_commands(settings, args, dry_run))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
