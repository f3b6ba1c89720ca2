"""Main entry point for the Subscription Notifier service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Any, List, Optional, Tuple

from subscription_notifier.config.environment import EnvironmentConfig
from subscription_notifier.config.exceptions import ConfigurationError
from subscription_notifier.config.loader import load_config
from subscription_notifier.config.models import AppConfig
from subscription_notifier.engine import NotificationEngine
from subscription_notifier.logging import get_logger
from subscription_notifier.logging.config import configure_logging
from subscription_notifier.persistence.database import close_database, init_database

logger = get_logger(__name__, component="cli")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load and prepare runtime configuration.

    Args:
        config_path: Path to configuration file (None to search the defaults)
        log_level_override: Log level from CLI (takes precedence)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig)

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    # Log level priority: CLI > Environment > Config
    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subscription-notifier",
        description="Subscription Notifier - daily renewal reminders and expiration warnings",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=LOG_LEVELS,
        help="Log level (overrides config and environment)",
    )

    commands = parser.add_subparsers(dest="command")

    commands.add_parser("serve", help="Run the daily scheduler until stopped (default)")
    commands.add_parser("check", help="Run one notification check now and exit")
    commands.add_parser("status", help="Show scheduler status")

    schedule = commands.add_parser("schedule", help="Show or change the daily check schedule")
    schedule.add_argument("--time", dest="check_time", help="Check time, HH:MM (24-hour)")
    schedule.add_argument("--timezone", help="Timezone for the check time")
    enabled = schedule.add_mutually_exclusive_group()
    enabled.add_argument("--enable", dest="enabled", action="store_const", const=True)
    enabled.add_argument("--disable", dest="enabled", action="store_const", const=False)

    send = commands.add_parser("send", help="Send a notification for one subscription now")
    send.add_argument("subscription_id", type=int)
    send.add_argument("notification_type")
    send.add_argument(
        "--channel",
        dest="channels",
        action="append",
        help="Channel to use (repeatable; default: the type's configured channels)",
    )

    test = commands.add_parser("test-channel", help="Send a test message over a channel")
    test.add_argument("channel")

    validate = commands.add_parser(
        "validate-recipient", help="Check that a recipient is reachable without saving it"
    )
    validate.add_argument("channel")
    validate.add_argument("recipient", help="Telegram chat id or email address")

    configure = commands.add_parser("configure-channel", help="Set a channel's recipient")
    configure.add_argument("channel")
    configure.add_argument("recipient", help="Telegram chat id or email address")
    configure.add_argument(
        "--skip-validation",
        action="store_true",
        help="Save without checking that the recipient is reachable",
    )

    history = commands.add_parser("history", help="List notification history")
    history.add_argument("--page", type=int, default=1)
    history.add_argument("--limit", type=int, default=None)
    history.add_argument("--status", choices=["sent", "failed"], default=None)
    history.add_argument("--type", dest="notification_type", default=None)

    commands.add_parser("stats", help="Show notification statistics")
    commands.add_parser("settings", help="List notification settings")

    update = commands.add_parser("update-setting", help="Change a notification setting")
    update.add_argument("notification_type")
    toggle = update.add_mutually_exclusive_group()
    toggle.add_argument("--enable", dest="is_enabled", action="store_const", const=True)
    toggle.add_argument("--disable", dest="is_enabled", action="store_const", const=False)
    update.add_argument("--advance-days", type=int, default=None)
    repeat = update.add_mutually_exclusive_group()
    repeat.add_argument("--repeat", dest="repeat", action="store_const", const=True)
    repeat.add_argument("--no-repeat", dest="repeat", action="store_const", const=False)
    update.add_argument(
        "--channels", default=None, help="Comma-separated channel list (e.g. telegram,email)"
    )

    language = commands.add_parser("language", help="Show or set the notification language")
    language.add_argument("language", nargs="?", default=None)

    commands.add_parser("templates", help="Show the template catalogue")

    preview = commands.add_parser("preview", help="Render a template with sample data")
    preview.add_argument("notification_type")
    preview.add_argument("language")
    preview.add_argument("channel")

    return parser


def emit(payload: Any) -> None:
    """Print a command result as JSON on stdout."""
    if hasattr(payload, "to_dict"):
        payload = payload.to_dict()
    elif hasattr(payload, "model_dump"):
        payload = payload.model_dump(mode="json")
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def run_daemon(engine: NotificationEngine, start_time: float) -> int:
    """Start the scheduler and block until SIGINT/SIGTERM."""
    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    engine.start()
    status = engine.get_status()

    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
        extra={
            "event": "service.daemon_mode.started",
            "trigger_active": status.running,
        },
    )

    try:
        shutdown_event.wait()
    except KeyboardInterrupt:
        logger.info(
            "Keyboard interrupt received, shutting down",
            extra={"event": "service.keyboard_interrupt"},
        )

    engine.shutdown(wait=False)

    uptime_seconds = time.time() - start_time
    logger.info(
        "Subscription Notifier stopped",
        extra={
            "event": "service.stopping",
            "uptime_seconds": round(uptime_seconds, 2),
        },
    )
    return 0


def dispatch_command(engine: NotificationEngine, args: argparse.Namespace) -> int:
    """Run a one-shot subcommand and print its result.

    Returns:
        Exit code (0 for success, 1 when the operation reported failure)
    """
    command = args.command

    if command == "check":
        result = engine.trigger_check()
        emit(result)
        return 1 if result.had_failures else 0

    if command == "status":
        emit(engine.get_status())
        return 0

    if command == "schedule":
        if args.check_time is None and args.timezone is None and args.enabled is None:
            emit(engine.get_scheduler_settings())
            return 0
        result = engine.update_scheduler_settings(
            check_time=args.check_time, timezone=args.timezone, enabled=args.enabled
        )
        emit(result)
        return 0 if result.success else 1

    if command == "send":
        result = engine.send_notification(
            args.subscription_id, args.notification_type, channels=args.channels
        )
        emit(result)
        return 0 if result.success or result.skipped else 1

    if command == "test-channel":
        result = engine.test_notification(args.channel)
        emit(result)
        return 0 if result.success else 1

    if command == "validate-recipient":
        result = engine.validate_recipient(args.channel, args.recipient)
        emit(result)
        return 0 if result.success else 1

    if command == "configure-channel":
        if not args.skip_validation:
            check = engine.validate_recipient(args.channel, args.recipient)
            if not check.success:
                emit(check)
                return 1
        key = "email" if args.channel == "email" else "chat_id"
        result = engine.configure_channel(args.channel, {key: args.recipient})
        emit(result)
        return 0 if result.success else 1

    if command == "history":
        emit(
            engine.get_history(
                page=args.page,
                limit=args.limit,
                status=args.status,
                notification_type=args.notification_type,
            )
        )
        return 0

    if command == "stats":
        emit(engine.get_stats())
        return 0

    if command == "settings":
        emit([setting.model_dump(mode="json") for setting in engine.get_notification_settings()])
        return 0

    if command == "update-setting":
        channels: Optional[List[str]] = None
        if args.channels is not None:
            channels = [c for c in args.channels.split(",") if c.strip()]
        result = engine.update_notification_setting(
            args.notification_type,
            is_enabled=args.is_enabled,
            advance_days=args.advance_days,
            repeat_notification=args.repeat,
            notification_channels=channels,
        )
        emit(result)
        return 0 if result.success else 1

    if command == "language":
        if args.language is None:
            emit({"language": engine.get_language()})
            return 0
        result = engine.set_language(args.language)
        emit(result)
        return 0 if result.success else 1

    if command == "templates":
        emit(engine.get_template_overview())
        return 0

    if command == "preview":
        result = engine.preview_template(args.notification_type, args.language, args.channel)
        emit(result)
        return 0 if result.success else 1

    raise ValueError(f"Unknown command: {command}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Subscription Notifier.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)
    command = args.command or "serve"

    try:
        # Step 1: Load configuration early (before logging for format detection)
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        # Step 2: Configure logging early
        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "Subscription Notifier starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "command": command,
            },
        )

        # Step 3: Initialize database (creates schema and default rows)
        init_database(env_config.database_url, app_config)

        # Step 4: Build the engine
        engine = NotificationEngine(app_config, env_config)

        logger.info(
            "Services initialized",
            extra={
                "event": "services.initialized",
                "channels": engine.registry.names(),
            },
        )

        try:
            if command == "serve":
                return run_daemon(engine, start_time)
            return dispatch_command(engine, args)
        finally:
            close_database()

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
