"""Unit tests for the main entry point.

Tests the CLI including:
- Argument parsing for every subcommand
- Log level priority (CLI > env > config)
- Command dispatch and exit codes
- End-to-end main() runs against an in-memory database
- Daemon mode startup and shutdown
- Error handling
"""

import json
from argparse import Namespace
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import pytest

from subscription_notifier.channels.models import DispatchResult
from subscription_notifier.config.environment import EnvironmentConfig
from subscription_notifier.config.models import AppConfig
from subscription_notifier.domain.models import NotificationStats
from subscription_notifier.engine import OperationResult
from subscription_notifier.main import (
    build_parser,
    dispatch_command,
    emit,
    load_runtime_config,
    main,
    run_daemon,
)
from subscription_notifier.notifications.models import NotificationResult

ENV_VARS = (
    "TELEGRAM_BOT_TOKEN",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASS",
    "SMTP_SENDER_NAME",
    "LOG_LEVEL",
    "SCHEDULER_CHECK_TIME",
    "SCHEDULER_TIMEZONE",
    "NOTIFICATION_DEFAULT_LANGUAGE",
)


@pytest.fixture
def memory_env(monkeypatch):
    """Point the CLI at a fresh in-memory database with no channel credentials."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    return monkeypatch


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        """
scheduler:
  check_time: "07:30"
  timezone: UTC
logging:
  level: WARNING
""",
        encoding="utf-8",
    )
    return path


def _stdout_json(capsys):
    return json.loads(capsys.readouterr().out)


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    def test_cli_log_level_wins(self):
        with patch("subscription_notifier.main.load_config") as mock_load:
            mock_load.return_value = (AppConfig(), EnvironmentConfig(log_level="ERROR"))

            _, env_config = load_runtime_config(None, "DEBUG")

        assert env_config.log_level == "DEBUG"

    def test_environment_log_level_beats_config(self):
        with patch("subscription_notifier.main.load_config") as mock_load:
            mock_load.return_value = (AppConfig(), EnvironmentConfig(log_level="ERROR"))

            _, env_config = load_runtime_config(None, None)

        assert env_config.log_level == "ERROR"

    def test_falls_back_to_config_log_level(self, memory_env, config_file):
        app_config, env_config = load_runtime_config(config_file, None)

        assert env_config.log_level == "WARNING"
        assert app_config.scheduler.check_time == "07:30"


class TestBuildParser:
    """Tests for CLI argument parsing."""

    def test_no_command_defaults_to_none(self):
        args = build_parser().parse_args([])

        assert args.command is None
        assert args.config is None

    def test_global_options(self):
        args = build_parser().parse_args(["--config", "alt.yaml", "--log-level", "DEBUG", "status"])

        assert args.config == Path("alt.yaml")
        assert args.log_level == "DEBUG"
        assert args.command == "status"

    def test_invalid_log_level_exits(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "LOUD", "status"])

    def test_schedule_options(self):
        args = build_parser().parse_args(["schedule", "--time", "08:00", "--disable"])

        assert args.check_time == "08:00"
        assert args.timezone is None
        assert args.enabled is False

    def test_schedule_enable_and_disable_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["schedule", "--enable", "--disable"])

    def test_send_with_repeated_channels(self):
        args = build_parser().parse_args(
            ["send", "3", "renewal_reminder", "--channel", "telegram", "--channel", "email"]
        )

        assert args.subscription_id == 3
        assert args.notification_type == "renewal_reminder"
        assert args.channels == ["telegram", "email"]

    def test_update_setting_flags(self):
        args = build_parser().parse_args(
            ["update-setting", "renewal_reminder", "--disable", "--advance-days", "5", "--no-repeat"]
        )

        assert args.is_enabled is False
        assert args.advance_days == 5
        assert args.repeat is False
        assert args.channels is None

    def test_history_status_choices(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["history", "--status", "pending"])


class TestDispatchCommand:
    """Tests for mapping subcommands onto engine calls."""

    def _run(self, engine, argv):
        return dispatch_command(engine, build_parser().parse_args(argv))

    def test_schedule_without_changes_shows_settings(self, capsys):
        engine = Mock()
        engine.get_scheduler_settings.return_value = {"check_time": "09:00"}

        assert self._run(engine, ["schedule"]) == 0

        engine.update_scheduler_settings.assert_not_called()
        assert _stdout_json(capsys) == {"check_time": "09:00"}

    def test_schedule_update_failure_exit_code(self, capsys):
        engine = Mock()
        engine.update_scheduler_settings.return_value = OperationResult(success=False, error="bad time")

        assert self._run(engine, ["schedule", "--time", "25:00"]) == 1

        engine.update_scheduler_settings.assert_called_once_with(
            check_time="25:00", timezone=None, enabled=None
        )
        assert _stdout_json(capsys) == {"success": False, "error": "bad time"}

    def test_check_exit_code_reflects_failures(self):
        engine = Mock()
        engine.trigger_check.return_value = MagicMock(had_failures=True)
        engine.trigger_check.return_value.to_dict.return_value = {}

        assert self._run(engine, ["check"]) == 1

    def test_send_skipped_is_success(self):
        engine = Mock()
        engine.send_notification.return_value = NotificationResult(
            subscription_id=9,
            notification_type="renewal_reminder",
            success=False,
            skipped=True,
            message="Notification type is disabled",
        )

        assert self._run(engine, ["send", "9", "renewal_reminder"]) == 0
        engine.send_notification.assert_called_once_with(9, "renewal_reminder", channels=None)

    def test_configure_channel_validates_first(self, capsys):
        engine = Mock()
        engine.validate_recipient.return_value = DispatchResult.failure("chat not found")

        assert self._run(engine, ["configure-channel", "telegram", "42"]) == 1

        engine.configure_channel.assert_not_called()
        assert _stdout_json(capsys)["error"] == "chat not found"

    def test_validate_recipient(self, capsys):
        engine = Mock()
        engine.validate_recipient.return_value = DispatchResult.ok("42", chat_info={"id": 42})

        assert self._run(engine, ["validate-recipient", "telegram", "42"]) == 0

        engine.configure_channel.assert_not_called()
        assert _stdout_json(capsys)["details"] == {"chat_info": {"id": 42}}

    def test_configure_channel_skip_validation(self):
        engine = Mock()
        engine.configure_channel.return_value = OperationResult(success=True)

        assert self._run(engine, ["configure-channel", "email", "me@example.com", "--skip-validation"]) == 0

        engine.validate_recipient.assert_not_called()
        engine.configure_channel.assert_called_once_with("email", {"email": "me@example.com"})

    def test_update_setting_splits_channels(self):
        engine = Mock()
        engine.update_notification_setting.return_value = OperationResult(success=True)

        self._run(engine, ["update-setting", "expiration_warning", "--channels", "telegram, email,"])

        engine.update_notification_setting.assert_called_once_with(
            "expiration_warning",
            is_enabled=None,
            advance_days=None,
            repeat_notification=None,
            notification_channels=["telegram", " email"],
        )

    def test_language_show_and_set(self, capsys):
        engine = Mock()
        engine.get_language.return_value = "en"
        engine.set_language.return_value = OperationResult(success=False, error="Unsupported language")

        assert self._run(engine, ["language"]) == 0
        assert _stdout_json(capsys) == {"language": "en"}

        assert self._run(engine, ["language", "xx"]) == 1
        engine.set_language.assert_called_once_with("xx")

    def test_stats_emits_model(self, capsys):
        engine = Mock()
        engine.get_stats.return_value = NotificationStats(total=3, sent=2, failed=1)

        assert self._run(engine, ["stats"]) == 0
        assert _stdout_json(capsys)["sent"] == 2

    def test_unknown_command_raises(self):
        with pytest.raises(ValueError, match="Unknown command"):
            dispatch_command(Mock(), Namespace(command="bogus"))


class TestEmit:
    def test_plain_dict(self, capsys):
        emit({"name": "续订"})

        assert "续订" in capsys.readouterr().out


class TestRunDaemon:
    """Tests for daemon mode."""

    def test_starts_and_shuts_down(self):
        engine = Mock()
        event = Mock()

        with patch("subscription_notifier.main.signal.signal") as mock_signal, patch(
            "subscription_notifier.main.threading.Event", return_value=event
        ):
            assert run_daemon(engine, start_time=0.0) == 0

        assert mock_signal.call_count == 2
        engine.start.assert_called_once()
        event.wait.assert_called_once()
        engine.shutdown.assert_called_once_with(wait=False)

    def test_keyboard_interrupt_still_shuts_down(self):
        engine = Mock()
        event = Mock()
        event.wait.side_effect = KeyboardInterrupt

        with patch("subscription_notifier.main.signal.signal"), patch(
            "subscription_notifier.main.threading.Event", return_value=event
        ):
            assert run_daemon(engine, start_time=0.0) == 0

        engine.shutdown.assert_called_once_with(wait=False)


class TestMain:
    """End-to-end runs of main() against an in-memory database."""

    @pytest.fixture(autouse=True)
    def quiet_logging(self):
        """Keep stdout free of log lines so command output parses as JSON."""
        with patch("subscription_notifier.main.configure_logging") as mock_configure:
            yield mock_configure

    def test_settings_command(self, memory_env, config_file, capsys):
        assert main(["--config", str(config_file), "settings"]) == 0

        settings = _stdout_json(capsys)
        assert len(settings) == 5
        assert settings[0]["notification_type"] == "renewal_reminder"
        assert settings[0]["advance_days"] == 7

    def test_schedule_seeded_from_config(self, memory_env, config_file, capsys):
        assert main(["--config", str(config_file), "schedule"]) == 0

        schedule = _stdout_json(capsys)
        assert schedule["check_time"] == "07:30"
        assert schedule["timezone"] == "UTC"

    def test_check_with_nothing_due(self, memory_env, config_file, capsys):
        assert main(["--config", str(config_file), "check"]) == 0

        result = _stdout_json(capsys)
        assert result["notifications_processed"] == 0
        assert result["timezone"] == "UTC"

    def test_configure_unknown_channel_fails(self, memory_env, config_file, capsys):
        assert main(["--config", str(config_file), "configure-channel", "sms", "123"]) == 1

    def test_default_command_runs_daemon(self, memory_env, config_file):
        with patch("subscription_notifier.main.run_daemon", return_value=0) as mock_daemon:
            assert main(["--config", str(config_file)]) == 0

        mock_daemon.assert_called_once()

    def test_serve_command_runs_daemon(self, memory_env, config_file):
        with patch("subscription_notifier.main.run_daemon", return_value=0) as mock_daemon:
            assert main(["--config", str(config_file), "serve"]) == 0

        mock_daemon.assert_called_once()

    def test_missing_config_file(self, memory_env, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "missing.yaml"), "status"]) == 1

        assert "Configuration Error" in capsys.readouterr().err

    def test_invalid_environment(self, memory_env, config_file, capsys):
        memory_env.setenv("SMTP_PORT", "not-a-port")

        assert main(["--config", str(config_file), "status"]) == 1

        assert "Configuration Error" in capsys.readouterr().err

    def test_unexpected_error_returns_one(self, memory_env, config_file, capsys):
        with patch("subscription_notifier.main.NotificationEngine", side_effect=RuntimeError("boom")):
            assert main(["--config", str(config_file), "status"]) == 1

        assert "Fatal error: boom" in capsys.readouterr().err
