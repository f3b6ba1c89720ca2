"""Integration tests for scheduled check runs.

Tests end-to-end flow:
- Settings → Selection → Rendering → Dispatch → History
- Duplicate suppression across runs and days
- Failed deliveries recorded with their error
- Real SQLite database (in-memory and file-backed)
- Recording channels in place of remote APIs
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from subscription_notifier.channels.registry import ChannelRegistry
from subscription_notifier.config.environment import EnvironmentConfig
from subscription_notifier.config.models import AppConfig
from subscription_notifier.engine import NotificationEngine
from subscription_notifier.persistence import close_database, init_database
from tests.helpers import RecordingChannel, add_subscription, configure_channel, history_rows

# 09:00 in Asia/Shanghai on 2024-01-15
DAY_ONE = datetime(2024, 1, 15, 1, 0, tzinfo=timezone.utc)
TODAY = date(2024, 1, 15)


@pytest.fixture
def integration_database():
    """Create an in-memory database for integration testing."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def clock():
    """Mutable clock shared by every component of the engine."""
    return {"now": DAY_ONE}


@pytest.fixture
def telegram():
    return RecordingChannel("telegram", "chat_id")


@pytest.fixture
def engine(integration_database, clock, telegram):
    registry = ChannelRegistry()
    registry.register(telegram)
    configure_channel("telegram", chat_id="1001")
    return NotificationEngine(
        AppConfig(),
        EnvironmentConfig(),
        registry=registry,
        scheduler=BackgroundScheduler(timezone=timezone.utc),
        clock=lambda: clock["now"],
    )


class TestRenewalReminderRuns:
    """A reminder goes out inside the advance window and is recorded."""

    def test_due_reminder_is_sent_and_recorded(self, engine, telegram):
        subscription = add_subscription(next_billing_date=TODAY + timedelta(days=3))

        result = engine.trigger_check()

        assert result.renewal_candidates == 1
        assert result.channel_sent == 1
        rows = history_rows(subscription.id)
        assert len(rows) == 1
        assert rows[0].notification_type == "renewal_reminder"
        assert rows[0].status == "sent"
        assert rows[0].sent_at == DAY_ONE
        assert rows[0].scheduled_at == DAY_ONE
        assert "Netflix" in telegram.sent[0][1]

    def test_no_repeat_suppresses_next_day(self, engine, clock, telegram):
        engine.update_notification_setting("renewal_reminder", repeat_notification=False)
        subscription = add_subscription(next_billing_date=TODAY + timedelta(days=3))
        engine.trigger_check()

        clock["now"] = DAY_ONE + timedelta(days=1)
        result = engine.trigger_check()

        assert result.renewal_candidates == 0
        assert len(history_rows(subscription.id)) == 1
        assert len(telegram.sent) == 1

    def test_repeat_sends_every_day_in_window(self, engine, clock, telegram):
        subscription = add_subscription(next_billing_date=TODAY + timedelta(days=3))

        for offset in range(3):
            clock["now"] = DAY_ONE + timedelta(days=offset)
            engine.trigger_check()

        # The renewal day itself is outside the window
        clock["now"] = DAY_ONE + timedelta(days=3)
        assert engine.trigger_check().renewal_candidates == 0

        assert len(history_rows(subscription.id)) == 3


class TestExpirationWarningRuns:
    """A warning goes out once on the day after expiry."""

    def test_second_run_same_day_sends_nothing(self, engine, clock, telegram):
        subscription = add_subscription(next_billing_date=TODAY - timedelta(days=1))

        first = engine.trigger_check()
        clock["now"] = DAY_ONE + timedelta(hours=10)
        second = engine.trigger_check()

        assert first.expiration_candidates == 1
        assert second.expiration_candidates == 0
        rows = history_rows(subscription.id)
        assert [(r.notification_type, r.status) for r in rows] == [("expiration_warning", "sent")]
        assert len(telegram.sent) == 1

    def test_warning_is_not_sent_again_the_following_day(self, engine, clock):
        subscription = add_subscription(next_billing_date=TODAY - timedelta(days=1))
        engine.trigger_check()

        clock["now"] = DAY_ONE + timedelta(days=1)
        engine.trigger_check()

        assert len(history_rows(subscription.id)) == 1

    def test_disabled_warning_is_not_sent(self, engine):
        engine.update_notification_setting("expiration_warning", is_enabled=False)
        add_subscription(next_billing_date=TODAY - timedelta(days=1))

        result = engine.trigger_check()

        assert result.notifications_processed == 0
        assert history_rows() == []


class TestDeliveryFailures:
    """Failed deliveries are recorded and retried on the next run."""

    def test_failure_recorded_with_error(self, engine, telegram):
        telegram.fail_with = "timeout"
        subscription = add_subscription(next_billing_date=TODAY + timedelta(days=2))

        result = engine.trigger_check()

        assert result.channel_failed == 1
        assert result.had_failures is True
        row = history_rows(subscription.id)[0]
        assert row.status == "failed"
        assert row.error_message == "timeout"
        assert row.sent_at is None

    def test_failed_warning_is_retried_same_day(self, engine, clock, telegram):
        telegram.fail_with = "timeout"
        subscription = add_subscription(next_billing_date=TODAY - timedelta(days=1))
        engine.trigger_check()

        telegram.fail_with = None
        clock["now"] = DAY_ONE + timedelta(hours=1)
        result = engine.trigger_check()

        assert result.channel_sent == 1
        assert [r.status for r in history_rows(subscription.id)] == ["sent", "failed"]

    def test_unconfigured_channel_leaves_no_history(self, engine):
        engine.update_notification_setting(
            "renewal_reminder", notification_channels=["telegram", "email"]
        )
        subscription = add_subscription(next_billing_date=TODAY + timedelta(days=1))

        result = engine.trigger_check()

        assert result.channel_sent == 1
        assert result.channel_not_configured == 1
        assert [r.channel_type for r in history_rows(subscription.id)] == ["telegram"]


class TestMixedRun:
    def test_many_subscriptions_in_one_run(self, engine, telegram):
        add_subscription(name="Spotify", next_billing_date=TODAY + timedelta(days=1))
        add_subscription(name="iCloud", next_billing_date=TODAY + timedelta(days=7))
        add_subscription(name="Far", next_billing_date=TODAY + timedelta(days=8))
        add_subscription(name="Expired", next_billing_date=TODAY - timedelta(days=1))
        add_subscription(name="Old", next_billing_date=TODAY - timedelta(days=2))

        result = engine.trigger_check()

        assert result.renewal_candidates == 2
        assert result.expiration_candidates == 1
        assert result.notifications_delivered == 3
        for message, name in zip(telegram.sent, ["Spotify", "iCloud", "Expired"]):
            assert f"<b>{name}</b>" in message[1]

    def test_stats_after_run(self, engine, telegram):
        add_subscription(next_billing_date=TODAY + timedelta(days=1))
        add_subscription(next_billing_date=TODAY - timedelta(days=1))

        engine.trigger_check()
        stats = engine.get_stats()

        assert stats.total == 2
        assert stats.sent == 2
        assert stats.by_type["renewal_reminder"]["sent"] == 1
        assert stats.by_channel["telegram"]["sent"] == 2


class TestRestart:
    """Persisted settings survive a restart of the process."""

    def test_settings_persist_across_restart(self, tmp_path, telegram):
        database_url = f"sqlite:///{tmp_path / 'notifier.db'}"
        registry = ChannelRegistry()
        registry.register(telegram)

        init_database(database_url)
        try:
            engine = NotificationEngine(
                AppConfig(),
                EnvironmentConfig(),
                registry=registry,
                scheduler=BackgroundScheduler(timezone=timezone.utc),
            )
            engine.update_scheduler_settings(check_time="21:45", timezone="UTC")
            engine.update_notification_setting("renewal_reminder", advance_days=14)
            engine.set_language("en")
        finally:
            close_database()

        init_database(database_url)
        try:
            scheduler = BackgroundScheduler(timezone=timezone.utc)
            engine = NotificationEngine(
                AppConfig(), EnvironmentConfig(), registry=registry, scheduler=scheduler
            )
            engine.schedule_manager.reconcile()

            assert engine.get_scheduler_settings()["check_time"] == "21:45"
            assert engine.get_notification_settings()[0].advance_days == 14
            assert engine.get_language() == "en"
            assert engine.get_status().current_schedule == {
                "check_time": "21:45",
                "timezone": "UTC",
                "enabled": True,
            }
        finally:
            close_database()
