"""Unit tests for persistence layer."""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from subscription_notifier.config.models import AppConfig, NotificationDefaultsConfig, SchedulerConfig
from subscription_notifier.domain.models import HistoryEntry, SchedulerSettings, SubscriptionStatus
from subscription_notifier.persistence import (
    ChannelConfigRepository,
    DatabaseConnectionError,
    DataIntegrityError,
    NotificationHistoryRepository,
    NotificationSettingRepository,
    RecordNotFoundError,
    SchedulerSettingsRepository,
    SubscriptionRepository,
    UserPreferenceRepository,
    close_database,
    get_session,
    init_database,
)
from tests.helpers import add_subscription, record_history


@pytest.fixture
def db():
    """Fresh in-memory database for each test."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


def _history(subscription_id, status="sent", sent_at=None, notification_type="renewal_reminder",
             channel_type="telegram", created_at=None):
    return HistoryEntry(
        subscription_id=subscription_id,
        notification_type=notification_type,
        channel_type=channel_type,
        status=status,
        recipient="12345",
        message_content="hello",
        sent_at=sent_at,
        created_at=created_at,
    )


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_database_success(self, tmp_path):
        """Test successful database initialization."""
        db_file = tmp_path / "test.db"

        init_database(f"sqlite:///{db_file}")

        assert db_file.exists()
        with get_session() as session:
            assert session is not None

        close_database()

    def test_init_database_creates_parent_directories(self, tmp_path):
        """Test initialization creates parent directories if missing."""
        db_file = tmp_path / "subdir" / "nested" / "test.db"

        init_database(f"sqlite:///{db_file}")

        assert db_file.parent.exists()
        assert db_file.exists()

        close_database()

    def test_init_database_invalid_url_raises_error(self):
        """Test initialization with invalid URL raises DatabaseConnectionError."""
        with pytest.raises(DatabaseConnectionError):
            init_database("")

        with pytest.raises(DatabaseConnectionError):
            init_database(None)

    def test_get_session_before_init_raises(self):
        close_database()
        with pytest.raises(DatabaseConnectionError):
            with get_session():
                pass

    def test_schema_creation_and_seeding_are_idempotent(self, tmp_path):
        """Test re-initializing keeps user changes to seeded rows."""
        db_url = f"sqlite:///{tmp_path / 'test.db'}"

        init_database(db_url)
        with get_session() as session:
            NotificationSettingRepository(session).update("renewal_reminder", advance_days=3)
        close_database()

        init_database(db_url)
        with get_session() as session:
            settings = NotificationSettingRepository(session).get_all()
            reminder = NotificationSettingRepository(session).get("renewal_reminder")
        close_database()

        assert len(settings) == 5
        assert reminder.advance_days == 3

    def test_seeded_defaults(self, db):
        with get_session() as session:
            settings = {s.notification_type: s for s in NotificationSettingRepository(session).get_all()}
            scheduler = SchedulerSettingsRepository(session).get()
            language = UserPreferenceRepository(session).get_language()

        assert list(settings) == [
            "renewal_reminder",
            "expiration_warning",
            "renewal_success",
            "renewal_failure",
            "subscription_change",
        ]
        assert settings["renewal_reminder"].advance_days == 7
        assert settings["renewal_reminder"].repeat_notification is True
        assert settings["expiration_warning"].advance_days == 0
        assert settings["expiration_warning"].repeat_notification is False
        assert all(s.notification_channels == ["telegram"] for s in settings.values())
        assert all(s.is_enabled for s in settings.values())

        assert scheduler.check_time == "09:00"
        assert scheduler.timezone == "Asia/Shanghai"
        assert scheduler.is_enabled is True
        assert language == "zh-CN"

    def test_seeding_uses_app_config(self):
        app_config = AppConfig(
            scheduler=SchedulerConfig(check_time="07:30", timezone="UTC", enabled=False),
            notifications=NotificationDefaultsConfig(
                default_advance_days=3,
                default_channels=["email"],
                default_language="en",
            ),
        )

        init_database("sqlite:///:memory:", app_config)
        with get_session() as session:
            reminder = NotificationSettingRepository(session).get("renewal_reminder")
            scheduler = SchedulerSettingsRepository(session).get()
            language = UserPreferenceRepository(session).get_language()
        close_database()

        assert reminder.advance_days == 3
        assert reminder.notification_channels == ["email"]
        assert scheduler.check_time == "07:30"
        assert scheduler.is_enabled is False
        assert language == "en"

    def test_foreign_keys_enabled(self, db):
        with get_session() as session:
            assert session.execute(text("PRAGMA foreign_keys")).scalar() == 1


class TestSubscriptionRepository:
    """Tests for the subscription queries used by the selector."""

    def test_add_and_get_with_payment_method_label(self, db):
        added = add_subscription(
            next_billing_date=date(2024, 1, 20), payment_method_label="Visa 1234"
        )

        with get_session() as session:
            loaded = SubscriptionRepository(session).get_by_id(added.id)

        assert loaded.name == "Netflix"
        assert loaded.next_billing_date == date(2024, 1, 20)
        assert loaded.payment_method == "Visa 1234"

    def test_get_missing_returns_none(self, db):
        with get_session() as session:
            assert SubscriptionRepository(session).get_by_id(999) is None

    def test_find_active_due_between_is_inclusive_and_ordered(self, db):
        late = add_subscription(name="Late", next_billing_date=date(2024, 1, 22))
        early = add_subscription(name="Early", next_billing_date=date(2024, 1, 16))
        edge = add_subscription(name="Edge", next_billing_date=date(2024, 1, 22))
        add_subscription(name="Outside", next_billing_date=date(2024, 1, 23))
        add_subscription(name="Today", next_billing_date=date(2024, 1, 15))
        add_subscription(
            name="Inactive",
            next_billing_date=date(2024, 1, 18),
            status=SubscriptionStatus.INACTIVE,
        )

        with get_session() as session:
            found = SubscriptionRepository(session).find_active_due_between(
                date(2024, 1, 16), date(2024, 1, 22)
            )

        assert [s.id for s in found] == [early.id, late.id, edge.id]

    def test_find_active_due_on(self, db):
        first = add_subscription(name="A", next_billing_date=date(2024, 1, 14))
        second = add_subscription(name="B", next_billing_date=date(2024, 1, 14))
        add_subscription(
            name="Cancelled",
            next_billing_date=date(2024, 1, 14),
            status=SubscriptionStatus.CANCELLED,
        )
        add_subscription(name="Other", next_billing_date=date(2024, 1, 13))

        with get_session() as session:
            found = SubscriptionRepository(session).find_active_due_on(date(2024, 1, 14))

        assert [s.id for s in found] == [first.id, second.id]

    def test_delete_cascades_history(self, db):
        subscription = add_subscription(next_billing_date=date(2024, 1, 20))
        record_history(_history(subscription.id, sent_at=datetime(2024, 1, 15, tzinfo=timezone.utc)))

        with get_session() as session:
            SubscriptionRepository(session).delete(subscription.id)

        with get_session() as session:
            _, total = NotificationHistoryRepository(session).list_page(1, 10)
        assert total == 0

    def test_delete_missing_raises(self, db):
        with pytest.raises(RecordNotFoundError):
            with get_session() as session:
                SubscriptionRepository(session).delete(42)


class TestNotificationSettingRepository:
    """Tests for notification setting updates."""

    def test_partial_update(self, db):
        with get_session() as session:
            updated = NotificationSettingRepository(session).update(
                "renewal_reminder", is_enabled=False, notification_channels=["telegram", "email"]
            )

        assert updated.is_enabled is False
        assert updated.advance_days == 7
        assert updated.notification_channels == ["telegram", "email"]

    def test_update_missing_type_raises(self, db):
        with pytest.raises(RecordNotFoundError):
            with get_session() as session:
                NotificationSettingRepository(session).update("nope", is_enabled=False)


class TestChannelConfigRepository:
    """Tests for channel configuration storage."""

    def test_upsert_creates_then_updates(self, db):
        with get_session() as session:
            created = ChannelConfigRepository(session).upsert("telegram", {"chat_id": "1"})
        with get_session() as session:
            updated = ChannelConfigRepository(session).upsert("telegram", {"chat_id": "2"})
            loaded = ChannelConfigRepository(session).get("telegram")

        assert created.config == {"chat_id": "1"}
        assert updated.config == {"chat_id": "2"}
        assert loaded.is_active is True

    def test_upsert_reactivates_channel(self, db):
        with get_session() as session:
            repo = ChannelConfigRepository(session)
            repo.upsert("email", {"email": "me@example.com"})
            repo.set_active("email", False)
            assert repo.get("email").is_active is False

            repo.upsert("email", {"email": "me@example.com"})
            assert repo.get("email").is_active is True

    def test_set_active_missing_raises(self, db):
        with pytest.raises(RecordNotFoundError):
            with get_session() as session:
                ChannelConfigRepository(session).set_active("email", True)

    def test_touch_last_used(self, db):
        when = datetime(2024, 1, 15, 1, 0, tzinfo=timezone.utc)
        with get_session() as session:
            repo = ChannelConfigRepository(session)
            repo.upsert("telegram", {"chat_id": "1"})
            repo.touch_last_used("telegram", when)

        with get_session() as session:
            assert ChannelConfigRepository(session).get("telegram").last_used_at == when


class TestNotificationHistoryRepository:
    """Tests for append-only history and its window queries."""

    def test_record_assigns_id_and_created_at(self, db):
        subscription = add_subscription()

        entry = record_history(
            _history(subscription.id, sent_at=datetime(2024, 1, 15, 1, 0, tzinfo=timezone.utc))
        )

        assert entry.id is not None
        assert entry.created_at is not None
        assert entry.retry_count == 0
        assert entry.max_retry == 3

    def test_record_for_missing_subscription_raises(self, db):
        with pytest.raises(DataIntegrityError):
            record_history(_history(999, status="failed"))

    def test_has_sent_since_ignores_failed_rows(self, db):
        subscription = add_subscription()
        since = datetime(2024, 1, 10, tzinfo=timezone.utc)
        record_history(_history(subscription.id, status="failed"))

        with get_session() as session:
            repo = NotificationHistoryRepository(session)
            assert repo.has_sent_since(subscription.id, "renewal_reminder", since) is False

        record_history(
            _history(subscription.id, sent_at=datetime(2024, 1, 12, tzinfo=timezone.utc))
        )
        with get_session() as session:
            repo = NotificationHistoryRepository(session)
            assert repo.has_sent_since(subscription.id, "renewal_reminder", since) is True
            assert repo.has_sent_since(subscription.id, "expiration_warning", since) is False
            assert (
                repo.has_sent_since(
                    subscription.id, "renewal_reminder", since + timedelta(days=5)
                )
                is False
            )

    def test_has_sent_between_end_is_exclusive(self, db):
        subscription = add_subscription()
        start = datetime(2024, 1, 14, 16, 0, tzinfo=timezone.utc)
        end = start + timedelta(days=1)
        record_history(
            _history(subscription.id, notification_type="expiration_warning", sent_at=end)
        )

        with get_session() as session:
            repo = NotificationHistoryRepository(session)
            assert repo.has_sent_between(subscription.id, "expiration_warning", start, end) is False
            assert (
                repo.has_sent_between(
                    subscription.id, "expiration_warning", end, end + timedelta(days=1)
                )
                is True
            )

    def test_list_page_newest_first_with_filters(self, db):
        subscription = add_subscription(name="Spotify")
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(5):
            record_history(
                _history(
                    subscription.id,
                    status="sent" if i % 2 == 0 else "failed",
                    sent_at=base + timedelta(hours=i) if i % 2 == 0 else None,
                    created_at=base + timedelta(hours=i),
                )
            )

        with get_session() as session:
            repo = NotificationHistoryRepository(session)
            page_one, total = repo.list_page(1, 2)
            page_three, _ = repo.list_page(3, 2)
            failed, failed_total = repo.list_page(1, 10, status="failed")
            warnings, warnings_total = repo.list_page(
                1, 10, notification_type="expiration_warning"
            )

        assert total == 5
        assert [e.created_at for e in page_one] == [
            base + timedelta(hours=4),
            base + timedelta(hours=3),
        ]
        assert len(page_three) == 1
        assert page_one[0].subscription_name == "Spotify"
        assert failed_total == 2
        assert all(e.status == "failed" for e in failed)
        assert warnings == [] and warnings_total == 0

    def test_get_stats(self, db):
        subscription = add_subscription()
        sent_at = datetime(2024, 1, 15, tzinfo=timezone.utc)
        record_history(_history(subscription.id, sent_at=sent_at))
        record_history(_history(subscription.id, sent_at=sent_at, channel_type="email"))
        record_history(
            _history(subscription.id, status="failed", notification_type="expiration_warning")
        )

        with get_session() as session:
            stats = NotificationHistoryRepository(session).get_stats()

        assert (stats.total, stats.sent, stats.failed) == (3, 2, 1)
        assert stats.by_type["renewal_reminder"] == {"total": 2, "sent": 2, "failed": 0}
        assert stats.by_type["expiration_warning"] == {"total": 1, "sent": 0, "failed": 1}
        assert stats.by_channel["telegram"] == {"total": 2, "sent": 1, "failed": 1}
        assert stats.by_channel["email"] == {"total": 1, "sent": 1, "failed": 0}

    def test_get_stats_empty(self, db):
        with get_session() as session:
            stats = NotificationHistoryRepository(session).get_stats()

        assert stats.total == 0
        assert stats.by_type == {}


class TestSingletonRepositories:
    """Tests for scheduler settings and user preference rows."""

    def test_scheduler_settings_save_overwrites_singleton(self, db):
        with get_session() as session:
            saved = SchedulerSettingsRepository(session).save(
                SchedulerSettings(check_time="18:30", timezone="UTC", is_enabled=False)
            )

        with get_session() as session:
            loaded = SchedulerSettingsRepository(session).get()
            count = session.execute(text("SELECT COUNT(*) FROM scheduler_settings")).scalar()

        assert saved.updated_at is not None
        assert loaded.schedule_key() == ("18:30", "UTC", False)
        assert count == 1

    def test_ensure_default_keeps_existing(self, db):
        with get_session() as session:
            repo = SchedulerSettingsRepository(session)
            repo.save(SchedulerSettings(check_time="06:00", timezone="UTC"))
            kept = repo.ensure_default(SchedulerConfig())

        assert kept.check_time == "06:00"

    def test_language_round_trip(self, db):
        with get_session() as session:
            UserPreferenceRepository(session).set_language("en")

        with get_session() as session:
            repo = UserPreferenceRepository(session)
            assert repo.get_language() == "en"
            assert repo.ensure_default("zh-CN") == "en"
