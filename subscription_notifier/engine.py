"""Notification engine facade.

Wires the schedule manager, selector, notification service, channel
dispatcher and template renderer together and exposes the operations the
outer layers (CLI, an HTTP API) call. Validation failures come back as
OperationResult values; the underlying components are reachable as
attributes for callers that need them directly.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from apscheduler.schedulers.base import BaseScheduler

from subscription_notifier.channels.dispatcher import ChannelDispatcher
from subscription_notifier.channels.exceptions import ChannelConfigurationError
from subscription_notifier.channels.models import DispatchResult
from subscription_notifier.channels.registry import ChannelRegistry, build_channel_registry
from subscription_notifier.config.environment import EnvironmentConfig
from subscription_notifier.config.models import (
    ADVANCE_DAYS_MAX,
    ADVANCE_DAYS_MIN,
    SUPPORTED_CHANNELS,
    SUPPORTED_LANGUAGES,
    AppConfig,
)
from subscription_notifier.domain.models import (
    HistoryEntry,
    HistoryStatus,
    NotificationSetting,
    NotificationStats,
    NotificationType,
)
from subscription_notifier.logging import get_logger
from subscription_notifier.notifications import templates as template_catalog
from subscription_notifier.notifications.models import (
    NotificationResult,
    NotificationSettingsError,
    NotificationTemplateError,
)
from subscription_notifier.notifications.service import NotificationService
from subscription_notifier.notifications.templates import TemplateRenderer
from subscription_notifier.persistence.database import get_session
from subscription_notifier.persistence.exceptions import PersistenceError, RecordNotFoundError
from subscription_notifier.persistence.repositories import (
    NotificationHistoryRepository,
    NotificationSettingRepository,
    UserPreferenceRepository,
)
from subscription_notifier.pipeline.models import CheckRunResult
from subscription_notifier.pipeline.runner import NotificationCheckPipeline
from subscription_notifier.scheduler.exceptions import SchedulerError, ScheduleValidationError
from subscription_notifier.scheduler.models import SchedulerStatus
from subscription_notifier.scheduler.service import ScheduleManager
from subscription_notifier.selection.selector import DueNotificationSelector
from subscription_notifier.utils.timestamps import format_timestamp, utc_now

logger = get_logger(__name__, component="engine")


@dataclass
class OperationResult:
    """Outcome of a mutating operation: success, or the error to show."""

    success: bool
    error: Optional[str] = None
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            result["error"] = self.error
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class HistoryPage:
    """One page of notification history."""

    data: List[HistoryEntry] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20
    total_pages: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": [entry.model_dump(mode="json") for entry in self.data],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": self.total_pages,
        }


class NotificationEngine:
    """Entry point for scheduling, sending and inspecting notifications."""

    def __init__(
        self,
        app_config: AppConfig,
        env_config: EnvironmentConfig,
        registry: Optional[ChannelRegistry] = None,
        scheduler: Optional[BaseScheduler] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Build every component from configuration.

        Args:
            app_config: Application configuration
            env_config: Environment configuration (channel credentials)
            registry: Channel registry (built from config if None)
            scheduler: APScheduler instance (a BackgroundScheduler if None)
            clock: Returns the current aware UTC datetime
        """
        self.app_config = app_config
        self.env_config = env_config
        self.defaults = app_config.notifications

        self.registry = registry or build_channel_registry(env_config, app_config)
        self.dispatcher = ChannelDispatcher(self.registry, clock=clock)
        self.renderer = TemplateRenderer()
        self.notification_service = NotificationService(
            dispatcher=self.dispatcher,
            renderer=self.renderer,
            clock=clock,
            default_language=self.defaults.default_language,
        )
        self.selector = DueNotificationSelector(clock=clock)
        self.pipeline = NotificationCheckPipeline(
            selector=self.selector,
            notification_service=self.notification_service,
            scheduler_defaults=app_config.scheduler,
            clock=clock,
        )
        self.schedule_manager = ScheduleManager(
            check_callable=self.pipeline.run_once,
            scheduler=scheduler,
            defaults=app_config.scheduler,
        )

    # Lifecycle

    def start(self) -> None:
        self.schedule_manager.start()

    def shutdown(self, wait: bool = False) -> None:
        self.schedule_manager.shutdown(wait=wait)

    # Scheduling

    def get_scheduler_settings(self) -> Dict[str, Any]:
        """Current schedule as {check_time, timezone, enabled, updated_at}.

        Raises:
            SchedulerError: If the settings cannot be read
        """
        settings = self.schedule_manager.get_settings()
        return {
            "check_time": settings.check_time,
            "timezone": settings.timezone,
            "enabled": settings.is_enabled,
            "updated_at": format_timestamp(settings.updated_at) if settings.updated_at else None,
        }

    def update_scheduler_settings(
        self,
        check_time: Optional[str] = None,
        timezone: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> OperationResult:
        try:
            saved = self.schedule_manager.update_settings(
                check_time=check_time, timezone=timezone, enabled=enabled
            )
        except ScheduleValidationError as e:
            return OperationResult(success=False, error=str(e))
        except SchedulerError as e:
            logger.error(
                f"Scheduler settings update failed: {e}",
                extra={"event": "engine.scheduler.update_failed"},
            )
            return OperationResult(success=False, error=str(e))

        return OperationResult(
            success=True,
            data={
                "check_time": saved.check_time,
                "timezone": saved.timezone,
                "enabled": saved.is_enabled,
            },
        )

    def get_status(self) -> SchedulerStatus:
        return self.schedule_manager.get_status()

    def trigger_check(self) -> CheckRunResult:
        """Run the notification check now, whatever the schedule says."""
        return self.schedule_manager.trigger_manually()

    # Sending

    def send_notification(
        self,
        subscription_id: int,
        notification_type: str,
        channels: Optional[List[str]] = None,
    ) -> NotificationResult:
        return self.notification_service.send_notification(
            subscription_id, notification_type, channels=channels
        )

    def test_notification(self, channel_type: str) -> DispatchResult:
        return self.dispatcher.test_notification(channel_type)

    def validate_recipient(self, channel_type: str, recipient: str) -> DispatchResult:
        return self.dispatcher.validate_recipient(channel_type, recipient)

    def configure_channel(self, channel_type: str, config: Dict[str, Any]) -> OperationResult:
        try:
            saved = self.dispatcher.configure_channel(channel_type, config)
        except ChannelConfigurationError as e:
            return OperationResult(success=False, error=str(e))
        except PersistenceError as e:
            logger.error(
                f"Could not save {channel_type} configuration: {e}",
                extra={"event": "engine.channel.configure_failed", "channel": channel_type},
            )
            return OperationResult(success=False, error=f"Failed to save channel config: {e}")

        return OperationResult(success=True, data=saved.model_dump(mode="json"))

    def get_channel_config(self, channel_type: str) -> Optional[Dict[str, Any]]:
        config = self.dispatcher.get_channel_config(channel_type)
        return config.model_dump(mode="json") if config else None

    # History

    def get_history(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[str] = None,
        notification_type: Optional[str] = None,
    ) -> HistoryPage:
        """One page of history, newest first.

        ``limit`` defaults to the configured page size and is capped at
        ``max_page_size``; ``page`` is at least 1.

        Raises:
            ValueError: If status or notification_type is not a known value
            PersistenceError: If the history cannot be read
        """
        if status is not None and status not in [s.value for s in HistoryStatus]:
            raise ValueError(f"Unknown status filter: {status}")
        if notification_type is not None and notification_type not in NotificationType.values():
            raise ValueError(f"Unknown notification type filter: {notification_type}")

        page = max(1, page)
        limit = limit or self.defaults.default_page_size
        limit = max(1, min(limit, self.defaults.max_page_size))

        with get_session() as session:
            entries, total = NotificationHistoryRepository(session).list_page(
                page, limit, status=status, notification_type=notification_type
            )

        return HistoryPage(
            data=entries,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        )

    def get_stats(self) -> NotificationStats:
        with get_session() as session:
            return NotificationHistoryRepository(session).get_stats()

    # Notification settings

    def get_notification_settings(self) -> List[NotificationSetting]:
        with get_session() as session:
            return NotificationSettingRepository(session).get_all()

    def update_notification_setting(
        self,
        notification_type: str,
        is_enabled: Optional[bool] = None,
        advance_days: Optional[int] = None,
        repeat_notification: Optional[bool] = None,
        notification_channels: Optional[List[str]] = None,
    ) -> OperationResult:
        """Change the given fields of one notification type's setting."""
        try:
            channels = self._validate_setting_update(
                notification_type, advance_days, notification_channels
            )
            with get_session() as session:
                updated = NotificationSettingRepository(session).update(
                    notification_type,
                    is_enabled=is_enabled,
                    advance_days=advance_days,
                    repeat_notification=repeat_notification,
                    notification_channels=channels,
                )
        except NotificationSettingsError as e:
            return OperationResult(success=False, error=str(e))
        except RecordNotFoundError as e:
            return OperationResult(success=False, error=str(e))
        except PersistenceError as e:
            logger.error(
                f"Could not update {notification_type} setting: {e}",
                extra={"event": "engine.setting.update_failed"},
            )
            return OperationResult(success=False, error=f"Failed to update setting: {e}")

        logger.info(
            f"Notification setting {notification_type} updated",
            extra={"event": "engine.setting.updated", "notification_type": notification_type},
        )
        return OperationResult(success=True, data=updated.model_dump(mode="json"))

    @staticmethod
    def _validate_setting_update(
        notification_type: str,
        advance_days: Optional[int],
        notification_channels: Optional[List[str]],
    ) -> Optional[List[str]]:
        if notification_type not in NotificationType.values():
            raise NotificationSettingsError(f"Unsupported notification type: {notification_type}")

        if advance_days is not None:
            if isinstance(advance_days, bool) or not isinstance(advance_days, int):
                raise NotificationSettingsError("advance_days must be an integer")
            if not ADVANCE_DAYS_MIN <= advance_days <= ADVANCE_DAYS_MAX:
                raise NotificationSettingsError(
                    f"advance_days must be between {ADVANCE_DAYS_MIN} and {ADVANCE_DAYS_MAX}"
                )

        if notification_channels is None:
            return None

        channels: List[str] = []
        for channel in notification_channels:
            name = str(channel).strip().lower()
            if name not in SUPPORTED_CHANNELS:
                raise NotificationSettingsError(
                    f"Unsupported channel '{channel}'. Must be one of: {', '.join(SUPPORTED_CHANNELS)}"
                )
            if name not in channels:
                channels.append(name)
        return channels

    # Language preference

    def get_language(self) -> str:
        """The global language preference, or the configured default."""
        try:
            with get_session() as session:
                language = UserPreferenceRepository(session).get_language()
        except PersistenceError as e:
            logger.warning(
                f"Could not read language preference: {e}",
                extra={"event": "engine.language.fallback"},
            )
            return self.defaults.default_language
        return language or self.defaults.default_language

    def set_language(self, language: str) -> OperationResult:
        if language not in SUPPORTED_LANGUAGES:
            return OperationResult(
                success=False,
                error=f"Unsupported language '{language}'. Must be one of: {', '.join(SUPPORTED_LANGUAGES)}",
            )
        try:
            with get_session() as session:
                saved = UserPreferenceRepository(session).set_language(language)
        except PersistenceError as e:
            return OperationResult(success=False, error=f"Failed to save language: {e}")
        return OperationResult(success=True, data={"language": saved})

    # Template catalogue

    def get_supported_languages(self) -> List[str]:
        return template_catalog.get_supported_languages()

    def get_supported_notification_types(self) -> List[str]:
        return template_catalog.get_supported_notification_types()

    def get_supported_channels(self, notification_type: str, language: str) -> List[str]:
        return template_catalog.get_supported_channels(notification_type, language)

    def get_template_overview(self) -> Dict[str, Any]:
        return template_catalog.get_template_overview()

    def preview_template(
        self,
        notification_type: str,
        language: str,
        channel: str,
        sample_data: Optional[Dict[str, Any]] = None,
    ) -> OperationResult:
        try:
            preview = self.renderer.preview(notification_type, language, channel, sample_data)
        except NotificationTemplateError as e:
            return OperationResult(success=False, error=str(e))
        return OperationResult(success=True, data=preview)
