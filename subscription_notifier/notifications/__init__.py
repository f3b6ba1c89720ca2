"""Notification rendering and delivery for subscriptions.

This module provides the notification flow:
- NotificationService: Drives one (subscription, type) pair across channels
- NotificationResult / ChannelOutcome: Per-pair and per-channel outcomes
- TemplateRenderer: Jinja2 rendering of the built-in message catalogue
- Template catalogue helpers: resolution, overview and preview
- Payload utilities: Context and default message builders
"""

from .catalog import NOTIFICATION_TEMPLATES
from .models import (
    ChannelOutcome,
    NotificationError,
    NotificationResult,
    NotificationSettingsError,
    NotificationTemplateError,
    RenderedMessage,
)
from .payloads import build_default_message, build_template_context, format_date
from .service import NotificationService
from .templates import (
    FALLBACK_LANGUAGES,
    ResolvedTemplate,
    TemplateRenderer,
    get_supported_channels,
    get_supported_languages,
    get_supported_notification_types,
    get_template_overview,
    preview_template,
    resolve_template,
)

__all__ = [
    # Main service
    "NotificationService",
    # Models and results
    "NotificationResult",
    "ChannelOutcome",
    "RenderedMessage",
    "ResolvedTemplate",
    # Exceptions
    "NotificationError",
    "NotificationTemplateError",
    "NotificationSettingsError",
    # Templates
    "NOTIFICATION_TEMPLATES",
    "FALLBACK_LANGUAGES",
    "TemplateRenderer",
    "resolve_template",
    "get_supported_languages",
    "get_supported_notification_types",
    "get_supported_channels",
    "get_template_overview",
    "preview_template",
    # Utilities
    "build_template_context",
    "build_default_message",
    "format_date",
]
