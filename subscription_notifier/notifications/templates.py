"""Template resolution and rendering for notification messages.

Templates come from the built-in catalogue in ``catalog.py``. A lookup
tries the requested language first, then the fallback languages in order.
Rendering uses Jinja2 with autoescape disabled (Telegram templates carry
their own HTML) and an Undefined that writes unknown placeholders back
verbatim, so ``{{foo}}`` survives rendering as ``{{foo}}``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from jinja2 import Environment, Template, TemplateError, Undefined

from subscription_notifier.domain.models import Subscription

from .catalog import NOTIFICATION_TEMPLATES
from .models import NotificationTemplateError, RenderedMessage
from .payloads import build_default_message, build_template_context

logger = logging.getLogger(__name__)

FALLBACK_LANGUAGES = ("en", "zh-CN")

SAMPLE_SUBSCRIPTION_DATA = {
    "name": "Netflix",
    "plan": "Premium",
    "amount": "15.99",
    "currency": "USD",
    "next_billing_date": "2024-01-15",
    "payment_method": "Credit Card",
    "status": "active",
    "billing_cycle": "monthly",
}


@dataclass
class ResolvedTemplate:
    """A catalogue entry chosen for (type, language, channel)."""

    notification_type: str
    language: str
    channel: str
    content: str
    subject: Optional[str] = None


class PlaceholderUndefined(Undefined):
    """Renders a missing variable as its own ``{{name}}`` placeholder."""

    __slots__ = ()

    def __str__(self) -> str:
        if self._undefined_name is None:
            return ""
        return "{{" + self._undefined_name + "}}"


def _finalize(value: Any) -> Any:
    return "" if value is None else value


def resolve_template(
    notification_type: str, language: str, channel: str
) -> Optional[ResolvedTemplate]:
    """Find the template for a type and channel.

    The requested language is tried first, then each of FALLBACK_LANGUAGES
    other than the requested one. Fallback is per (type, channel): a
    language only counts if it has an entry for that channel.

    Returns:
        ResolvedTemplate, or None if no language has one
    """
    by_language = NOTIFICATION_TEMPLATES.get(notification_type)
    if not by_language:
        return None

    candidates = [language] + [lang for lang in FALLBACK_LANGUAGES if lang != language]
    for candidate in candidates:
        entry = by_language.get(candidate, {}).get(channel)
        if entry:
            if candidate != language:
                logger.debug(
                    f"No {language} template for {notification_type}/{channel}, "
                    f"using {candidate}"
                )
            return ResolvedTemplate(
                notification_type=notification_type,
                language=candidate,
                channel=channel,
                content=entry["content"],
                subject=entry.get("subject"),
            )
    return None


def get_supported_languages() -> List[str]:
    """Languages that have at least one template, in catalogue order."""
    languages: List[str] = []
    for by_language in NOTIFICATION_TEMPLATES.values():
        for language in by_language:
            if language not in languages:
                languages.append(language)
    return languages


def get_supported_notification_types() -> List[str]:
    return list(NOTIFICATION_TEMPLATES)


def get_supported_channels(notification_type: str, language: str) -> List[str]:
    """Channels with a template for exactly this type and language."""
    return list(NOTIFICATION_TEMPLATES.get(notification_type, {}).get(language, {}))


def get_template_overview() -> Dict[str, Any]:
    """Summarize the catalogue: per type, its languages and their channels."""
    templates = []
    for notification_type, by_language in NOTIFICATION_TEMPLATES.items():
        templates.append(
            {
                "notification_type": notification_type,
                "supported_languages": list(by_language),
                "language_channels": {
                    language: list(channels) for language, channels in by_language.items()
                },
            }
        )

    return {
        "templates": templates,
        "total_types": len(templates),
        "total_languages": len(get_supported_languages()),
    }


class TemplateRenderer:
    """Renders notification messages from the built-in catalogue.

    Compiled templates are cached by source text for reuse across sends.
    """

    def __init__(self):
        self.env = Environment(
            autoescape=False,
            undefined=PlaceholderUndefined,
            finalize=_finalize,
        )
        self._cache: Dict[str, Template] = {}

    def _compile(self, source: str) -> Template:
        template = self._cache.get(source)
        if template is None:
            template = self.env.from_string(source)
            self._cache[source] = template
        return template

    def render_string(self, source: str, context: Dict[str, Any]) -> str:
        """Render one template string.

        Raises:
            NotificationTemplateError: If the template cannot be rendered
        """
        try:
            return self._compile(source).render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

    def render(
        self,
        subscription: Subscription,
        notification_type: str,
        language: str,
        channel: str,
    ) -> RenderedMessage:
        """Render the message for one subscription and channel.

        When no template resolves, a single-line default message is built
        instead and ``used_default`` is set.

        Args:
            subscription: Subscription being notified about
            notification_type: One of the NotificationType values
            language: User's language
            channel: Channel key

        Returns:
            RenderedMessage with subject (None for channels without one)

        Raises:
            NotificationTemplateError: If a resolved template fails to render
        """
        resolved = resolve_template(notification_type, language, channel)
        if resolved is None:
            logger.warning(
                f"No template for {notification_type}/{channel}, using default message",
                extra={"event": "template.fallback", "channel": channel},
            )
            return RenderedMessage(
                subject=None,
                content=build_default_message(notification_type, subscription, language),
                language=language,
                used_default=True,
            )

        context = build_template_context(subscription, language)
        content = self.render_string(resolved.content, context)
        subject = None
        if resolved.subject:
            subject = self.render_string(resolved.subject, context).strip().replace("\n", " ")

        return RenderedMessage(subject=subject, content=content, language=resolved.language)

    def preview(
        self,
        notification_type: str,
        language: str,
        channel: str,
        sample_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Render a template against the sample subscription.

        Caller values in ``sample_data`` override the built-in sample. Values
        are substituted as given, without date formatting.

        Raises:
            NotificationTemplateError: If no template exists for the combination
        """
        resolved = resolve_template(notification_type, language, channel)
        if resolved is None:
            raise NotificationTemplateError(
                f"Template not found for {notification_type}/{language}/{channel}"
            )

        context = {**SAMPLE_SUBSCRIPTION_DATA, **(sample_data or {})}
        return {
            "notification_type": notification_type,
            "language": resolved.language,
            "channel": channel,
            "subject": (
                self.render_string(resolved.subject, context) if resolved.subject else None
            ),
            "content": self.render_string(resolved.content, context),
            "sample_data": context,
        }


def preview_template(
    notification_type: str,
    language: str,
    channel: str,
    sample_data: Optional[Dict[str, Any]] = None,
    renderer: Optional[TemplateRenderer] = None,
) -> Dict[str, Any]:
    """Module-level shortcut for TemplateRenderer.preview."""
    return (renderer or TemplateRenderer()).preview(
        notification_type, language, channel, sample_data
    )
