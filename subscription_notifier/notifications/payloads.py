"""Template context and fallback message construction.

This module turns a Subscription into the flat dictionary the message
templates are rendered with, formatting dates and amounts for the
recipient's language.
"""

from datetime import date
from typing import Any, Dict, Optional

from subscription_notifier.domain.models import NotificationType, Subscription

UNKNOWN_DATE = {
    "zh-CN": "未知日期",
    "en": "unknown date",
}

DEFAULT_MESSAGES = {
    "zh-CN": {
        NotificationType.RENEWAL_REMINDER.value: "续订提醒：{name} 将于 {date} 到期，金额：{amount} {currency}",
        NotificationType.EXPIRATION_WARNING.value: "过期警告：{name} 已于 {date} 过期",
        NotificationType.RENEWAL_SUCCESS.value: "续订成功：{name} 续订成功，金额：{amount} {currency}",
        NotificationType.RENEWAL_FAILURE.value: "续订失败：{name} 续订失败",
        NotificationType.SUBSCRIPTION_CHANGE.value: "订阅变更：{name} 信息已更新",
    },
    "en": {
        NotificationType.RENEWAL_REMINDER.value: "Renewal reminder: {name} expires on {date}, amount: {amount} {currency}",
        NotificationType.EXPIRATION_WARNING.value: "Expiration warning: {name} expired on {date}",
        NotificationType.RENEWAL_SUCCESS.value: "Renewal successful: {name} renewed successfully, amount: {amount} {currency}",
        NotificationType.RENEWAL_FAILURE.value: "Renewal failed: {name} renewal failed",
        NotificationType.SUBSCRIPTION_CHANGE.value: "Subscription change: {name} information updated",
    },
}

FALLBACK_MESSAGE = {
    "zh-CN": "订阅通知：{name}",
    "en": "Subscription notification: {name}",
}

DEFAULT_MESSAGE_LANGUAGE = "en"


def format_date(value: Optional[date], language: str) -> str:
    """Format a date the way the given locale writes it.

    Examples:
        >>> format_date(date(2024, 1, 15), "en")
        '1/15/2024'
        >>> format_date(date(2024, 1, 15), "de")
        '15.1.2024'
    """
    if value is None:
        return UNKNOWN_DATE.get(language, UNKNOWN_DATE["en"])

    y, m, d = value.year, value.month, value.day
    if language in ("zh-CN", "ja"):
        return f"{y}/{m}/{d}"
    if language == "ko":
        return f"{y}. {m}. {d}."
    if language == "fr":
        return f"{d:02d}/{m:02d}/{y}"
    if language == "es":
        return f"{d}/{m}/{y}"
    if language == "de":
        return f"{d}.{m}.{y}"
    return f"{m}/{d}/{y}"


def format_amount(amount: Optional[float]) -> str:
    """Render whole amounts without a trailing ``.0``."""
    if amount is None:
        return ""
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)


def build_template_context(subscription: Subscription, language: str) -> Dict[str, Any]:
    """Build the placeholder values for one subscription.

    Args:
        subscription: Subscription being notified about
        language: Language used for date formatting

    Returns:
        Dictionary with keys name, plan, amount, currency, next_billing_date,
        payment_method, status and billing_cycle. Missing values are None.
    """
    return {
        "name": subscription.name,
        "plan": subscription.plan,
        "amount": format_amount(subscription.amount),
        "currency": subscription.currency,
        "next_billing_date": format_date(subscription.next_billing_date, language),
        "payment_method": subscription.payment_method,
        "status": subscription.status,
        "billing_cycle": subscription.billing_cycle,
    }


def build_default_message(
    notification_type: str, subscription: Subscription, language: str
) -> str:
    """Single-line message used when no template resolves.

    Only zh-CN and en have default wording; other languages use en. The
    date is still written the way the requested language writes it.
    """
    message_language = language if language in DEFAULT_MESSAGES else DEFAULT_MESSAGE_LANGUAGE
    pattern = DEFAULT_MESSAGES[message_language].get(
        notification_type, FALLBACK_MESSAGE[message_language]
    )
    return pattern.format(
        name=subscription.name,
        date=format_date(subscription.next_billing_date, language),
        amount=format_amount(subscription.amount),
        currency=subscription.currency or "",
    )
