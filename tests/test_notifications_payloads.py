"""Unit tests for template context and default message construction."""

from datetime import date

import pytest

from subscription_notifier.domain.models import Subscription
from subscription_notifier.notifications.payloads import (
    build_default_message,
    build_template_context,
    format_amount,
    format_date,
)


@pytest.fixture
def subscription():
    return Subscription(
        id=3,
        name="Spotify",
        plan="Family",
        billing_cycle="monthly",
        next_billing_date=date(2024, 3, 5),
        amount=10.0,
        currency="EUR",
        payment_method_id=2,
        status="active",
    )


class TestFormatDate:
    @pytest.mark.parametrize(
        "language,expected",
        [
            ("zh-CN", "2024/3/5"),
            ("ja", "2024/3/5"),
            ("ko", "2024. 3. 5."),
            ("fr", "05/03/2024"),
            ("es", "5/3/2024"),
            ("de", "5.3.2024"),
            ("en", "3/5/2024"),
            ("pt", "3/5/2024"),
        ],
    )
    def test_locale_formats(self, language, expected):
        assert format_date(date(2024, 3, 5), language) == expected

    def test_missing_date(self):
        assert format_date(None, "zh-CN") == "未知日期"
        assert format_date(None, "en") == "unknown date"
        assert format_date(None, "fr") == "unknown date"


class TestFormatAmount:
    @pytest.mark.parametrize(
        "amount,expected",
        [(10.0, "10"), (15.99, "15.99"), (0, "0"), (None, "")],
    )
    def test_format_amount(self, amount, expected):
        assert format_amount(amount) == expected


class TestBuildTemplateContext:
    def test_context_fields(self, subscription):
        context = build_template_context(subscription, "en")

        assert context == {
            "name": "Spotify",
            "plan": "Family",
            "amount": "10",
            "currency": "EUR",
            "next_billing_date": "3/5/2024",
            "payment_method": "2",
            "status": "active",
            "billing_cycle": "monthly",
        }

    def test_missing_optional_values_are_none(self):
        context = build_template_context(Subscription(name="Bare"), "zh-CN")

        assert context["plan"] is None
        assert context["payment_method"] is None
        assert context["next_billing_date"] == "未知日期"


class TestBuildDefaultMessage:
    def test_chinese_reminder(self, subscription):
        assert (
            build_default_message("renewal_reminder", subscription, "zh-CN")
            == "续订提醒：Spotify 将于 2024/3/5 到期，金额：10 EUR"
        )

    def test_english_expiration(self, subscription):
        assert (
            build_default_message("expiration_warning", subscription, "en")
            == "Expiration warning: Spotify expired on 3/5/2024"
        )

    def test_other_language_uses_english_wording_with_local_date(self, subscription):
        assert (
            build_default_message("expiration_warning", subscription, "de")
            == "Expiration warning: Spotify expired on 5.3.2024"
        )

    def test_unknown_type_uses_generic_message(self, subscription):
        assert build_default_message("weekly_digest", subscription, "zh-CN") == "订阅通知：Spotify"
        assert (
            build_default_message("weekly_digest", subscription, "en")
            == "Subscription notification: Spotify"
        )
