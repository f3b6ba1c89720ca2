"""Tests for logging context propagation."""

import pytest

from subscription_notifier.logging.context import (
    clear_log_context,
    get_log_context,
    log_context,
    pop_log_context,
    push_log_context,
)


@pytest.fixture(autouse=True)
def clean_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


def test_empty_context():
    """Test that context starts empty."""
    assert get_log_context() == {}


def test_push_multiple_fields():
    """Test pushing multiple fields at once."""
    token = push_log_context(run_id="abc123", subscription_id=7, notification_type="renewal_reminder")
    assert get_log_context() == {
        "run_id": "abc123",
        "subscription_id": 7,
        "notification_type": "renewal_reminder",
    }
    pop_log_context(token)
    assert get_log_context() == {}


def test_nested_context():
    """Test nested context pushes and pops."""
    token1 = push_log_context(run_id="abc123")
    token2 = push_log_context(subscription_id=7)
    token3 = push_log_context(channel="telegram")
    assert get_log_context() == {"run_id": "abc123", "subscription_id": 7, "channel": "telegram"}

    pop_log_context(token3)
    assert get_log_context() == {"run_id": "abc123", "subscription_id": 7}

    pop_log_context(token2)
    assert get_log_context() == {"run_id": "abc123"}

    pop_log_context(token1)
    assert get_log_context() == {}


def test_context_override():
    """Test that pushing the same key overwrites previous value."""
    token1 = push_log_context(run_id="abc123")
    token2 = push_log_context(run_id="xyz789")
    assert get_log_context() == {"run_id": "xyz789"}

    pop_log_context(token2)
    assert get_log_context() == {"run_id": "abc123"}

    pop_log_context(token1)


def test_context_manager_nested():
    """Test nested context managers."""
    with log_context(run_id="abc123"):
        with log_context(subscription_id=7, notification_type="expiration_warning"):
            assert get_log_context() == {
                "run_id": "abc123",
                "subscription_id": 7,
                "notification_type": "expiration_warning",
            }

        assert get_log_context() == {"run_id": "abc123"}

    assert get_log_context() == {}


def test_context_manager_exception():
    """Test that context is restored even when exception occurs."""
    with pytest.raises(ValueError):
        with log_context(run_id="abc123"):
            raise ValueError("Test exception")

    assert get_log_context() == {}


def test_clear_context():
    push_log_context(run_id="abc123", channel="email")
    clear_log_context()
    assert get_log_context() == {}


def test_context_isolation():
    """Test that get_log_context returns a copy, not the actual dict."""
    token = push_log_context(run_id="abc123")

    context = get_log_context()
    context["channel"] = "modified"

    assert get_log_context() == {"run_id": "abc123"}
    pop_log_context(token)
