"""Telegram Bot API channel implementation."""

import logging
import re
from typing import Any, Dict, List, Optional

import requests

from subscription_notifier.logging import get_logger
from subscription_notifier.utils.timestamps import format_timestamp, utc_now

from .base import BaseChannel
from .exceptions import (
    ChannelConfigurationError,
    ChannelError,
    ChannelHTTPError,
    ChannelResponseError,
    ChannelTimeoutError,
)
from .models import DispatchResult

logger = get_logger(__name__, component="channel")

PLACEHOLDER_TOKEN = "your_telegram_bot_token_here"

HTML_TAG_RE = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9-]*)[^>]*>")

TEST_MESSAGES = {
    "zh-CN": (
        "🔔 <b>订阅管理系统测试消息</b>\n\n"
        "这是一条来自订阅管理系统的测试消息。\n\n"
        "如果您收到此消息，说明您的Telegram通知配置正确！\n\n"
        "⏰ 发送时间: {sent_at}"
    ),
    "en": (
        "🔔 <b>Subscription Manager Test Message</b>\n\n"
        "This is a test message from the subscription manager.\n\n"
        "If you received it, your Telegram notifications are configured correctly!\n\n"
        "⏰ Sent at: {sent_at}"
    ),
}


class TelegramChannel(BaseChannel):
    """Channel delivering HTML messages through the Telegram Bot API.

    API Details:
        Endpoint: {api_base_url}/bot{token}/{method}
        Methods used: sendMessage, getChat, getMe
        Errors: non-2xx responses carry a JSON body with a ``description``
            field, which becomes the error text
    """

    channel_type = "telegram"
    MAX_MESSAGE_LENGTH = 4096

    def __init__(
        self,
        bot_token: Optional[str],
        api_base_url: str = "https://api.telegram.org",
        timeout: int = 10,
        parse_mode: str = "HTML",
        language: str = "zh-CN",
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the channel.

        Args:
            bot_token: Bot API token (missing token makes every send fail)
            api_base_url: Bot API base URL
            timeout: Request timeout in seconds
            parse_mode: Telegram parse mode for outgoing messages
            language: Language of the diagnostic test message
            session: requests session (injected by tests)
        """
        self.bot_token = bot_token
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.parse_mode = parse_mode
        self.language = language
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    def is_configured(self) -> bool:
        return bool(self.bot_token) and self.bot_token != PLACEHOLDER_TOKEN

    def recipient_from_config(self, config: Dict[str, Any]) -> Optional[str]:
        chat_id = config.get("chat_id") if config else None
        if chat_id is None or str(chat_id).strip() == "":
            return None
        return str(chat_id).strip()

    def get_bot_info(self) -> DispatchResult:
        """Return a DispatchResult whose details carry the getMe payload."""
        try:
            self._require_token()
            result = self._call("getMe", http_method="GET")
        except ChannelError as e:
            return DispatchResult.failure(str(e) or "Failed to get bot info")
        return DispatchResult.ok(bot_info=result)

    def _deliver(
        self, recipient: str, content: str, subject: Optional[str] = None
    ) -> Dict[str, Any]:
        self._require_token()
        if not recipient:
            raise ChannelConfigurationError("Chat ID is required")

        text = content
        if len(text) > self.MAX_MESSAGE_LENGTH:
            logger.warning(
                "Truncating message to Telegram length limit",
                extra={
                    "event": "telegram.message.truncated",
                    "length": len(text),
                    "max": self.MAX_MESSAGE_LENGTH,
                },
            )
            if self.parse_mode == "HTML":
                text = truncate_html(text, self.MAX_MESSAGE_LENGTH)
            else:
                text = text[: self.MAX_MESSAGE_LENGTH]

        result = self._call(
            "sendMessage",
            payload={
                "chat_id": recipient,
                "text": text,
                "parse_mode": self.parse_mode,
                "disable_web_page_preview": True,
            },
        )

        message_id = result.get("message_id") if isinstance(result, dict) else None
        return {"message_id": message_id, "timestamp": format_timestamp(utc_now())}

    def _verify_recipient(self, recipient: str) -> Dict[str, Any]:
        self._require_token()
        if not recipient:
            raise ChannelConfigurationError("Chat ID is required")

        chat = self._call("getChat", http_method="GET", params={"chat_id": recipient})
        return {"chat_info": chat}

    def _test_message(self) -> tuple[Optional[str], str]:
        template = TEST_MESSAGES.get(self.language, TEST_MESSAGES["en"])
        return None, template.format(sent_at=format_timestamp(utc_now()))

    def _require_token(self) -> None:
        if not self.is_configured():
            raise ChannelConfigurationError("Telegram Bot Token not configured")

    def _call(
        self,
        api_method: str,
        http_method: str = "POST",
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Call a Bot API method and return its ``result`` field.

        The request URL embeds the bot token, so it never appears in logs or
        error messages; the API method name is used instead.

        Raises:
            ChannelHTTPError: On 4xx/5xx status or transport failure
            ChannelTimeoutError: On request timeout
            ChannelResponseError: On invalid JSON or ``ok: false``
        """
        url = f"{self.api_base_url}/bot{self.bot_token}/{api_method}"

        try:
            logger.debug(
                f"Telegram {api_method} request",
                extra={
                    "event": "telegram.request",
                    "api_method": api_method,
                    "timeout": self.timeout,
                },
            )
            response = self._session.request(
                method=http_method,
                url=url,
                json=payload,
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Telegram {api_method} timed out after {self.timeout} seconds",
                extra={"event": "telegram.request.timeout", "api_method": api_method},
            )
            raise ChannelTimeoutError(
                f"Telegram {api_method} timed out after {self.timeout} seconds",
                method=api_method,
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"Telegram {api_method} request failed: {type(e).__name__}",
                extra={
                    "event": "telegram.request.error",
                    "api_method": api_method,
                    "error_type": type(e).__name__,
                },
            )
            raise ChannelHTTPError(
                f"Telegram {api_method} request failed: {type(e).__name__}",
                status_code=0,
                method=api_method,
            ) from e

        body = self._parse_body(response)

        if response.status_code >= 400:
            description = body.get("description") if isinstance(body, dict) else None
            log_level = logging.WARNING if response.status_code >= 500 else logging.ERROR
            logger.log(
                log_level,
                f"HTTP {response.status_code} from Telegram {api_method}",
                extra={
                    "event": "telegram.request.error",
                    "api_method": api_method,
                    "status_code": response.status_code,
                },
            )
            raise ChannelHTTPError(
                description or f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
                method=api_method,
            )

        if not isinstance(body, dict):
            raise ChannelResponseError(f"Unexpected Telegram {api_method} response")

        if not body.get("ok", False):
            raise ChannelResponseError(
                body.get("description") or f"Telegram {api_method} reported failure"
            )

        return body.get("result")

    @staticmethod
    def _parse_body(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            if response.status_code >= 400:
                return None
            raise ChannelResponseError(f"Failed to parse Telegram response: {e}") from e


def _cut_outside_markup(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` chars without splitting a tag or an entity."""
    cut = text[:limit]
    if cut.rfind("<") > cut.rfind(">"):
        cut = cut[: cut.rfind("<")]
    amp = cut.rfind("&")
    if amp > cut.rfind(";") and len(cut) - amp <= 10:
        cut = cut[:amp]
    return cut


def _closing_tags(html: str) -> str:
    open_tags: List[str] = []
    for match in HTML_TAG_RE.finditer(html):
        closing, name = match.group(1), match.group(2).lower()
        if not closing:
            open_tags.append(name)
        elif name in open_tags:
            # Drop the innermost matching tag and anything opened after it
            del open_tags[len(open_tags) - 1 - open_tags[::-1].index(name) :]
    return "".join(f"</{name}>" for name in reversed(open_tags))


def truncate_html(text: str, limit: int) -> str:
    """Truncate Telegram HTML to ``limit`` characters.

    The cut never lands inside a tag or an entity, and tags left open by the
    cut are closed, with the closing tags counted against the limit.
    """
    if len(text) <= limit:
        return text

    budget = limit
    while budget > 0:
        cut = _cut_outside_markup(text, budget)
        suffix = _closing_tags(cut)
        if len(cut) + len(suffix) <= limit:
            return cut + suffix
        budget = min(budget, len(cut)) - (len(cut) + len(suffix) - limit)
    return ""
