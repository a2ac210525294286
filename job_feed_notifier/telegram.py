"""Telegram Bot API client and notifier."""

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import TelegramConfig
from .errors import OtherTransportError, RecipientUnreachableError
from .notifier import Notifier

logger = logging.getLogger(__name__)

# Bot API answers 403 when the user blocked the bot or the chat was deleted.
BLOCKED_ERROR_CODE = 403


class TelegramAPIError(Exception):
    """The Bot API answered with ok=false."""

    def __init__(self, error_code: int, description: str):
        super().__init__(f"Telegram API error {error_code}: {description}")
        self.error_code = error_code
        self.description = description


class TelegramClient:
    """Minimal synchronous Bot API client."""

    def __init__(self, config: TelegramConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = f"{config.api_url}/bot{config.bot_token}"
        self.session = session or requests.Session()

    def call(self, method: str, payload: Dict[str, Any], timeout: Optional[float] = None) -> Any:
        """
        Call a Bot API method.

        Args:
            method: Bot API method name, e.g. "sendMessage".
            payload: JSON parameters.
            timeout: Request timeout in seconds (defaults to the configured one).

        Returns:
            The "result" field of the response.

        Raises:
            TelegramAPIError: If the API rejected the call.
            requests.RequestException: On network failure.
        """
        url = f"{self.base_url}/{method}"
        response = self.session.post(
            url,
            json=payload,
            timeout=timeout or self.config.request_timeout,
        )
        try:
            data = response.json()
        except ValueError:
            response.raise_for_status()
            raise TelegramAPIError(response.status_code, "response is not JSON")

        if not data.get("ok"):
            raise TelegramAPIError(
                data.get("error_code", response.status_code),
                data.get("description", ""),
            )
        return data.get("result")

    def send_message(self, chat_id, text: str, parse_mode: str = "HTML") -> Any:
        return self.call("sendMessage", {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": parse_mode,
            "link_preview_options": {"is_disabled": True},
        })

    def get_updates(self, offset: Optional[int] = None) -> List[Dict[str, Any]]:
        """Long-poll for new updates starting at offset."""
        payload: Dict[str, Any] = {
            "timeout": self.config.long_poll_timeout,
            "allowed_updates": ["message"],
        }
        if offset is not None:
            payload["offset"] = offset
        return self.call(
            "getUpdates",
            payload,
            timeout=self.config.long_poll_timeout + self.config.request_timeout,
        ) or []


class TelegramNotifier(Notifier):
    """Delivers job messages to Telegram chats."""

    def __init__(self, client: TelegramClient):
        self.client = client

    def send(self, chat_id: str, text: str) -> None:
        try:
            self.client.send_message(chat_id, text)
        except TelegramAPIError as e:
            if e.error_code == BLOCKED_ERROR_CODE:
                raise RecipientUnreachableError(f"Chat {chat_id} is unreachable: {e.description}") from e
            raise OtherTransportError(str(e)) from e
        except requests.RequestException as e:
            raise OtherTransportError(f"Telegram request failed: {e}") from e
