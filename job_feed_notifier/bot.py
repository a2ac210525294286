"""Interactive Telegram front end: settings commands and on-demand polling."""

import logging
import threading
from typing import Callable, Dict, List, Optional, Set

import requests

from .constants import (
    ALL_CATEGORIES_LABEL,
    ALL_CATEGORIES_VALUE,
    CATEGORIES,
    EXP_LEVEL_IDS,
    EXP_LEVELS,
    is_known_exp_level,
    sort_categories,
    sort_exp_levels,
)
from .db import SettingsStore
from .drafts import DraftStore
from .errors import FetchError
from .formatter import escape_html, format_category_label, format_exp_label, format_settings
from .scheduler import PollScheduler
from .telegram import TelegramAPIError, TelegramClient

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Something went wrong. Please try again later."

HELP_TEXT = "\n".join([
    "Available commands:",
    "/start - start and quick setup",
    "/settings - show current settings",
    "/categories - choose categories",
    "/levels - choose years of experience",
    "/save - save the selection",
    "/pause, /resume - stop or resume notifications",
    "/poll - check for new jobs now",
])


class BotApp:
    """Handles chat commands; one instance per bot process."""

    def __init__(
        self,
        client: TelegramClient,
        store: SettingsStore,
        scheduler: PollScheduler,
        draft_limit: int = 1000,
        error_pause: float = 5.0,
    ):
        self.client = client
        self.store = store
        self.scheduler = scheduler
        self.category_drafts = DraftStore(draft_limit)
        self.exp_drafts = DraftStore(draft_limit)
        self.error_pause = error_pause
        self._commands: Dict[str, Callable[[str, str], str]] = {
            "/start": self.handle_start,
            "/settings": self.handle_settings,
            "/categories": self.handle_categories_open,
            "/cat": self.handle_category_edit,
            "/levels": self.handle_levels_open,
            "/level": self.handle_level_edit,
            "/save": self.handle_save,
            "/pause": self.handle_pause,
            "/resume": self.handle_resume,
            "/poll": self.handle_poll_now,
        }

    # -- loop -------------------------------------------------------------

    def run(self, stop_event: threading.Event) -> None:
        """Long-poll Telegram for updates until stop_event is set."""
        offset: Optional[int] = None
        logger.info("Bot started")
        while not stop_event.is_set():
            try:
                updates = self.client.get_updates(offset)
            except (requests.RequestException, TelegramAPIError) as e:
                logger.error(f"getUpdates failed: {e}")
                stop_event.wait(self.error_pause)
                continue

            for update in updates:
                offset = update["update_id"] + 1
                self.handle_update(update)
        logger.info("Bot stopped")

    def handle_update(self, update: dict) -> None:
        """Answer one update. Failures are logged and answered, never raised."""
        message = update.get("message") or {}
        chat_id = (message.get("chat") or {}).get("id")
        text = (message.get("text") or "").strip()
        if chat_id is None or not text:
            return

        try:
            reply = self.handle_text(str(chat_id), text)
        except Exception as e:
            logger.error(f"Update {update.get('update_id')} failed: {e}", exc_info=True)
            reply = GENERIC_FAILURE

        if reply:
            self.reply(chat_id, reply)

    def reply(self, chat_id, text: str) -> None:
        try:
            self.client.send_message(chat_id, text)
        except (requests.RequestException, TelegramAPIError) as e:
            logger.error(f"Reply to chat {chat_id} failed: {e}")

    def handle_text(self, chat_id: str, text: str) -> str:
        command, _, argument = text.partition(" ")
        command = command.split("@", 1)[0].lower()
        handler = self._commands.get(command)
        if handler is None:
            return HELP_TEXT
        return handler(chat_id, argument.strip())

    # -- settings ---------------------------------------------------------

    def _is_configured(self, chat_id: str) -> bool:
        recipient = self.store.get(chat_id)
        return bool(recipient and recipient.is_configured)

    def handle_start(self, chat_id: str, argument: str) -> str:
        self.store.ensure(chat_id)
        if not self._is_configured(chat_id):
            return (
                "Hi! I watch the Djinni RSS feed and send you new jobs. "
                "Let's start by choosing categories: /categories"
            )
        return format_settings(self.store.get(chat_id))

    def handle_settings(self, chat_id: str, argument: str) -> str:
        self.store.ensure(chat_id)
        return format_settings(self.store.get(chat_id)) + "\n\n" + HELP_TEXT

    def handle_pause(self, chat_id: str, argument: str) -> str:
        self.store.ensure(chat_id)
        self.store.set_active(chat_id, False)
        return "Notifications paused."

    def handle_resume(self, chat_id: str, argument: str) -> str:
        self.store.ensure(chat_id)
        self.store.set_active(chat_id, True)
        return "Notifications enabled."

    # -- category editor ----------------------------------------------------

    def _stored_categories(self, chat_id: str) -> List[str]:
        recipient = self.store.get(chat_id)
        return recipient.categories if recipient else []

    def _category_draft(self, chat_id: str) -> Set[str]:
        return self.category_drafts.get(chat_id, lambda: self._stored_categories(chat_id))

    def _category_picker(self, chat_id: str) -> str:
        draft = self._category_draft(chat_id)
        all_selected = ALL_CATEGORIES_VALUE in draft
        lines = [
            "<b>Choose categories</b>",
            "Several values can be selected.",
            f"Selected: <b>{escape_html(format_category_label(draft))}</b>",
            "",
            f"{'✅' if all_selected else '☑️'} 0. {ALL_CATEGORIES_LABEL}",
        ]
        for index, category in enumerate(CATEGORIES, start=1):
            checked = "✅" if not all_selected and category in draft else "☑️"
            lines.append(f"{checked} {index}. {escape_html(category)}")
        lines += ["", "/cat &lt;number&gt; to toggle, /cat all, /cat clear, then /save"]
        return "\n".join(lines)

    def handle_categories_open(self, chat_id: str, argument: str) -> str:
        self.store.ensure(chat_id)
        self.category_drafts.open(chat_id, sort_categories(self._stored_categories(chat_id)))
        return self._category_picker(chat_id)

    def handle_category_edit(self, chat_id: str, argument: str) -> str:
        draft = self._category_draft(chat_id)
        value = argument.strip()

        if value.lower() in ("all", "0"):
            draft.clear()
            draft.add(ALL_CATEGORIES_VALUE)
        elif value.lower() == "clear":
            draft.clear()
        else:
            category = self._lookup_category(value)
            if category is None:
                return "Category not found."
            draft.discard(ALL_CATEGORIES_VALUE)
            if category in draft:
                draft.remove(category)
            else:
                draft.add(category)

        return self._category_picker(chat_id)

    @staticmethod
    def _lookup_category(value: str) -> Optional[str]:
        if value.isdigit():
            index = int(value) - 1
            return CATEGORIES[index] if 0 <= index < len(CATEGORIES) else None
        for category in CATEGORIES:
            if category.lower() == value.lower():
                return category
        return None

    # -- experience editor --------------------------------------------------

    def _stored_exp_levels(self, chat_id: str) -> List[str]:
        recipient = self.store.get(chat_id)
        return recipient.exp_levels if recipient else []

    def _exp_draft(self, chat_id: str) -> Set[str]:
        return self.exp_drafts.get(chat_id, lambda: self._stored_exp_levels(chat_id))

    def _exp_picker(self, chat_id: str) -> str:
        draft = self._exp_draft(chat_id)
        lines = [
            "<b>Choose years of experience</b>",
            "Several values can be selected.",
            f"Selected: <b>{escape_html(format_exp_label(sort_exp_levels(draft)))}</b>",
            "",
        ]
        for level_id, label in EXP_LEVELS:
            checked = "✅" if level_id in draft else "☑️"
            lines.append(f"{checked} {level_id} - {escape_html(label)}")
        lines += ["", "/level &lt;id&gt; to toggle, /level all, /level clear, then /save"]
        return "\n".join(lines)

    def handle_levels_open(self, chat_id: str, argument: str) -> str:
        self.store.ensure(chat_id)
        self.exp_drafts.open(chat_id, self._stored_exp_levels(chat_id))
        return self._exp_picker(chat_id)

    def handle_level_edit(self, chat_id: str, argument: str) -> str:
        draft = self._exp_draft(chat_id)
        value = argument.strip()

        if value.lower() == "all":
            draft.clear()
            draft.update(EXP_LEVEL_IDS)
        elif value.lower() == "clear":
            draft.clear()
        elif is_known_exp_level(value):
            if value in draft:
                draft.remove(value)
            else:
                draft.add(value)
        else:
            return "Unknown experience level."

        return self._exp_picker(chat_id)

    # -- save / poll --------------------------------------------------------

    def handle_save(self, chat_id: str, argument: str) -> str:
        categories = self.category_drafts.pop(chat_id)
        exp_levels = self.exp_drafts.pop(chat_id)
        if categories is None and exp_levels is None:
            return "Nothing to save. Open /categories or /levels first."

        self.store.ensure(chat_id)
        if categories is not None:
            self.store.save_category_filters(chat_id, categories)
        if exp_levels is not None:
            self.store.save_exp_filters(chat_id, exp_levels)

        if self._is_configured(chat_id):
            self.scheduler.prime(chat_id)

        return "Saved.\n\n" + format_settings(self.store.get(chat_id))

    def handle_poll_now(self, chat_id: str, argument: str) -> str:
        if not self._is_configured(chat_id):
            return "Choose a category first: /categories"

        try:
            sent = self.scheduler.poll_now(chat_id)
        except FetchError as e:
            logger.error(f"Manual poll failed for chat {chat_id}: {e}")
            return "Could not fetch the RSS feed. Please try again later."
        except Exception as e:
            logger.error(f"Manual poll failed for chat {chat_id}: {e}")
            return GENERIC_FAILURE

        return f"Jobs sent: {sent}" if sent > 0 else "No new jobs yet."
