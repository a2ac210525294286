"""Abstract notifier interface."""

from abc import ABC, abstractmethod


class Notifier(ABC):
    """Abstract base class for chat transports."""

    @abstractmethod
    def send(self, chat_id: str, text: str) -> None:
        """
        Deliver one rendered message to a chat.

        Args:
            chat_id: Recipient identity.
            text: Message body in the transport's rich-text subset (bold, links).

        Raises:
            RecipientUnreachableError: If the recipient blocked the bot or is gone.
            OtherTransportError: For any other delivery failure.
        """
        pass
