"""Telegram notifier for new Djinni job listings."""

__version__ = "1.0.0"
