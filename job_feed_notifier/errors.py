"""Exceptions shared by the poller, the worker and the bot."""


class FetchError(Exception):
    """The feed could not be fetched or parsed. Retried on the next tick."""


class NotifierError(Exception):
    """Base class for delivery failures raised by a Notifier."""


class RecipientUnreachableError(NotifierError):
    """The recipient blocked the bot or no longer exists. Permanent."""


class OtherTransportError(NotifierError):
    """Any other delivery failure. The recipient stays active."""


class ConfigurationError(ValueError):
    """A required startup setting is missing."""
