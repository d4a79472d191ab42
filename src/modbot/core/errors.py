"""Exception hierarchy shared across the rule engine and its callers."""


class ModBotError(RuntimeError):
    """Base exception for moderation failures."""


class RuleConfigurationError(ModBotError):
    """A persisted rule tree or rule set cannot be used as configured.

    Configuration errors are fatal for the evaluation that hit them and are
    never retried; the stored configuration has to be fixed.
    """


class UnknownCheckError(RuleConfigurationError):
    """A rule tree references a check name that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No function for rule {name}")
        self.name = name


class CheckError(ModBotError):
    """A check could not produce a result."""


class TransientCheckError(CheckError):
    """A check result is not available yet; the caller should retry later."""


class EvaluationTimeoutError(TransientCheckError):
    """The rule tree did not finish before its deadline."""


class ActionError(ModBotError):
    """An action handler could not be executed."""


class ChannelNotFoundError(ModBotError):
    """The channel is not configured for moderation."""

    def __init__(self, channel_id: str) -> None:
        super().__init__(f"Moderated channel not found: {channel_id}")
        self.channel_id = channel_id


class InvalidEventError(ModBotError):
    """An inbound event is malformed or of an unsupported type."""


class ModerationLogNotFoundError(ModBotError):
    """No moderation log with this id exists in the channel."""

    def __init__(self, log_id: str) -> None:
        super().__init__(f"Moderation log not found: {log_id}")
        self.log_id = log_id
