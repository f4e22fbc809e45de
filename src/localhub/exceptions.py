"""Exception hierarchy for the LocalHub assistant core."""


class LocalHubError(Exception):
    """Base class for all LocalHub errors."""


class LLMNotConfiguredError(LocalHubError):
    """Raised when the language-model integration has no usable credentials."""


class LLMCallError(LocalHubError):
    """Raised when a language-model call fails or returns unusable output."""


class ModerationClassifierError(LocalHubError):
    """Raised when an external moderation classifier cannot be reached or parsed."""


class PersistenceError(LocalHubError):
    """Raised when quota or conversation bookkeeping fails after a model reply."""


class AgentConfigValidationError(LocalHubError):
    """Raised when an agent configuration fails validation.

    Attributes:
        errors: Every human-readable validation message, in check order.
    """

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors
