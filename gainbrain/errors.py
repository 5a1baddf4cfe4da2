"""Errors raised at the collaborator boundaries."""


class GainBrainError(Exception):
    """Base class for all bot errors."""


class GenerationFailure(GainBrainError):
    """The reasoning service call did not complete (network, auth, rate limit, timeout)."""


class PersistenceFailure(GainBrainError):
    """A read or write against the user store failed."""


class InvalidInput(GainBrainError):
    """User input that cannot be acted on, e.g. /topic without a topic."""
