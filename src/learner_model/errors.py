"""Exception types for the user modeling engine."""

from learner_model.models.outcome import UpdateStep


class UserModelError(Exception):
    """Base class for user modeling errors."""


class UpdateStepError(UserModelError):
    """A step of the update pipeline raised.

    Args:
        step: The failing step.
        cause: The original exception.
    """

    def __init__(self, step: UpdateStep, cause: Exception):
        super().__init__(f"{step.value} step failed: {cause}")
        self.step = step
        self.cause = cause


class StoreError(UserModelError):
    """A user state store could not read or write an entity."""
