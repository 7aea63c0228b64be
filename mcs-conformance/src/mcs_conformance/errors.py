"""Exception taxonomy shared by the poller, the suite and the reporting pipeline."""

from __future__ import annotations

from typing import Optional


class ConformanceError(RuntimeError):
    """Base class for harness-level failures."""


class ConfigError(ConformanceError):
    """Raised when a harness config file cannot be loaded or validated."""


class SuiteSetupError(ConformanceError):
    """Raised when run-level setup fails; aborts the whole run."""


class FatalOperationError(ConformanceError):
    """An awaited operation failed with a non-retryable error."""

    def __init__(self, description: str, cause: BaseException) -> None:
        self.description = description
        self.cause = cause
        super().__init__(f"failed to {description}: {cause}")


class AwaitTimeoutError(ConformanceError):
    """The awaited condition was never satisfied before the deadline."""

    def __init__(self, description: str, last_message: str = "") -> None:
        self.description = description
        self.last_message = last_message
        text = f"failed to {description}"
        if last_message:
            text += f". {last_message}"
        super().__init__(text)


class ConsistencyError(ConformanceError):
    """A condition that had to hold for a period became false."""

    def __init__(self, description: str, message: str = "", *, attempt: Optional[int] = None):
        self.description = description
        self.message = message
        self.attempt = attempt
        text = f"{description} did not consistently hold"
        if message:
            text += f". {message}"
        super().__init__(text)


class OutcomeValidationError(ValueError):
    """Raised when a persisted test outcome violates the outcome schema."""
