"""
Contains the failure type collected during a validation run and the exceptions raised by the engine
"""
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from frozendict import frozendict


class Severity(str, Enum):
    """
    The severity of a validation failure. Only failures with severity `ERROR` make a validation result invalid.
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ValidationFailure:
    """
    A single failed check. Failures are plain data, they are appended to the failure list of the validation context
    and never raised.
    """

    property_name: str
    error_message: str
    attempted_value: Any = None
    error_code: Optional[str] = None
    severity: Severity = Severity.ERROR
    custom_state: Any = None
    format_args: Mapping[str, Any] = field(default_factory=frozendict)

    def __str__(self):
        if self.property_name:
            return f"{self.property_name}: {self.error_message}"
        return self.error_message


class PreconditionError(ValueError):
    """
    Raised while a rule graph is defined if the definition is invalid (e.g. a `None` check was passed).
    It is never raised during evaluation.
    """


class ValidationCancelled(asyncio.CancelledError):
    """
    Raised on the asynchronous path if the cancellation signal got set. All failures recorded before the abort
    remain in the failure list of the validation context.
    """


class ValidationException(Exception):
    """
    Raised by `Validator.validate_and_raise` and `ValidationResult.raise_if_invalid` if the validated instance
    is invalid.
    """

    def __init__(self, failures: list[ValidationFailure]):
        self.failures = failures
        lines = "\n".join(f" -- {failure}" for failure in failures)
        super().__init__(f"Validation failed:\n{lines}")


def guard(value: Any, message: str) -> None:
    """
    Raises a PreconditionError with the given message if `value` is `None`.
    """
    if value is None:
        raise PreconditionError(message)
