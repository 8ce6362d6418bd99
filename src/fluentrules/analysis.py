"""
Contains functionality to analyze the result of a validation run
"""
import itertools
from typing import Any, Generic, Optional

from .errors import Severity, ValidationException, ValidationFailure
from .types import InstanceT


def _extract_error_code(failure: ValidationFailure) -> str:
    return failure.error_code or ""


class ValidationResult(Generic[InstanceT]):
    """
    `Validator.validate` and `Validator.validate_async` will return an instance of this class. The failures keep the
    order in which they were recorded. The derived values are calculated only if you use them.
    Only failures with severity `ERROR` make the instance invalid; warnings and infos are reported but don't fail it.
    """

    def __init__(
        self,
        instance: InstanceT,
        failures: list[ValidationFailure],
        rule_sets_executed: tuple[str, ...] = (),
    ):
        self.instance = instance
        self.failures = failures
        self.rule_sets_executed = rule_sets_executed

        self._errors: Optional[list[ValidationFailure]] = None
        self._warnings: Optional[list[ValidationFailure]] = None
        self._failures_per_property: Optional[dict[str, list[ValidationFailure]]] = None
        self._num_errors_per_code: Optional[dict[str, int]] = None

    @property
    def errors(self) -> list[ValidationFailure]:
        """All failures with severity `ERROR` in the order they were recorded"""
        if self._errors is None:
            self._errors = [failure for failure in self.failures if failure.severity is Severity.ERROR]
        return self._errors

    @property
    def warnings(self) -> list[ValidationFailure]:
        """All failures with severity `WARNING` or `INFO` in the order they were recorded"""
        if self._warnings is None:
            self._warnings = [failure for failure in self.failures if failure.severity is not Severity.ERROR]
        return self._warnings

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    @property
    def num_errors_total(self) -> int:
        return len(self.errors)

    @property
    def num_warnings_total(self) -> int:
        return len(self.warnings)

    @property
    def failures_per_property(self) -> dict[str, list[ValidationFailure]]:
        """Maps the full property names onto their failures. The properties are ordered by their first failure."""
        if self._failures_per_property is None:
            self._failures_per_property = {}
            for failure in self.failures:
                self._failures_per_property.setdefault(failure.property_name, []).append(failure)
        return self._failures_per_property

    @property
    def num_errors_per_code(self) -> dict[str, int]:
        """
        This is a dictionary which maps the error code to the number of errors with this code.
        Errors without code are counted under the empty string.
        """
        if self._num_errors_per_code is None:
            self._num_errors_per_code = {
                key: sum(1 for _ in values_iter)
                for key, values_iter in itertools.groupby(
                    sorted(self.errors, key=_extract_error_code), key=_extract_error_code
                )
            }
        return self._num_errors_per_code

    def to_dictionary(self) -> dict[str, list[str]]:
        """Maps the full property names onto their error messages"""
        return {
            property_name: [failure.error_message for failure in failures]
            for property_name, failures in self.failures_per_property.items()
        }

    def raise_if_invalid(self) -> None:
        """Raises a `ValidationException` containing all failures if the result is not valid"""
        if not self.is_valid:
            raise ValidationException(self.failures)

    def __str__(self):
        if not self.failures:
            return "Validation succeeded"
        return "\n".join(str(failure) for failure in self.failures)

    def __repr__(self):
        return (
            f"ValidationResult(is_valid={self.is_valid}, rule_sets_executed={self.rule_sets_executed!r}, "
            f"failures={self.failures!r})"
        )

    def __eq__(self, other: Any):
        return isinstance(other, ValidationResult) and self.failures == other.failures

    __hash__ = None  # type: ignore[assignment]
