"""
Contains the Check, the smallest unit of validation logic. A check is a tagged variant: the flag `runs_async`
decides whether `validate` is a plain function or a coroutine function. The invoker branches on this flag explicitly.
"""
import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Protocol

from .errors import PreconditionError, Severity, guard
from .selectors import RuleSetSelector
from .types import AsyncCondition, Condition, ValidateFunction

if TYPE_CHECKING:
    from .context import PropertyContext, ValidationContext
    from .types import CancellationSignal


class Check:
    """
    A single validation predicate which records zero or more failures via `PropertyContext.add_failure`.
    The conditions of a check are evaluated in addition to the conditions of the rule owning it.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        validate: ValidateFunction,
        runs_async: Optional[bool] = None,
        name: Optional[str] = None,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        severity: Severity = Severity.ERROR,
        custom_state: Any = None,
    ):
        guard(validate, "Cannot create a check without validate function.")
        is_coroutine_function = inspect.iscoroutinefunction(validate)
        if runs_async is None:
            runs_async = is_coroutine_function
        elif not runs_async and is_coroutine_function:
            raise PreconditionError(f"{validate!r} is a coroutine function but the check is declared synchronous.")
        self.validate = validate
        self.runs_async = runs_async
        self.name = name or getattr(validate, "__name__", type(validate).__name__)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.custom_state = custom_state
        self.condition: Optional[Condition] = None
        self.async_condition: Optional[AsyncCondition] = None
        self._accepts_cancellation = _accepts_cancellation(validate)

    def apply_condition(self, condition: Condition) -> None:
        """Adds a condition. Multiple conditions are combined with `and`."""
        guard(condition, "A condition must not be None.")
        if self.condition is None:
            self.condition = condition
        else:
            previous = self.condition
            self.condition = lambda context: previous(context) and condition(context)

    def apply_async_condition(self, async_condition: AsyncCondition) -> None:
        """Adds an asynchronous condition. Multiple conditions are combined with `and`."""
        guard(async_condition, "An async condition must not be None.")
        if self.async_condition is None:
            self.async_condition = async_condition
        else:
            previous = self.async_condition

            async def combined(context: "ValidationContext") -> bool:
                return await previous(context) and await async_condition(context)

            self.async_condition = combined

    def invoke_condition(self, context: "ValidationContext") -> bool:
        return self.condition is None or self.condition(context)

    async def invoke_async_condition(self, context: "ValidationContext") -> bool:
        return self.async_condition is None or await self.async_condition(context)

    def should_run_async(self, context: "ValidationContext") -> bool:
        """
        Decides which variant the invoker dispatches to. This depends only on the declared capability of the check,
        not on whether the run itself is asynchronous.
        """
        return self.runs_async

    def invoke(self, property_context: "PropertyContext") -> None:
        """Runs the synchronous variant"""
        self.validate(property_context)

    async def invoke_async(
        self, property_context: "PropertyContext", cancellation: Optional["CancellationSignal"] = None
    ) -> None:
        """
        Runs the asynchronous variant. A validate function with a `cancellation` parameter receives the cancellation
        signal of the run, e.g. to stop a long running lookup early.
        """
        if self._accepts_cancellation:
            result = self.validate(property_context, cancellation=cancellation)  # type:ignore[call-arg]
        else:
            result = self.validate(property_context)
        if inspect.isawaitable(result):
            await result

    def __repr__(self):
        return f"Check({self.name}, runs_async={self.runs_async})"


def predicate_check(
    predicate: Callable[..., bool],
    message: Optional[str] = None,
    error_code: Optional[str] = None,
    severity: Severity = Severity.ERROR,
) -> Check:
    """
    Creates a synchronous check which fails if `predicate(value)` returns a falsy value.
    A predicate accepting two parameters is called as `predicate(instance, value)`.
    """
    guard(predicate, "Cannot pass a null predicate.")
    with_instance = accepts_instance(predicate)

    def validate(property_context: "PropertyContext") -> None:
        value = property_context.property_value
        passed = predicate(property_context.instance, value) if with_instance else predicate(value)
        if not passed:
            property_context.add_failure()

    validate.__name__ = getattr(predicate, "__name__", "predicate")
    return Check(validate, runs_async=False, message=message, error_code=error_code, severity=severity)


def async_predicate_check(
    predicate: Callable[..., Awaitable[bool]],
    message: Optional[str] = None,
    error_code: Optional[str] = None,
    severity: Severity = Severity.ERROR,
) -> Check:
    """
    Creates an asynchronous check which fails if the awaited `predicate(value)` is falsy.
    A predicate accepting two parameters is called as `predicate(instance, value)`.
    """
    guard(predicate, "Cannot pass a null predicate.")
    with_instance = accepts_instance(predicate)

    async def validate(property_context: "PropertyContext") -> None:
        value = property_context.property_value
        passed = await (predicate(property_context.instance, value) if with_instance else predicate(value))
        if not passed:
            property_context.add_failure()

    validate.__name__ = getattr(predicate, "__name__", "async_predicate")
    return Check(validate, runs_async=True, message=message, error_code=error_code, severity=severity)


def accepts_instance(predicate: Callable[..., Any]) -> bool:
    """Returns whether `predicate` requires (at least) two positional parameters, i.e. the instance and the value"""
    try:
        parameters = inspect.signature(predicate).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = [
        parameter
        for parameter in parameters
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and parameter.default is inspect.Parameter.empty
    ]
    return len(positional) >= 2


def _accepts_cancellation(validate: Callable[..., Any]) -> bool:
    try:
        return "cancellation" in inspect.signature(validate).parameters
    except (TypeError, ValueError):
        return False


class ChildValidator(Protocol):
    """
    The interface a nested validator has to provide to be composed into a rule via `ChildValidatorCheck`.
    """

    def evaluate(self, context: "ValidationContext") -> None:
        ...

    async def evaluate_async(
        self, context: "ValidationContext", cancellation: Optional["CancellationSignal"] = None
    ) -> None:
        ...


class ChildValidatorCheck(Check):
    """
    Validates the property value with a nested validator. The nested rules append to the same failure list, their
    property names are prefixed with the name of the property, e.g. `customer.address.city` or `lines[1].amount`.
    A `None` property value is not validated.
    The check runs asynchronously only if the run itself is asynchronous.
    """

    def __init__(self, validator_provider: Callable[[Any, Any], ChildValidator], rule_sets: tuple[str, ...] = ()):
        guard(validator_provider, "Cannot pass a null validator provider.")
        self.validator_provider = validator_provider
        self.rule_sets = rule_sets
        super().__init__(self.invoke, runs_async=False, name="child_validator")

    @classmethod
    def for_validator(cls, validator: ChildValidator, rule_sets: tuple[str, ...] = ()) -> "ChildValidatorCheck":
        guard(validator, "Cannot pass a null validator.")
        return cls(lambda _instance, _value: validator, rule_sets)

    def should_run_async(self, context: "ValidationContext") -> bool:
        return context.is_async

    def _child_context(self, property_context: "PropertyContext") -> Optional["ValidationContext"]:
        value = property_context.property_value
        if value is None:
            return None
        child_context = property_context.context.for_child(value, property_context.property_name)
        if self.rule_sets:
            child_context.selector = RuleSetSelector(self.rule_sets)
        return child_context

    def invoke(self, property_context: "PropertyContext") -> None:
        child_context = self._child_context(property_context)
        if child_context is None:
            return
        validator = self.validator_provider(property_context.instance, property_context.property_value)
        validator.evaluate(child_context)

    async def invoke_async(
        self, property_context: "PropertyContext", cancellation: Optional["CancellationSignal"] = None
    ) -> None:
        child_context = self._child_context(property_context)
        if child_context is None:
            return
        validator = self.validator_provider(property_context.instance, property_context.property_value)
        await validator.evaluate_async(child_context, cancellation)
