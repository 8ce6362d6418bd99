"""
Contains the per-run state of a validation: the ValidationContext (shared by all rules of one run) and the
PropertyContext (one per rule and check invocation).
"""
from typing import TYPE_CHECKING, Any, Callable, Generic, Optional

from frozendict import frozendict

from .chain import PropertyChain
from .errors import Severity, ValidationFailure
from .options import global_options
from .selectors import DefaultSelector, Selector
from .types import InstanceT

if TYPE_CHECKING:
    from .checks import Check
    from .rules import Rule

_NOT_COMPUTED = object()


class Lazy:
    """
    A compute-once memo cell. The factory is called on the first access of `value` and never again.
    There is no locking: a Lazy is created per rule evaluation and must neither be shared between validation runs
    nor between threads.
    """

    __slots__ = ("_factory", "_value")

    def __init__(self, factory: Callable[[], Any]):
        self._factory = factory
        self._value: Any = _NOT_COMPUTED

    @classmethod
    def of(cls, value: Any) -> "Lazy":
        """Creates an already computed cell"""
        cell = cls(lambda: value)
        cell._value = value
        return cell

    @property
    def is_computed(self) -> bool:
        return self._value is not _NOT_COMPUTED

    @property
    def value(self) -> Any:
        if self._value is _NOT_COMPUTED:
            self._value = self._factory()
        return self._value


class ValidationContext(Generic[InstanceT]):
    """
    Holds the state of one validation run. Create a fresh context for every top-level validation and discard it
    afterwards. The failure list is append-only during a run and shared by reference with all child contexts.
    """

    def __init__(
        self,
        instance: InstanceT,
        selector: Optional[Selector] = None,
        property_chain: Optional[PropertyChain] = None,
        root_data: Optional[dict[str, Any]] = None,
        failures: Optional[list[ValidationFailure]] = None,
    ):
        self.instance = instance
        self.selector: Selector = selector if selector is not None else DefaultSelector()
        self.property_chain = property_chain if property_chain is not None else PropertyChain()
        self.root_data: dict[str, Any] = root_data if root_data is not None else {}
        self.failures: list[ValidationFailure] = failures if failures is not None else []
        self.is_async = False

    def for_child(self, instance: Any, property_name: str) -> "ValidationContext":
        """
        Creates the context for a nested validator. The child shares the failure list, the selector, the root data
        and the async flag with this context. Its property chain is rooted at `property_name`.
        """
        child: ValidationContext = ValidationContext(
            instance,
            selector=self.selector,
            property_chain=PropertyChain.from_property_name(property_name),
            root_data=self.root_data,
            failures=self.failures,
        )
        child.is_async = self.is_async
        return child

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def failures_since(self, baseline: int) -> list[ValidationFailure]:
        """Returns a copy of the failures which were added after the failure count was `baseline`"""
        return self.failures[baseline:]


class PropertyContext:
    """
    The context handed to a single check. The property value is read through the memo cell of the rule evaluation
    which means that it is computed at most once, no matter how many checks read it.
    """

    def __init__(
        self,
        context: ValidationContext,
        rule: "Rule",
        check: "Check",
        property_name: str,
        accessor: Lazy,
    ):
        self.context = context
        self.rule = rule
        self.check = check
        self.property_name = property_name
        self._accessor = accessor

    @property
    def instance(self) -> Any:
        return self.context.instance

    @property
    def property_value(self) -> Any:
        return self._accessor.value

    @property
    def display_name(self) -> str:
        return self.rule.get_display_name(self.context) or self.property_name

    def add_failure(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        severity: Optional[Severity] = None,
        **format_args: Any,
    ) -> ValidationFailure:
        """
        Appends a failure for the current property to the failure list. Options which are not given explicitly are
        taken from the check. The message may contain the placeholders `{property_name}`, `{property_value}` and
        any of the `format_args`.
        """
        template = message or self.check.message or global_options.default_message
        args = {"property_name": self.display_name, "property_value": self.property_value, **format_args}
        failure = ValidationFailure(
            property_name=self.property_name,
            error_message=global_options.message_formatter(template, args),
            attempted_value=self.property_value,
            error_code=error_code or self.check.error_code,
            severity=severity or self.check.severity,
            custom_state=self.check.custom_state,
            format_args=frozendict(args),
        )
        self.context.failures.append(failure)
        return failure
