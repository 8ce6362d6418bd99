"""
Contains the Validator. Subclass it (or instantiate it directly) and declare the rules of a type, then call
`validate` or `validate_async` with the instances you want to check:

    class CustomerValidator(Validator[Customer]):
        def __init__(self):
            super().__init__()
            self.rule_for("name").must(bool, "'{property_name}' must not be empty.")
            self.rule_for_each("tags").must(lambda tag: tag != "", "A tag must not be empty.")

    result = CustomerValidator().validate(customer)
"""
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Generic, Iterable, Iterator, Optional

from . import execution
from .analysis import ValidationResult
from .builder import RuleBuilder
from .context import ValidationContext
from .errors import guard
from .options import CascadeMode, global_options
from .rules import CollectionRule, Rule, RuleCollection
from .selectors import DEFAULT_RULE_SET, DefaultSelector, MemberNameSelector, RuleSetSelector, Selector
from .types import CancellationSignal, InstanceT, ValueAccessor
from .utils.query_object import path_accessor


def _identity(instance: Any) -> Any:
    return instance


class Validator(Generic[InstanceT]):
    """
    A validator holds the top-level rules for one type. The rule graph is built once and is read-only afterwards,
    hence one validator can validate many instances, also concurrently.
    """

    def __init__(self, cascade_mode: Optional[CascadeMode] = None):
        self.rules = RuleCollection()
        self.cascade_mode = cascade_mode
        self._rule_set_scopes: list[tuple[str, ...]] = []
        self._condition_scopes: list[Callable[[Rule], None]] = []

    def _default_cascade_mode(self) -> CascadeMode:
        return self.cascade_mode if self.cascade_mode is not None else global_options.cascade_mode

    def _register(self, rule: Rule) -> RuleBuilder[InstanceT]:
        if self._rule_set_scopes:
            rule.rule_sets = self._rule_set_scopes[-1]
        for apply_scope_condition in self._condition_scopes:
            apply_scope_condition(rule)
        self.rules.add(rule)
        return RuleBuilder(rule, self)

    def rule_for(
        self, accessor: ValueAccessor | str, property_name: Optional[str] = None, value_type: Any = Any
    ) -> RuleBuilder[InstanceT]:
        """
        Declares a rule for a property. `accessor` is either a function `instance -> value` or an attribute path
        like `"address.city"`; in the latter case the path is the default property name and the value is type checked
        against `value_type`.
        A rule with a function accessor and without property name is a model-level rule.
        """
        guard(accessor, "Cannot pass a null accessor to rule_for.")
        if isinstance(accessor, str):
            property_name = property_name if property_name is not None else accessor
            accessor = path_accessor(accessor, value_type)
        rule: Rule = Rule(accessor, property_name, self._default_cascade_mode, value_type)
        return self._register(rule)

    def rule_for_each(
        self, accessor: ValueAccessor | str, property_name: Optional[str] = None, element_type: Any = Any
    ) -> RuleBuilder[InstanceT]:
        """
        Declares a rule whose checks are applied to each element of a collection property.
        """
        guard(accessor, "Cannot pass a null accessor to rule_for_each.")
        if isinstance(accessor, str):
            property_name = property_name if property_name is not None else accessor
            accessor = path_accessor(accessor, Optional[Iterable[element_type]])  # type:ignore[valid-type]
        rule: CollectionRule = CollectionRule(accessor, property_name, self._default_cascade_mode, element_type)
        return self._register(rule)

    def rule(self) -> RuleBuilder[InstanceT]:
        """Declares a model-level rule whose checks see the instance itself"""
        return self._register(Rule(_identity, None, self._default_cascade_mode))

    @contextmanager
    def rule_set(self, *rule_set_names: str) -> Iterator[None]:
        """All rules declared inside the block belong to the given rule sets"""
        if not rule_set_names:
            raise ValueError("At least one rule set name is required")
        self._rule_set_scopes.append(tuple(rule_set_names))
        try:
            yield
        finally:
            self._rule_set_scopes.pop()

    @contextmanager
    def when(self, predicate: Callable[[InstanceT], bool]) -> Iterator[None]:
        """All rules declared inside the block are only evaluated if `predicate(instance)` is true"""
        guard(predicate, "A predicate must not be None.")

        def apply(rule: Rule) -> None:
            rule.apply_condition(lambda context: bool(predicate(context.instance)))

        self._condition_scopes.append(apply)
        try:
            yield
        finally:
            self._condition_scopes.pop()

    @contextmanager
    def unless(self, predicate: Callable[[InstanceT], bool]) -> Iterator[None]:
        guard(predicate, "A predicate must not be None.")
        with self.when(lambda instance: not predicate(instance)):
            yield

    @contextmanager
    def when_async(self, predicate: Callable[[InstanceT], Awaitable[bool]]) -> Iterator[None]:
        """Like `when` but with an asynchronous predicate"""
        guard(predicate, "A predicate must not be None.")

        def apply(rule: Rule) -> None:
            async def async_condition(context: ValidationContext) -> bool:
                return bool(await predicate(context.instance))

            rule.apply_async_condition(async_condition)

        self._condition_scopes.append(apply)
        try:
            yield
        finally:
            self._condition_scopes.pop()

    def evaluate(self, context: ValidationContext) -> None:
        """Evaluates the top-level rules against `context.instance`"""
        execution.evaluate(self.rules, context)

    async def evaluate_async(
        self, context: ValidationContext, cancellation: Optional[CancellationSignal] = None
    ) -> None:
        """Evaluates the top-level rules against `context.instance` asynchronously"""
        await execution.evaluate_async(self.rules, context, cancellation)

    # pylint: disable=too-many-arguments
    def create_context(
        self,
        instance: InstanceT,
        selector: Optional[Selector] = None,
        rule_sets: Optional[Iterable[str]] = None,
        member_names: Optional[Iterable[str]] = None,
        root_data: Optional[dict[str, Any]] = None,
    ) -> ValidationContext[InstanceT]:
        """
        Creates a fresh context for one validation run. At most one of `selector`, `rule_sets` and `member_names`
        may be given; without any of them the rules outside of named rule sets are executed.
        """
        if sum(option is not None for option in (selector, rule_sets, member_names)) > 1:
            raise ValueError("Pass either a selector, rule sets or member names")
        if rule_sets is not None:
            selector = RuleSetSelector(rule_sets)
        elif member_names is not None:
            selector = MemberNameSelector(member_names)
        return ValidationContext(instance, selector=selector or DefaultSelector(), root_data=root_data)

    def validate(
        self,
        instance: InstanceT,
        selector: Optional[Selector] = None,
        rule_sets: Optional[Iterable[str]] = None,
        member_names: Optional[Iterable[str]] = None,
        root_data: Optional[dict[str, Any]] = None,
    ) -> ValidationResult[InstanceT]:
        """Validates `instance` synchronously"""
        context = self.create_context(instance, selector, rule_sets, member_names, root_data)
        self.evaluate(context)
        return ValidationResult(instance, context.failures, _executed_rule_sets(context.selector))

    async def validate_async(
        self,
        instance: InstanceT,
        selector: Optional[Selector] = None,
        rule_sets: Optional[Iterable[str]] = None,
        member_names: Optional[Iterable[str]] = None,
        root_data: Optional[dict[str, Any]] = None,
        cancellation: Optional[CancellationSignal] = None,
    ) -> ValidationResult[InstanceT]:
        """Validates `instance` asynchronously"""
        context = self.create_context(instance, selector, rule_sets, member_names, root_data)
        await self.evaluate_async(context, cancellation)
        return ValidationResult(instance, context.failures, _executed_rule_sets(context.selector))

    def validate_and_raise(self, instance: InstanceT, **kwargs: Any) -> ValidationResult[InstanceT]:
        """Validates `instance` and raises a `ValidationException` if it is invalid"""
        result = self.validate(instance, **kwargs)
        result.raise_if_invalid()
        return result


def _executed_rule_sets(selector: Selector) -> tuple[str, ...]:
    if isinstance(selector, RuleSetSelector):
        return tuple(sorted(selector.rule_sets))
    if isinstance(selector, DefaultSelector):
        return (DEFAULT_RULE_SET,)
    return ()
