"""
Contains the RuleBuilder which offers a fluent interface to configure a single rule while the rule graph is defined
"""
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, Optional

from .checks import Check, ChildValidator, ChildValidatorCheck, accepts_instance, async_predicate_check, predicate_check
from .errors import PreconditionError, Severity, guard
from .options import CascadeMode
from .rules import CollectionRule, DisplayName, Rule
from .types import ElementFilter, FailureCallback, IndexBuilder, InstanceT

if TYPE_CHECKING:
    from .context import ValidationContext
    from .validator import Validator


class ApplyConditionTo(str, Enum):
    """Decides which part of a rule a condition declared via the builder applies to"""

    ALL_CHECKS = "all_checks"
    CURRENT_CHECK = "current_check"
    RULE = "rule"


# pylint: disable=too-many-public-methods
class RuleBuilder(Generic[InstanceT]):
    """
    Configures `rule`, which is already registered at `parent`. All methods return the builder itself:

        validator.rule_for("name").must(bool, "Name is required").cascade(CascadeMode.STOP)
    """

    def __init__(self, rule: Rule, parent: "Validator[InstanceT]"):
        self.rule = rule
        self.parent = parent

    def set_check(self, check: Check) -> "RuleBuilder[InstanceT]":
        """Appends `check` to the checks of the rule"""
        guard(check, "Cannot pass a null check to set_check.")
        self.rule.add_check(check)
        return self

    def must(
        self,
        predicate: Callable[..., bool],
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        severity: Severity = Severity.ERROR,
    ) -> "RuleBuilder[InstanceT]":
        """Adds a check failing if `predicate(value)` (or `predicate(instance, value)`) is falsy"""
        return self.set_check(predicate_check(predicate, message, error_code, severity))

    def must_async(
        self,
        predicate: Callable[..., Awaitable[bool]],
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        severity: Severity = Severity.ERROR,
    ) -> "RuleBuilder[InstanceT]":
        """Adds an asynchronous check failing if the awaited predicate is falsy"""
        return self.set_check(async_predicate_check(predicate, message, error_code, severity))

    def set_validator(
        self, validator: ChildValidator | Callable[[Any, Any], ChildValidator], *rule_sets: str
    ) -> "RuleBuilder[InstanceT]":
        """
        Validates the property value with a nested validator. Instead of a validator you may pass a provider
        `(instance, value) -> validator` which is called for each evaluation.
        """
        guard(validator, "Cannot pass a null validator to set_validator.")
        if hasattr(validator, "evaluate") and hasattr(validator, "evaluate_async"):
            check: Check = ChildValidatorCheck.for_validator(validator, tuple(rule_sets))  # type:ignore[arg-type]
        else:
            check = ChildValidatorCheck(validator, tuple(rule_sets))  # type:ignore[arg-type]
        return self.set_check(check)

    def transform(self, transformer: Callable[..., Any], value_type: Any = Any) -> "RuleBuilder[InstanceT]":
        """
        Transforms the property value before it is validated. The transformer is called as `transformer(value)` or,
        if it accepts two parameters, as `transformer(instance, value)`. It has to be applied before any check.
        """
        guard(transformer, "Cannot pass a null transformer.")
        if accepts_instance(transformer):
            self.rule.apply_transformer(transformer, value_type)
        else:
            self.rule.apply_transformer(lambda _instance, value: transformer(value), value_type)
        return self

    def dependent_rules(self, body: Callable[[], Any]) -> "RuleBuilder[InstanceT]":
        """
        All rules declared at the parent validator while `body` is executed become dependent rules of this rule. They
        are evaluated only if this rule did not fail. Dependent rules without rule set inherit the rule sets of this
        rule.
        """
        guard(body, "Cannot pass a null body to dependent_rules.")
        dependency_container: list[Rule] = []
        self.parent.rules.with_capture(dependency_container, body)
        if self.rule.rule_sets:
            for dependent_rule in dependency_container:
                if not dependent_rule.rule_sets:
                    dependent_rule.rule_sets = self.rule.rule_sets
        self.rule.add_dependent_rules(dependency_container)
        return self

    def when(
        self,
        predicate: Callable[[InstanceT], bool],
        apply_to: ApplyConditionTo = ApplyConditionTo.ALL_CHECKS,
    ) -> "RuleBuilder[InstanceT]":
        """
        Executes the checks (or the rule) only if `predicate(instance)` is true. By default the condition applies to
        all checks declared so far.
        """
        guard(predicate, "A predicate must not be None.")

        def condition(context: "ValidationContext") -> bool:
            return bool(predicate(context.instance))

        if apply_to is ApplyConditionTo.RULE:
            self.rule.apply_condition(condition)
        else:
            for check in self._targets(apply_to):
                check.apply_condition(condition)
        return self

    def unless(
        self,
        predicate: Callable[[InstanceT], bool],
        apply_to: ApplyConditionTo = ApplyConditionTo.ALL_CHECKS,
    ) -> "RuleBuilder[InstanceT]":
        """The opposite of `when`"""
        guard(predicate, "A predicate must not be None.")
        return self.when(lambda instance: not predicate(instance), apply_to)

    def when_async(
        self,
        predicate: Callable[[InstanceT], Awaitable[bool]],
        apply_to: ApplyConditionTo = ApplyConditionTo.ALL_CHECKS,
    ) -> "RuleBuilder[InstanceT]":
        """
        Like `when` but with an asynchronous predicate. If the rule is evaluated synchronously the predicate is
        resolved by blocking.
        """
        guard(predicate, "A predicate must not be None.")

        async def async_condition(context: "ValidationContext") -> bool:
            return bool(await predicate(context.instance))

        if apply_to is ApplyConditionTo.RULE:
            self.rule.apply_async_condition(async_condition)
        else:
            for check in self._targets(apply_to):
                check.apply_async_condition(async_condition)
        return self

    def cascade(self, cascade_mode: CascadeMode) -> "RuleBuilder[InstanceT]":
        self.rule.cascade_mode = cascade_mode
        return self

    def with_name(self, display_name: DisplayName) -> "RuleBuilder[InstanceT]":
        """Overrides the name used in failure messages. Pass a callable to resolve it per run."""
        guard(display_name, "A display name must not be None.")
        self.rule.display_name = display_name
        return self

    def override_property_name(self, property_name: str) -> "RuleBuilder[InstanceT]":
        """Overrides the property name under which failures are reported"""
        guard(property_name, "A property name must not be None.")
        self.rule.property_name = property_name
        return self

    def on_failure(self, callback: FailureCallback) -> "RuleBuilder[InstanceT]":
        """`callback(instance, failures)` is called with the failures of this rule if its checks failed"""
        guard(callback, "A failure callback must not be None.")
        self.rule.on_failure = callback
        return self

    def with_message(self, message: str) -> "RuleBuilder[InstanceT]":
        self._current_check().message = message
        return self

    def with_error_code(self, error_code: str) -> "RuleBuilder[InstanceT]":
        self._current_check().error_code = error_code
        return self

    def with_severity(self, severity: Severity) -> "RuleBuilder[InstanceT]":
        self._current_check().severity = severity
        return self

    def with_state(self, custom_state: Any) -> "RuleBuilder[InstanceT]":
        self._current_check().custom_state = custom_state
        return self

    def where(self, element_filter: ElementFilter) -> "RuleBuilder[InstanceT]":
        """Only validates the collection elements for which `element_filter(element)` is true"""
        guard(element_filter, "An element filter must not be None.")
        self._collection_rule().filter = element_filter
        return self

    def override_index(self, index_builder: IndexBuilder) -> "RuleBuilder[InstanceT]":
        """
        Replaces the builder of the element name segment, `(instance, sequence, element, index) -> segment`.
        The default builds `[index]`.
        """
        guard(index_builder, "An index builder must not be None.")
        self._collection_rule().index_builder = index_builder
        return self

    def configure(self, configurator: Callable[[Rule], Any]) -> "RuleBuilder[InstanceT]":
        """Gives direct access to the underlying rule"""
        guard(configurator, "A configurator must not be None.")
        configurator(self.rule)
        return self

    def _current_check(self) -> Check:
        check = self.rule.invoker.last
        if check is None:
            raise PreconditionError(f"The rule for '{self.rule}' has no check to configure yet.")
        return check

    def _targets(self, apply_to: ApplyConditionTo) -> list[Check]:
        if apply_to is ApplyConditionTo.CURRENT_CHECK:
            return [self._current_check()]
        return list(self.rule.checks)

    def _collection_rule(self) -> CollectionRule:
        if not isinstance(self.rule, CollectionRule):
            raise PreconditionError(f"The rule for '{self.rule}' is not a collection rule.")
        return self.rule
