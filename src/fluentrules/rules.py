"""
Contains the rules of the validation engine. A rule binds the checks of its CheckInvoker to a (possibly absent)
property and decides, per run, whether and how they are executed:

1. the selector of the context may veto the rule,
2. the synchronous and asynchronous conditions of the rule are evaluated,
3. the checks run in declaration order, honoring the cascade mode,
4. if the checks added failures the on-failure callback gets them, otherwise the dependent rules are evaluated.
"""
import logging
from collections.abc import Sequence
from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterable, Iterator, Optional, TypeVar, Union

from .checks import Check
from .context import Lazy, ValidationContext
from .errors import PreconditionError, guard
from .invoker import CheckInvoker, raise_if_cancelled
from .options import CascadeMode, global_options
from .types import (
    AsyncCondition,
    CancellationSignal,
    Condition,
    ElementFilter,
    FailureCallback,
    IndexBuilder,
    InstanceT,
    Transformer,
    ValueAccessor,
)
from .utils.blocking import run_blocking

logger = logging.getLogger(__name__)

DisplayName = Union[str, Callable[[ValidationContext], Optional[str]]]
ResultT = TypeVar("ResultT")


# pylint: disable=too-many-instance-attributes
class Rule(Generic[InstanceT]):
    """
    A validation unit for one property of the validated instance. A rule without property name (and without display
    name) is a model-level rule, its failures have an empty leaf name.
    The structure of a rule is only changed while the rule graph is defined. During evaluation it is read-only which
    makes it safe to evaluate the same rule graph in independent runs concurrently.
    """

    def __init__(
        self,
        accessor: ValueAccessor,
        property_name: Optional[str] = None,
        cascade_mode_default: Optional[Callable[[], CascadeMode]] = None,
        value_type: Any = Any,
    ):
        guard(accessor, "Cannot create a rule without value accessor.")
        self.accessor = accessor
        self.property_name = property_name
        self.value_type = value_type
        self.display_name: Optional[DisplayName] = None
        self.condition: Optional[Condition] = None
        self.async_condition: Optional[AsyncCondition] = None
        self.rule_sets: tuple[str, ...] = ()
        self.on_failure: Optional[FailureCallback] = None
        self.invoker = CheckInvoker()
        self._cascade_mode: Optional[CascadeMode] = None
        self._cascade_mode_default = cascade_mode_default or (lambda: global_options.cascade_mode)
        self._dependent_rules: list["Rule"] = []

    @property
    def cascade_mode(self) -> CascadeMode:
        """The explicit cascade mode of this rule or, if not set, the default of the validator / global options"""
        if self._cascade_mode is not None:
            return self._cascade_mode
        return self._cascade_mode_default()

    @cascade_mode.setter
    def cascade_mode(self, cascade_mode: Optional[CascadeMode]) -> None:
        if cascade_mode is not None and not isinstance(cascade_mode, CascadeMode):
            raise PreconditionError(f"{cascade_mode!r} is not a CascadeMode")
        self._cascade_mode = cascade_mode

    @property
    def checks(self) -> tuple[Check, ...]:
        return tuple(self.invoker)

    @property
    def dependent_rules(self) -> tuple["Rule", ...]:
        return tuple(self._dependent_rules)

    def add_check(self, check: Check) -> None:
        guard(check, "Cannot pass a null check to a rule.")
        self.invoker.add(check)

    def remove_check(self, check: Check) -> None:
        self.invoker.remove(check)

    def add_dependent_rules(self, rules: Iterable["Rule"]) -> None:
        for rule in rules:
            guard(rule, "A dependent rule must not be None.")
            self._dependent_rules.append(rule)

    def apply_condition(self, condition: Condition) -> None:
        """Adds a condition to the rule. Multiple conditions are combined with `and`."""
        guard(condition, "A condition must not be None.")
        if self.condition is None:
            self.condition = condition
        else:
            previous = self.condition
            self.condition = lambda context: previous(context) and condition(context)

    def apply_async_condition(self, async_condition: AsyncCondition) -> None:
        """Adds an asynchronous condition to the rule. Multiple conditions are combined with `and`."""
        guard(async_condition, "An async condition must not be None.")
        if self.async_condition is None:
            self.async_condition = async_condition
        else:
            previous = self.async_condition

            async def combined(context: ValidationContext) -> bool:
                return await previous(context) and await async_condition(context)

            self.async_condition = combined

    def apply_transformer(self, transformer: Transformer, value_type: Any = Any) -> None:
        """
        Replaces the invoker of this rule by one which transforms the value before the checks see it.
        The rule itself (conditions, cascade mode, dependent rules, rule sets) stays untouched.
        """
        guard(transformer, "Cannot pass a null transformer.")
        if self.invoker.transformer is not None:
            raise PreconditionError(f"A transformer is already attached to the rule for '{self}'.")
        if len(self.invoker) > 0:
            raise PreconditionError(f"Transform the rule for '{self}' before checks are attached.")
        self.invoker = CheckInvoker(transformer)
        self.value_type = value_type

    def get_display_name(self, context: ValidationContext) -> Optional[str]:
        """
        Resolves the name used in failure messages: an explicit display name, then the global display name resolver,
        then the property name.
        """
        if callable(self.display_name):
            return self.display_name(context)
        if self.display_name is not None:
            return self.display_name
        if global_options.display_name_resolver is not None:
            resolved = global_options.display_name_resolver(self, context)
            if resolved is not None:
                return resolved
        return self.property_name

    def evaluate(self, context: ValidationContext) -> None:
        """
        Evaluates the rule synchronously. Asynchronous conditions and checks are resolved by blocking.
        """
        names = self._prepare(context)
        if names is None:
            return
        leaf, property_name = names
        if self.async_condition is not None and not run_blocking(self.async_condition(context)):
            logger.debug("Async condition of '%s' is false", property_name)
            return
        self._validate(context, leaf, property_name, self.invoker.create_accessor(context, self))

    async def evaluate_async(
        self, context: ValidationContext, cancellation: Optional[CancellationSignal] = None
    ) -> None:
        """
        Evaluates the rule asynchronously. The run is aborted with `ValidationCancelled` as soon as the cancellation
        signal is found set before a check or a dependent rule.
        """
        context.is_async = True
        names = self._prepare(context)
        if names is None:
            return
        leaf, property_name = names
        if self.async_condition is not None and not await self.async_condition(context):
            logger.debug("Async condition of '%s' is false", property_name)
            return
        await self._validate_async(
            context, leaf, property_name, self.invoker.create_accessor(context, self), cancellation
        )

    def _prepare(self, context: ValidationContext) -> Optional[tuple[str, str]]:
        """
        Returns the leaf and the full property name or `None` if the rule must not run.
        """
        if self.property_name is not None:
            leaf = self.property_name
        else:
            leaf = self.get_display_name(context) or ""
        property_name = context.property_chain.build_property_name(leaf)
        if not context.selector.can_execute(self, property_name, context):
            logger.debug("Rule for '%s' vetoed by %r", property_name, context.selector)
            return None
        if self.condition is not None and not self.condition(context):
            logger.debug("Condition of '%s' is false", property_name)
            return None
        return leaf, property_name

    def _validate(self, context: ValidationContext, leaf: str, property_name: str, accessor: Lazy) -> None:
        total_failures = context.failure_count
        self.invoker.run(context, self, property_name, accessor)
        if self._report_failures(context, total_failures):
            return
        for dependent_rule in self._dependent_rules:
            dependent_rule.evaluate(context)

    # pylint: disable=too-many-arguments
    async def _validate_async(
        self,
        context: ValidationContext,
        leaf: str,
        property_name: str,
        accessor: Lazy,
        cancellation: Optional[CancellationSignal],
    ) -> None:
        total_failures = context.failure_count
        await self.invoker.run_async(context, self, property_name, accessor, cancellation)
        if self._report_failures(context, total_failures):
            return
        await self._evaluate_dependent_rules_async(context, cancellation)

    async def _evaluate_dependent_rules_async(
        self, context: ValidationContext, cancellation: Optional[CancellationSignal]
    ) -> None:
        for dependent_rule in self._dependent_rules:
            raise_if_cancelled(cancellation)
            await dependent_rule.evaluate_async(context, cancellation)

    def _report_failures(self, context: ValidationContext, total_failures: int) -> bool:
        """
        Hands the failures added since `total_failures` to the on-failure callback. Returns whether there were any.
        """
        if context.failure_count <= total_failures:
            return False
        if self.on_failure is not None:
            self.on_failure(context.instance, context.failures_since(total_failures))
        return True

    def __str__(self):
        return self.property_name if self.property_name is not None else "<model>"

    def __repr__(self):
        return f"{type(self).__name__}({self}, checks={list(self.invoker)})"


class CollectionRule(Rule[InstanceT]):
    """
    A rule for a collection property. Its checks are applied to every element of the (transformed) sequence.
    Elements rejected by the filter are skipped, the remaining ones keep their original position in their name,
    e.g. `tags[2]` even if `tags[1]` got filtered out.
    """

    def __init__(
        self,
        accessor: ValueAccessor,
        property_name: Optional[str] = None,
        cascade_mode_default: Optional[Callable[[], CascadeMode]] = None,
        element_type: Any = Any,
    ):
        super().__init__(accessor, property_name, cascade_mode_default)
        self.element_type = element_type
        self.filter: Optional[ElementFilter] = None
        self.index_builder: Optional[IndexBuilder] = None

    def _elements(self, context: ValidationContext, accessor: Lazy) -> Iterator[tuple[str, Lazy]]:
        """Yields the name segment and a value cell for every element which passes the filter"""
        elements = accessor.value
        if elements is None:
            return
        sequence = elements if isinstance(elements, Sequence) else list(elements)
        index_builder = self.index_builder or global_options.index_builder
        for index, element in enumerate(sequence):
            if self.filter is not None and not self.filter(element):
                continue
            yield index_builder(context.instance, sequence, element, index), Lazy.of(element)

    def _validate(self, context: ValidationContext, leaf: str, property_name: str, accessor: Lazy) -> None:
        for segment, element_accessor in self._elements(context, accessor):
            total_failures = context.failure_count
            with context.property_chain.nested(leaf + segment):
                self.invoker.run(context, self, property_name + segment, element_accessor)
            if self._report_failures(context, total_failures):
                continue
            for dependent_rule in self.dependent_rules:
                dependent_rule.evaluate(context)

    async def _validate_async(
        self,
        context: ValidationContext,
        leaf: str,
        property_name: str,
        accessor: Lazy,
        cancellation: Optional[CancellationSignal],
    ) -> None:
        for segment, element_accessor in self._elements(context, accessor):
            total_failures = context.failure_count
            with context.property_chain.nested(leaf + segment):
                await self.invoker.run_async(context, self, property_name + segment, element_accessor, cancellation)
            if self._report_failures(context, total_failures):
                continue
            await self._evaluate_dependent_rules_async(context, cancellation)


class RuleCollection:
    """
    The ordered top-level rules of a validator. While a capture is active, added rules are routed to the innermost
    capture sink instead; this is how rules declared inside a `dependent_rules` scope end up as dependent rules.
    """

    def __init__(self):
        self._rules: list[Rule] = []
        self._sinks: list[list[Rule]] = []

    def add(self, rule: Rule) -> None:
        guard(rule, "Cannot add a null rule.")
        if self._sinks:
            self._sinks[-1].append(rule)
        else:
            self._rules.append(rule)

    def remove(self, rule: Rule) -> None:
        self._rules.remove(rule)

    @contextmanager
    def capture(self, sink: list[Rule]) -> Iterator[list[Rule]]:
        """Routes added rules to `sink` while the block is executed. The previous sink is restored on any exit."""
        guard(sink, "Cannot capture into a null sink.")
        self._sinks.append(sink)
        try:
            yield sink
        finally:
            self._sinks.pop()

    def with_capture(self, sink: list[Rule], body: Callable[[], ResultT]) -> ResultT:
        with self.capture(sink):
            return body()

    @property
    def is_capturing(self) -> bool:
        return bool(self._sinks)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self):
        return len(self._rules)

    def __getitem__(self, index: int) -> Rule:
        return self._rules[index]
