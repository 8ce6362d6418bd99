"""
Contains the CheckInvoker which runs the checks of a single rule in declaration order and applies the cascade mode
"""
import logging
from typing import TYPE_CHECKING, Any, Iterator, Optional

from .checks import Check
from .context import Lazy, PropertyContext, ValidationContext
from .errors import ValidationCancelled, guard
from .options import CascadeMode
from .types import CancellationSignal, Transformer
from .utils.blocking import run_blocking

if TYPE_CHECKING:
    from .rules import Rule

logger = logging.getLogger(__name__)


def raise_if_cancelled(cancellation: Optional[CancellationSignal]) -> None:
    """Raises `ValidationCancelled` if the cancellation signal is set"""
    if cancellation is not None and cancellation.is_set():
        logger.debug("Validation run got cancelled")
        raise ValidationCancelled()


class CheckInvoker:
    """
    Owns the ordered checks of one rule and an optional transformer. The order of the checks is the evaluation order
    and is never changed; checks can only be appended or removed.
    """

    def __init__(self, transformer: Optional[Transformer] = None):
        self._checks: list[Check] = []
        self.transformer = transformer

    def add(self, check: Check) -> None:
        guard(check, "Cannot add a null check to a rule.")
        self._checks.append(check)

    def remove(self, check: Check) -> None:
        self._checks.remove(check)

    @property
    def last(self) -> Optional[Check]:
        return self._checks[-1] if self._checks else None

    def __iter__(self) -> Iterator[Check]:
        return iter(self._checks)

    def __len__(self):
        return len(self._checks)

    def create_accessor(self, context: ValidationContext, rule: "Rule") -> Lazy:
        """
        Returns a memo cell for the (transformed) value of `rule`. The value is computed at most once per cell.
        """
        return Lazy(lambda: self.get_value(context.instance, rule))

    def get_value(self, instance: Any, rule: "Rule") -> Any:
        value = rule.accessor(instance)
        if self.transformer is not None:
            value = self.transformer(instance, value)
        return value

    def run(self, context: ValidationContext, rule: "Rule", property_name: str, accessor: Lazy) -> None:
        """
        Runs all checks synchronously. Asynchronous checks and conditions are resolved by blocking.
        """
        total_failures = context.failure_count
        for check in self._checks:
            if check.should_run_async(context):
                run_blocking(self._invoke_async(context, rule, check, property_name, accessor, None))
            else:
                self._invoke(context, rule, check, property_name, accessor)
            if self._should_stop(rule, context, total_failures, check):
                break

    async def run_async(
        self,
        context: ValidationContext,
        rule: "Rule",
        property_name: str,
        accessor: Lazy,
        cancellation: Optional[CancellationSignal] = None,
    ) -> None:
        """
        Runs all checks. Asynchronous checks and conditions are awaited, synchronous checks are called directly.
        """
        total_failures = context.failure_count
        for check in self._checks:
            raise_if_cancelled(cancellation)
            if check.should_run_async(context):
                await self._invoke_async(context, rule, check, property_name, accessor, cancellation)
            elif check.invoke_condition(context) and await check.invoke_async_condition(context):
                check.invoke(PropertyContext(context, rule, check, property_name, accessor))
            if self._should_stop(rule, context, total_failures, check):
                break

    @staticmethod
    def _should_stop(rule: "Rule", context: ValidationContext, total_failures: int, check: Check) -> bool:
        if rule.cascade_mode is CascadeMode.STOP and context.failure_count > total_failures:
            logger.debug("Check %s failed, skipping the remaining checks of '%s'", check.name, rule)
            return True
        return False

    @staticmethod
    def _invoke(context: ValidationContext, rule: "Rule", check: Check, property_name: str, accessor: Lazy) -> None:
        if not check.invoke_condition(context):
            return
        if check.async_condition is not None and not run_blocking(check.invoke_async_condition(context)):
            return
        check.invoke(PropertyContext(context, rule, check, property_name, accessor))

    # pylint: disable=too-many-arguments
    @staticmethod
    async def _invoke_async(
        context: ValidationContext,
        rule: "Rule",
        check: Check,
        property_name: str,
        accessor: Lazy,
        cancellation: Optional[CancellationSignal],
    ) -> None:
        if not check.invoke_condition(context):
            return
        if not await check.invoke_async_condition(context):
            return
        await check.invoke_async(PropertyContext(context, rule, check, property_name, accessor), cancellation)
