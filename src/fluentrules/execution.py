"""
Contains the entry points which evaluate a sequence of top-level rules against the instance of a validation context
"""
import logging
from typing import Iterable, Optional

from .context import ValidationContext
from .invoker import raise_if_cancelled
from .rules import Rule
from .types import CancellationSignal

logger = logging.getLogger(__name__)


def evaluate(rules: Iterable[Rule], context: ValidationContext) -> None:
    """
    Evaluates all `rules` in order against `context.instance`. The failures can be read from `context.failures`
    afterwards. Exceptions raised by checks, conditions, accessors or transformers are not caught.
    """
    total_failures = context.failure_count
    for rule in rules:
        rule.evaluate(context)
    logger.debug(
        "Validated %s: %d new failure(s)", type(context.instance).__name__, context.failure_count - total_failures
    )


async def evaluate_async(
    rules: Iterable[Rule], context: ValidationContext, cancellation: Optional[CancellationSignal] = None
) -> None:
    """
    Evaluates all `rules` in order against `context.instance` using the asynchronous path.
    If `cancellation` gets set, `ValidationCancelled` is raised before the next check or dependent rule. Failures
    recorded up to this point remain in `context.failures`.
    """
    context.is_async = True
    total_failures = context.failure_count
    for rule in rules:
        raise_if_cancelled(cancellation)
        await rule.evaluate_async(context, cancellation)
    logger.debug(
        "Validated %s asynchronously: %d new failure(s)",
        type(context.instance).__name__,
        context.failure_count - total_failures,
    )
