import asyncio
from dataclasses import dataclass
from typing import Optional

import pytest

from fluentrules import (
    CascadeMode,
    Check,
    PreconditionError,
    PropertyContext,
    Rule,
    ValidationCancelled,
    ValidationContext,
    evaluate,
    evaluate_async,
)


@dataclass
class Order:
    number: str = "A-1"
    amount: int = 0


def recording_check(name: str, calls: list[str], fails: bool = True, on_call: Optional[asyncio.Event] = None) -> Check:
    def validate(property_context: PropertyContext) -> None:
        calls.append(name)
        if on_call is not None:
            on_call.set()
        if fails:
            property_context.add_failure(f"{name} failed")

    return Check(validate, name=name)


def async_recording_check(name: str, calls: list[str], fails: bool = True) -> Check:
    async def validate(property_context: PropertyContext) -> None:
        await asyncio.sleep(0)
        calls.append(name)
        if fails:
            property_context.add_failure(f"{name} failed")

    return Check(validate, name=name)


class TestCheckInvoker:
    def test_continue_mode_runs_all_checks_in_order(self):
        calls: list[str] = []
        rule = Rule(lambda order: order.number, "number")
        rule.cascade_mode = CascadeMode.CONTINUE
        rule.add_check(recording_check("c1", calls))
        rule.add_check(recording_check("c2", calls))
        context = ValidationContext(Order())

        evaluate([rule], context)

        assert calls == ["c1", "c2"]
        assert [failure.error_message for failure in context.failures] == ["c1 failed", "c2 failed"]
        assert all(failure.property_name == "number" for failure in context.failures)

    def test_stop_mode_skips_remaining_checks_but_not_sibling_rules(self):
        calls: list[str] = []
        rule = Rule(lambda order: order.number, "number")
        rule.cascade_mode = CascadeMode.STOP
        rule.add_check(recording_check("c1", calls))
        rule.add_check(recording_check("c2", calls))
        sibling = Rule(lambda order: order.amount, "amount")
        sibling.cascade_mode = CascadeMode.STOP
        sibling.add_check(recording_check("s1", calls))
        context = ValidationContext(Order())

        evaluate([rule, sibling], context)

        assert calls == ["c1", "s1"]
        assert [failure.property_name for failure in context.failures] == ["number", "amount"]

    def test_stop_mode_continues_while_checks_pass(self):
        calls: list[str] = []
        rule = Rule(lambda order: order.number, "number")
        rule.cascade_mode = CascadeMode.STOP
        rule.add_check(recording_check("c1", calls, fails=False))
        rule.add_check(recording_check("c2", calls))
        rule.add_check(recording_check("c3", calls))
        context = ValidationContext(Order())

        evaluate([rule], context)

        assert calls == ["c1", "c2"]
        assert len(context.failures) == 1

    def test_value_accessor_is_called_at_most_once_per_rule_and_run(self):
        accessor_calls: list[Order] = []

        def counting_accessor(order: Order) -> int:
            accessor_calls.append(order)
            return order.amount

        def reads_value(property_context: PropertyContext) -> None:
            if property_context.property_value <= 0:
                property_context.add_failure("must be positive")

        rule = Rule(counting_accessor, "amount")
        for _ in range(3):
            rule.add_check(Check(reads_value))

        first_context = ValidationContext(Order())
        evaluate([rule], first_context)
        assert len(accessor_calls) == 1
        assert len(first_context.failures) == 3

        evaluate([rule], ValidationContext(Order(amount=3)))
        assert len(accessor_calls) == 2

    def test_value_accessor_is_not_called_if_no_check_reads_it(self):
        accessor_calls: list[Order] = []
        rule = Rule(lambda order: accessor_calls.append(order), "number")
        rule.add_check(Check(lambda property_context: None))

        evaluate([rule], ValidationContext(Order()))

        assert not accessor_calls

    def test_check_condition_skips_only_this_check(self):
        calls: list[str] = []
        rule = Rule(lambda order: order.number, "number")
        skipped = recording_check("c1", calls)
        skipped.apply_condition(lambda context: context.instance.amount > 0)
        rule.add_check(skipped)
        rule.add_check(recording_check("c2", calls))
        context = ValidationContext(Order(amount=0))

        evaluate([rule], context)

        assert calls == ["c2"]

    def test_check_async_condition_is_resolved_on_sync_path(self):
        calls: list[str] = []

        async def never(_context: ValidationContext) -> bool:
            return False

        async def always(_context: ValidationContext) -> bool:
            return True

        rule = Rule(lambda order: order.number, "number")
        skipped = recording_check("c1", calls)
        skipped.apply_async_condition(never)
        executed = recording_check("c2", calls)
        executed.apply_async_condition(always)
        rule.add_check(skipped)
        rule.add_check(executed)
        context = ValidationContext(Order())

        evaluate([rule], context)

        assert calls == ["c2"]
        assert len(context.failures) == 1

    def test_async_check_runs_on_sync_path_by_blocking(self):
        calls: list[str] = []
        rule = Rule(lambda order: order.number, "number")
        rule.add_check(recording_check("sync", calls, fails=False))
        rule.add_check(async_recording_check("async", calls))
        rule.add_check(recording_check("after", calls, fails=False))
        context = ValidationContext(Order())

        evaluate([rule], context)

        assert calls == ["sync", "async", "after"]
        assert [failure.error_message for failure in context.failures] == ["async failed"]
        assert context.is_async is False

    async def test_sync_check_runs_on_async_path(self):
        calls: list[str] = []
        rule = Rule(lambda order: order.number, "number")
        rule.add_check(recording_check("sync", calls))
        rule.add_check(async_recording_check("async", calls))
        context = ValidationContext(Order())

        await evaluate_async([rule], context)

        assert calls == ["sync", "async"]
        assert len(context.failures) == 2
        assert context.is_async is True

    async def test_stop_mode_on_async_path(self):
        calls: list[str] = []
        rule = Rule(lambda order: order.number, "number")
        rule.cascade_mode = CascadeMode.STOP
        rule.add_check(async_recording_check("c1", calls))
        rule.add_check(async_recording_check("c2", calls))
        context = ValidationContext(Order())

        await evaluate_async([rule], context)

        assert calls == ["c1"]
        assert len(context.failures) == 1

    async def test_cancellation_before_next_check_keeps_recorded_failures(self):
        calls: list[str] = []
        cancellation = asyncio.Event()
        rule = Rule(lambda order: order.number, "number")
        rule.add_check(recording_check("c1", calls, on_call=cancellation))
        rule.add_check(recording_check("c2", calls))
        context = ValidationContext(Order())

        with pytest.raises(asyncio.CancelledError):
            await evaluate_async([rule], context, cancellation)

        assert calls == ["c1"]
        assert [failure.error_message for failure in context.failures] == ["c1 failed"]

    async def test_cancellation_raises_validation_cancelled(self):
        cancellation = asyncio.Event()
        cancellation.set()
        rule = Rule(lambda order: order.number, "number")
        rule.add_check(recording_check("c1", []))
        context = ValidationContext(Order())

        with pytest.raises(ValidationCancelled):
            await evaluate_async([rule], context, cancellation)

        assert not context.failures

    async def test_cancellation_is_handed_to_checks_accepting_it(self):
        received: list[Optional[asyncio.Event]] = []

        async def lookup(property_context: PropertyContext, cancellation: Optional[asyncio.Event] = None) -> None:
            received.append(cancellation)
            if cancellation is not None:
                cancellation.set()
            property_context.add_failure("lookup aborted")

        rule = Rule(lambda order: order.number, "number")
        rule.add_check(Check(lookup))
        rule.add_check(recording_check("c2", []))
        cancellation = asyncio.Event()
        context = ValidationContext(Order())

        with pytest.raises(ValidationCancelled):
            await evaluate_async([rule], context, cancellation)
        assert received == [cancellation]
        assert [failure.error_message for failure in context.failures] == ["lookup aborted"]

        evaluate([rule], ValidationContext(Order()))
        assert received == [cancellation, None]

    def test_exception_in_check_aborts_the_run(self):
        calls: list[str] = []

        def broken(_property_context: PropertyContext) -> None:
            raise RuntimeError("boom")

        rule = Rule(lambda order: order.number, "number")
        rule.add_check(recording_check("c1", calls))
        rule.add_check(Check(broken))
        sibling = Rule(lambda order: order.amount, "amount")
        sibling.add_check(recording_check("s1", calls))
        context = ValidationContext(Order())

        with pytest.raises(RuntimeError, match="boom"):
            evaluate([rule, sibling], context)

        assert calls == ["c1"]
        assert len(context.failures) == 1

    def test_check_removal_keeps_order(self):
        calls: list[str] = []
        rule = Rule(lambda order: order.number, "number")
        first, second, third = (recording_check(name, calls) for name in ("c1", "c2", "c3"))
        for check in (first, second, third):
            rule.add_check(check)
        rule.remove_check(second)

        evaluate([rule], ValidationContext(Order()))

        assert rule.checks == (first, third)
        assert calls == ["c1", "c3"]

    def test_null_check_is_a_precondition_violation(self):
        rule = Rule(lambda order: order.number, "number")
        with pytest.raises(PreconditionError):
            rule.add_check(None)  # type:ignore[arg-type]

    def test_coroutine_declared_synchronous_is_a_precondition_violation(self):
        async def validate(_property_context: PropertyContext) -> None:
            pass

        with pytest.raises(PreconditionError):
            Check(validate, runs_async=False)

    def test_runs_async_flag_is_derived_from_validate_function(self):
        async def validate_async(_property_context: PropertyContext) -> None:
            pass

        assert Check(validate_async).runs_async is True
        assert Check(lambda _property_context: None).runs_async is False
