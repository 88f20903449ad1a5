"""Execution of guard chains.

``execute`` walks a chain outer to inner. Each guard wraps the call to the
next one, and the passthrough node at the tail runs the step action.
Failures travel as ``StepResult`` values between guards; the exception
contract only comes back in ``Guard.run``.
"""

from __future__ import annotations
import re
import threading
from typing import Any, Callable, Optional

from loguru import logger

from .errors import GuardAssertionError, SkipStep
from .types import Guard, GuardKind, StepResult, StepStatus

CONDITION_PATTERN = re.compile(r"(\S+) (.+)", re.DOTALL)

Action = Callable[[], Any]


def _run_action(action: Action) -> StepResult:
    try:
        action()
    except SkipStep:
        return StepResult.skipped()
    except Exception as e:
        return StepResult.failed(e)
    return StepResult.passed()


def _delegate(guard: Guard, context: Any, action: Action) -> StepResult:
    if guard.next is None:
        return _run_action(action)
    return execute(guard.next, context, action)


class _Delegation:
    """Inner part of a chain as a callable for the polling primitives.

    Raises the failure of the inner chain. A skip is recorded and raised as
    SkipStep so that polling stops.
    """

    def __init__(self, guard: Guard, context: Any, action: Action):
        self.guard = guard
        self.context = context
        self.action = action
        self.skipped = False

    def __call__(self) -> None:
        result = _delegate(self.guard, self.context, self.action)
        if result.status is StepStatus.SKIPPED:
            self.skipped = True
            raise SkipStep("step skipped by a guard")
        if result.status is StepStatus.FAILED:
            raise result.error


def _skip_on_condition(guard: Guard, context: Any, action: Action) -> StepResult:
    for token in guard.condition.split("&&"):
        m = CONDITION_PATTERN.fullmatch(token.strip())
        if not m:
            continue
        try:
            context.equals_in_any_order(context.get_or_self(m.group(1)), context.resolve_as_pattern(m.group(2)))
        except AssertionError:
            logger.debug("skipping step, condition '{}' is not met", token.strip())
            return StepResult.skipped()
        except Exception as e:
            return StepResult.failed(e)
    return _delegate(guard, context, action)


def _invert(guard: Guard, context: Any, action: Action) -> StepResult:
    with context.timeout_override(context.settings.invert_timeout_ms):
        result = _delegate(guard, context, action)
    if result.status is StepStatus.PASSED:
        return StepResult.failed(GuardAssertionError("This test was expected to fail."))
    if result.status is StepStatus.FAILED:
        return StepResult.passed()
    return result


def _run_later(guard: Guard, context: Any, action: Action) -> StepResult:
    cancelled = context.register_delay()

    def delayed() -> None:
        try:
            was_cancelled = cancelled.wait(guard.millis / 1000.0)
            context.release_delay(cancelled)
            if was_cancelled:
                logger.debug("cancelled async step {}", action)
                return
            result = _delegate(guard, context, action)
            if result.status is StepStatus.FAILED:
                logger.opt(exception=result.error).error("async step {} failed", action)
        except Exception as e:
            logger.opt(exception=e).error("async step {} crashed", action)
        finally:
            logger.debug("ran async step {}", action)

    threading.Thread(target=delayed, name=f"stepguard-after-{guard.millis}ms", daemon=True).start()
    return StepResult.passed()


def _polled(guard: Guard, context: Any, action: Action, poll: Callable[[_Delegation], None]) -> StepResult:
    delegation = _Delegation(guard, context, action)
    try:
        poll(delegation)
    except Exception as e:
        if delegation.skipped:
            return StepResult.skipped()
        return StepResult.failed(e)
    return StepResult.skipped() if delegation.skipped else StepResult.passed()


def execute(guard: Guard, context: Any, action: Action) -> StepResult:
    kind = guard.kind
    if kind is GuardKind.PASSTHROUGH:
        return _delegate(guard, context, action)
    if kind is GuardKind.CONDITIONAL_SKIP:
        return _skip_on_condition(guard, context, action)
    if kind is GuardKind.INVERT:
        return _invert(guard, context, action)
    if kind is GuardKind.ASYNC_DELAY:
        return _run_later(guard, context, action)
    if kind is GuardKind.WITHIN_TIMEOUT:
        return _polled(guard, context, action,
                       lambda op: context.await_until_asserted(op, guard.millis))
    if kind is GuardKind.DURING_DURATION:
        return _polled(guard, context, action,
                       lambda op: context.await_during(op, guard.millis))
    if kind is GuardKind.EXPECT_EXCEPTION:
        return _polled(guard, context, action,
                       lambda op: context.threw_exception(op, guard.exception_type))
    raise ValueError(f"Unknown guard kind: {kind}")
