"""Assertion and polling primitives used by the guards.

Comparisons understand flag expressions: a string expected value starting
with ``?`` is matched with an operator instead of plain equality::

    ?== 1      ?!= 1      ?> 3      ?>= 3      ?< 3      ?<= 3
    ?e [a-z]+  (regex, full match)
    ?contains foo
    ?not bar
    ?value     (plain equality)
"""

from __future__ import annotations
import re
import time
from typing import Any, Callable, Mapping, Optional, Type

from .errors import GuardAssertionError, GuardTimeoutError

FLAG_PATTERN = re.compile(r"^(==|!=|>=|<=|>|<|e|contains|not)\s+(.*)$", re.DOTALL)


def as_text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _equal(actual: Any, expected: Any) -> bool:
    left, right = _as_number(actual), _as_number(expected)
    if left is not None and right is not None:
        return left == right
    return as_text(actual) == as_text(expected).strip()


def _compare(actual: Any, operator: str, expected: str) -> bool:
    left, right = _as_number(actual), _as_number(expected)
    if left is None or right is None:
        raise GuardAssertionError(f"cannot compare {actual!r} {operator} {expected!r}: both sides must be numbers")
    if operator == ">":
        return left > right
    if operator == ">=":
        return left >= right
    if operator == "<":
        return left < right
    return left <= right


def _match_flag(actual: Any, flag: str) -> bool:
    m = FLAG_PATTERN.match(flag)
    if not m:
        return _equal(actual, flag)
    operator, operand = m.group(1), m.group(2).strip()
    if operator == "==":
        return _equal(actual, operand)
    if operator in ("!=", "not"):
        return not _equal(actual, operand)
    if operator == "e":
        try:
            return re.fullmatch(operand, as_text(actual), re.DOTALL) is not None
        except re.error as e:
            raise GuardAssertionError(f"invalid pattern '{operand}': {e}") from e
    if operator == "contains":
        if isinstance(actual, (list, tuple, set)):
            return any(_equal(item, operand) for item in actual)
        return operand in as_text(actual)
    return _compare(actual, operator, operand)


def _is_collection(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def equals_in_any_order(actual: Any, expected: Any) -> None:
    """Assert that ``actual`` matches ``expected`` regardless of element order.

    Raises GuardAssertionError when the values differ.
    """
    if isinstance(expected, str) and expected.startswith("?"):
        if not _match_flag(actual, expected[1:]):
            raise GuardAssertionError(f"{actual!r} does not match '{expected}'")
        return

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            raise GuardAssertionError(f"expected a mapping but got {actual!r}")
        if set(actual) != set(expected):
            raise GuardAssertionError(f"keys {sorted(map(str, actual))} differ from {sorted(map(str, expected))}")
        for key, value in expected.items():
            equals_in_any_order(actual[key], value)
        return

    if _is_collection(expected):
        if not _is_collection(actual) or len(actual) != len(expected):
            raise GuardAssertionError(f"{actual!r} does not contain the same elements as {expected!r}")
        remaining = list(actual)
        for item in expected:
            for index, candidate in enumerate(remaining):
                try:
                    equals_in_any_order(candidate, item)
                except AssertionError:
                    continue
                del remaining[index]
                break
            else:
                raise GuardAssertionError(f"no element of {actual!r} matches {item!r}")
        return

    if not _equal(actual, expected):
        raise GuardAssertionError(f"expected {expected!r} but got {actual!r}")


def await_until_asserted(operation: Callable[[], Any], timeout_ms: int, poll_interval_ms: int = 10) -> None:
    """Call ``operation`` until it stops raising AssertionError.

    Any other exception aborts the polling. When ``timeout_ms`` elapses the
    last assertion error is wrapped in a GuardTimeoutError.
    """
    deadline = time.monotonic() + timeout_ms / 1000.0
    while True:
        try:
            operation()
            return
        except AssertionError as e:
            last_error = e
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise GuardTimeoutError(
                f"condition was not fulfilled within {timeout_ms}ms: {last_error}", last_error
            ) from last_error
        time.sleep(min(poll_interval_ms / 1000.0, remaining))


def await_during(operation: Callable[[], Any], duration_ms: int, poll_interval_ms: int = 10) -> None:
    """Call ``operation`` repeatedly for ``duration_ms``; every call must succeed."""
    start = time.monotonic()
    deadline = start + duration_ms / 1000.0
    while True:
        try:
            operation()
        except Exception as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            raise GuardAssertionError(
                f"condition failed after {elapsed_ms}ms of a {duration_ms}ms window: {e}"
            ) from e
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return
        time.sleep(min(poll_interval_ms / 1000.0, remaining))


def threw_exception(operation: Callable[[], Any], expected_type: Type[BaseException]) -> None:
    name = expected_type.__name__
    try:
        operation()
    except expected_type:
        return
    except Exception as e:
        raise GuardAssertionError(
            f"expected exception of type {name} but got {type(e).__name__}: {e}"
        ) from e
    raise GuardAssertionError(f"expected exception of type {name} but none was thrown")
