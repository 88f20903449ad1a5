from __future__ import annotations
import re
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Sequence, Set, Type

from . import asserts
from .config import GuardSettings
from .typeresolver import resolve_exception_type

PLACEHOLDER = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")

_MISSING = object()


class StepContext:
    """Execution context handed to a guard chain.

    Holds the scenario variables, the polling settings and the default
    timeout. The default timeout belongs to this object: steps running on
    separate contexts do not share it, but threads sharing one context still
    race on it while an inverted guard runs.
    """

    def __init__(self, variables: Optional[Dict[str, Any]] = None, settings: Optional[GuardSettings] = None):
        self.variables: Dict[str, Any] = variables if variables is not None else {}
        self.settings = settings or GuardSettings.from_env()
        self.default_timeout: int = self.settings.default_timeout_ms
        self.types: Dict[str, Type[BaseException]] = {}
        self._pending: Set[threading.Event] = set()
        self._pending_lock = threading.Lock()

    # ---------- Variable resolution ----------
    def _lookup(self, path: str) -> Any:
        current: Any = self.variables
        for part in path.split("."):
            if isinstance(current, Mapping):
                if part not in current:
                    return _MISSING
                current = current[part]
            elif isinstance(current, Sequence) and not isinstance(current, str) and part.lstrip("-").isdigit():
                try:
                    current = current[int(part)]
                except IndexError:
                    return _MISSING
            elif hasattr(current, part):
                current = getattr(current, part)
            else:
                return _MISSING
        return current

    def get_or_self(self, token: str) -> Any:
        value = self._lookup(token)
        return token if value is _MISSING else value

    def resolve(self, expression: str) -> Any:
        """Substitute ``{{path}}`` placeholders with variable values.

        An expression made of a single placeholder yields the raw value.
        """
        whole = PLACEHOLDER.fullmatch(expression.strip())
        if whole:
            return self.get_or_self(whole.group(1))

        def substitute(m: re.Match) -> str:
            return asserts.as_text(self.get_or_self(m.group(1)))

        return PLACEHOLDER.sub(substitute, expression)

    def resolve_as_pattern(self, expression: str) -> str:
        return "?" + asserts.as_text(self.resolve(expression))

    # ---------- Assertions ----------
    def equals_in_any_order(self, actual: Any, expected: Any) -> None:
        asserts.equals_in_any_order(actual, expected)

    def await_until_asserted(self, operation: Callable[[], Any], timeout_ms: Optional[int] = None) -> None:
        timeout = self.default_timeout if timeout_ms is None else timeout_ms
        asserts.await_until_asserted(operation, timeout, self.settings.poll_interval_ms)

    def await_during(self, operation: Callable[[], Any], duration_ms: int) -> None:
        asserts.await_during(operation, duration_ms, self.settings.poll_interval_ms)

    def threw_exception(self, operation: Callable[[], Any], expected_type: Type[BaseException]) -> None:
        asserts.threw_exception(operation, expected_type)

    # ---------- Types ----------
    def register_type(self, exc_type: Type[BaseException], name: Optional[str] = None) -> None:
        self.types[name or exc_type.__name__] = exc_type

    def resolve_type(self, name: str) -> Type[BaseException]:
        return resolve_exception_type(name, self.types)

    # ---------- Timeout & cancellation ----------
    @contextmanager
    def timeout_override(self, millis: int) -> Iterator[None]:
        previous = self.default_timeout
        self.default_timeout = millis
        try:
            yield
        finally:
            self.default_timeout = previous

    def register_delay(self) -> threading.Event:
        """Return the event a delayed step waits on before it runs."""
        event = threading.Event()
        with self._pending_lock:
            self._pending.add(event)
        return event

    def release_delay(self, event: threading.Event) -> None:
        with self._pending_lock:
            self._pending.discard(event)

    def cancel_pending(self) -> None:
        """Stop the delayed steps that are waiting to run now.

        Delays registered afterwards are not affected.
        """
        with self._pending_lock:
            pending, self._pending = self._pending, set()
        for event in pending:
            event.set()
