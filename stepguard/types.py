from __future__ import annotations
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import SkipStep


class GuardKind(str, Enum):
    PASSTHROUGH = "PASSTHROUGH"
    CONDITIONAL_SKIP = "CONDITIONAL_SKIP"
    INVERT = "INVERT"
    ASYNC_DELAY = "ASYNC_DELAY"
    WITHIN_TIMEOUT = "WITHIN_TIMEOUT"
    DURING_DURATION = "DURING_DURATION"
    EXPECT_EXCEPTION = "EXPECT_EXCEPTION"


TIMED_KINDS = frozenset({GuardKind.ASYNC_DELAY, GuardKind.WITHIN_TIMEOUT, GuardKind.DURING_DURATION})
# longest wait a thread can block on
MAX_MILLIS = int(threading.TIMEOUT_MAX) * 1000


class StepStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class StepResult:
    """Outcome of a step run through a guard chain."""
    status: StepStatus
    error: Optional[BaseException] = None

    @classmethod
    def passed(cls) -> "StepResult":
        return cls(StepStatus.PASSED)

    @classmethod
    def failed(cls, error: BaseException) -> "StepResult":
        return cls(StepStatus.FAILED, error)

    @classmethod
    def skipped(cls) -> "StepResult":
        return cls(StepStatus.SKIPPED)

    def raise_for_status(self) -> None:
        if self.status is StepStatus.FAILED:
            raise self.error
        if self.status is StepStatus.SKIPPED:
            raise SkipStep("step skipped by a guard")


class Guard(BaseModel):
    """One link of a guard chain.

    A tagged variant: ``kind`` selects the behaviour and which parameter is
    set. Nodes are immutable, so chains are built from the tail up and
    ``next`` is fixed at construction.
    """
    model_config = ConfigDict(frozen=True)

    kind: GuardKind = GuardKind.PASSTHROUGH
    condition: Optional[str] = None
    millis: Optional[int] = Field(default=None, ge=0, le=MAX_MILLIS)
    exception_type: Optional[Type[BaseException]] = None
    next: Optional["Guard"] = None

    @model_validator(mode="after")
    def check_parameters(self) -> "Guard":
        if self.kind is GuardKind.CONDITIONAL_SKIP and self.condition is None:
            raise ValueError("CONDITIONAL_SKIP requires a condition")
        if self.kind in TIMED_KINDS and self.millis is None:
            raise ValueError(f"{self.kind.value} requires millis")
        if self.kind is GuardKind.EXPECT_EXCEPTION and self.exception_type is None:
            raise ValueError("EXPECT_EXCEPTION requires an exception_type")
        return self

    @classmethod
    def always(cls) -> "Guard":
        return cls()

    def chain(self) -> Iterator["Guard"]:
        node: Optional[Guard] = self
        while node is not None:
            yield node
            node = node.next

    def describe(self) -> str:
        if self.kind is GuardKind.CONDITIONAL_SKIP:
            return f"if {self.condition} =>"
        if self.kind is GuardKind.INVERT:
            return "it is not true that"
        if self.kind is GuardKind.ASYNC_DELAY:
            return f"after {self.millis}ms"
        if self.kind is GuardKind.WITHIN_TIMEOUT:
            return f"within {self.millis}ms"
        if self.kind is GuardKind.DURING_DURATION:
            return f"during {self.millis}ms"
        if self.kind is GuardKind.EXPECT_EXCEPTION:
            name = self.exception_type.__name__
            article = "an" if name[:1].lower() in "aeiou" else "a"
            return f"{article} {name} is thrown when"
        return ""

    def evaluate(self, context: Any, action: Callable[[], Any]) -> StepResult:
        from .runtime import execute
        return execute(self, context, action)

    def run(self, context: Any, action: Callable[[], Any]) -> None:
        """Run ``action`` through the chain.

        Raises the failure when the step fails and SkipStep when a guard
        skipped it.
        """
        self.evaluate(context, action).raise_for_status()


Guard.model_rebuild()
