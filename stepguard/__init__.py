from loguru import logger

from .context import StepContext
from .config import GuardSettings
from .errors import (
    GuardAssertionError,
    GuardError,
    GuardTimeoutError,
    ParseError,
    SkipStep,
    TypeResolutionError,
)
from .parser import GUARD_PATTERN, GUARD_PREFIX, extract_guards, parse, parse_guards, parse_phrase
from .types import Guard, GuardKind, StepResult, StepStatus

__all__ = [
    "GUARD_PATTERN",
    "GUARD_PREFIX",
    "Guard",
    "GuardAssertionError",
    "GuardError",
    "GuardKind",
    "GuardSettings",
    "GuardTimeoutError",
    "ParseError",
    "SkipStep",
    "StepContext",
    "StepResult",
    "StepStatus",
    "TypeResolutionError",
    "extract_guards",
    "parse",
    "parse_guards",
    "parse_phrase",
]

# library logging stays silent until the caller runs logger.enable("stepguard")
logger.disable("stepguard")
