from __future__ import annotations
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Type

from lark import Lark, Token, Tree
from lark.exceptions import LarkError
from loguru import logger
from pydantic import ValidationError

from .errors import ParseError
from .typeresolver import resolve_exception_type
from .types import Guard, GuardKind

GRAMMAR_PATH = Path(__file__).with_name("guards.lark")

_PHRASES = (
    r"if \S+ .+? =>",
    r"it is not true that",
    r"after \d+ms",
    r"within \d+ms",
    r"during \d+ms",
    r"an? \S+ is thrown when",
)
# a phrase starts at the beginning of the text or after whitespace
GUARD_PATTERN = r"(?<!\S)(?:" + "|".join(_PHRASES) + r")(?!\S)"
# one or more guards in front of the step text, as a step-definition prefix
GUARD_PREFIX = r"(?:(" + GUARD_PATTERN + r"(?: " + GUARD_PATTERN + r")*) )?"

_guard_re = re.compile(GUARD_PATTERN)
_TIMED_PREFIXES = ("after ", "within ", "during ")

TypeResolver = Callable[[str], Type[BaseException]]

_parser = None

def _load_parser() -> Lark:
    global _parser
    if _parser is None:
        grammar = GRAMMAR_PATH.read_text(encoding="utf-8")
        _parser = Lark(grammar, start="start", parser="earley")
    return _parser


@dataclass
class GuardExtraction:
    phrases: List[str] = field(default_factory=list)
    remainder: str = ""


def extract_guards(text: str) -> GuardExtraction:
    """Split ``text`` into its guard phrases and the remaining step text."""
    phrases: List[str] = []
    segments: List[str] = []
    pos = 0
    for m in _guard_re.finditer(text):
        phrases.append(m.group(0))
        segments.append(text[pos:m.start()])
        pos = m.end()
    segments.append(text[pos:])
    remainder = " ".join(s.strip() for s in segments if s.strip())
    return GuardExtraction(phrases, remainder)


def _strip_condition(value: str) -> str:
    return re.sub(r" =>$", "", re.sub(r"^if ", "", value))


def _token(node: Tree, token_type: str) -> str:
    for ch in node.children:
        if isinstance(ch, Token) and ch.type == token_type:
            return str(ch)
    raise ParseError(f"Malformed {node.data} guard (missing {token_type})")


def parse_phrase(phrase: str, next_guard: Optional[Guard] = None,
                 type_resolver: TypeResolver = resolve_exception_type) -> Guard:
    """Build the guard for a single phrase, linked to ``next_guard``."""
    phrase = phrase.strip()
    try:
        tree = _load_parser().parse(phrase)
    except LarkError as e:
        if phrase.startswith(_TIMED_PREFIXES):
            raise ParseError(f"Invalid timing guard '{phrase}': {e}") from e
        return Guard(kind=GuardKind.CONDITIONAL_SKIP, condition=_strip_condition(phrase), next=next_guard)

    try:
        return _classify(tree.children[0], next_guard, type_resolver)
    except ValidationError as e:
        raise ParseError(f"Invalid guard '{phrase}': {e}") from e


def _classify(node: Tree, next_guard: Optional[Guard], type_resolver: TypeResolver) -> Guard:
    kind = node.data
    if kind == "invert":
        return Guard(kind=GuardKind.INVERT, next=next_guard)
    if kind == "delay":
        return Guard(kind=GuardKind.ASYNC_DELAY, millis=int(_token(node, "MILLIS")), next=next_guard)
    if kind == "timeout":
        return Guard(kind=GuardKind.WITHIN_TIMEOUT, millis=int(_token(node, "MILLIS")), next=next_guard)
    if kind == "duration":
        return Guard(kind=GuardKind.DURING_DURATION, millis=int(_token(node, "MILLIS")), next=next_guard)
    if kind == "expectation":
        exception_type = type_resolver(_token(node, "TYPE_NAME"))
        return Guard(kind=GuardKind.EXPECT_EXCEPTION, exception_type=exception_type, next=next_guard)
    return Guard(kind=GuardKind.CONDITIONAL_SKIP, condition=_token(node, "CONDITION"), next=next_guard)


def parse_guards(text: Optional[str], type_resolver: TypeResolver = resolve_exception_type) -> Guard:
    """Parse the guard clauses of ``text`` into a chain.

    The first phrase becomes the head and the chain always ends with a
    passthrough node that runs the step action. Never returns None.
    """
    if text is None:
        return Guard.always()
    phrases = extract_guards(text).phrases
    if not phrases:
        return Guard.always()
    head = Guard.always()
    for phrase in reversed(phrases):
        head = parse_phrase(phrase, next_guard=head, type_resolver=type_resolver)
    logger.debug("parsed guards {} from '{}'", [g.kind.value for g in head.chain()], text)
    return head


parse = parse_guards
