#!/usr/bin/env python
import sys
import argparse

from .errors import GuardError
from .parser import extract_guards, parse_guards


def _lint() -> None:
    # Editor lint mode: text on stdin, one diagnostic line on stdout
    content = sys.stdin.read()
    try:
        parse_guards(content)
    except GuardError as e:
        print(f"error: {e}")
    sys.exit(0)


def main(argv=None):
    parser = argparse.ArgumentParser(description="stepguard - guard clauses for behaviour-test steps")
    parser.add_argument("--lint", action="store_true", help="Check guard text read from stdin")
    subparsers = parser.add_subparsers(dest="command")

    explain_parser = subparsers.add_parser("explain", help="Show the guard chain of a step text")
    explain_parser.add_argument("text", help='Step text, e.g. "within 100ms if x == 1 => the user exists"')

    args = parser.parse_args(argv)

    if args.lint:
        _lint()

    if args.command == "explain":
        try:
            head = parse_guards(args.text)
        except GuardError as e:
            print(f"[Error] {e}")
            sys.exit(1)
        for depth, guard in enumerate(head.chain()):
            label = guard.describe() or "run step"
            print(f"{'  ' * depth}{guard.kind.value}: {label}")
        print(f"step: {extract_guards(args.text).remainder}")
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
