"""Materialized path codes for organization units.

A code is a dot separated list of zero padded sibling ordinals, e.g.
``00001.00003``. The code of a child always starts with the code of its
parent followed by the separator, so "is ancestor of" becomes a prefix test.
"""

from __future__ import annotations

from enum import StrEnum

from identity_query.domain.query import Eq, Predicate, StartsWith, or_

CODE_SEPARATOR = "."
CODE_UNIT_LENGTH = 5


class CodeMatch(StrEnum):
    # Code equals the prefix or continues it after a separator.
    SEGMENT = "segment"
    # Raw string prefix; "12" also matches "123".
    TEXTUAL = "textual"


def create_code(*numbers: int) -> str:
    if not numbers:
        raise ValueError("at least one number is required")
    if any(number < 1 for number in numbers):
        raise ValueError("code numbers start at 1")
    return CODE_SEPARATOR.join(str(number).zfill(CODE_UNIT_LENGTH) for number in numbers)


def append_code(parent_code: str | None, child_code: str) -> str:
    if not child_code:
        raise ValueError("child code must not be empty")
    if not parent_code:
        return child_code
    return f"{parent_code}{CODE_SEPARATOR}{child_code}"


def subtree_predicate(code_prefix: str, match: CodeMatch = CodeMatch.SEGMENT) -> Predicate:
    if match is CodeMatch.TEXTUAL or not code_prefix:
        return StartsWith("code", code_prefix)
    root = code_prefix.rstrip(CODE_SEPARATOR)
    return or_(Eq("code", root), StartsWith("code", f"{root}{CODE_SEPARATOR}"))

