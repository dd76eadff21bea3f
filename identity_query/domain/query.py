"""Store-independent query values.

Predicates are plain frozen dataclasses so that a query can be built, compared
and passed around before anything touches the store. The document store
compiles them into SQL; nothing here knows about SQL.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class In:
    field: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class Contains:
    field: str
    text: str


@dataclass(frozen=True)
class StartsWith:
    field: str
    prefix: str


@dataclass(frozen=True)
class ElemMatch:
    """All conditions hold on the same element of the embedded list at ``path``."""

    path: str
    conditions: tuple[Eq | In, ...]


@dataclass(frozen=True)
class And:
    clauses: tuple[Predicate, ...] = ()


@dataclass(frozen=True)
class Or:
    clauses: tuple[Predicate, ...] = ()


Predicate = Eq | In | Contains | StartsWith | ElemMatch | And | Or

MATCH_ALL = And()


def in_(field_name: str, values: Iterable[Any]) -> In:
    return In(field_name, tuple(sorted(set(values), key=str)))


def and_(*clauses: Predicate | None) -> Predicate:
    kept: list[Predicate] = []
    for clause in clauses:
        if clause is None or clause == MATCH_ALL:
            continue
        if isinstance(clause, And):
            kept.extend(clause.clauses)
        else:
            kept.append(clause)
    if len(kept) == 1:
        return kept[0]
    return And(tuple(kept))


def or_(*clauses: Predicate) -> Predicate:
    kept: list[Predicate] = []
    for clause in clauses:
        if isinstance(clause, Or):
            kept.extend(clause.clauses)
        else:
            kept.append(clause)
    if len(kept) == 1:
        return kept[0]
    return Or(tuple(kept))


@dataclass(frozen=True)
class OrderBy:
    field: str
    ascending: bool = True


@dataclass(frozen=True)
class QuerySpec:
    predicate: Predicate = MATCH_ALL
    order_by: tuple[OrderBy, ...] = ()
    skip: int = 0
    take: int | None = None

    def __post_init__(self) -> None:
        if self.skip < 0:
            raise ValueError("skip must be non-negative")
        if self.take is not None and self.take < 0:
            raise ValueError("take must be non-negative")
